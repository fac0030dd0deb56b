from dataclasses import dataclass, field


@dataclass
class FetchConfig:
    warmup_delay: float = 1.5  # collaborator settle time before the first call
    invoke_timeout: float = 10.0
    poll_interval: float = 0.5
    max_poll_attempts: int = 20  # ~10s ceiling

    @property
    def result_timeout(self) -> float:
        return self.poll_interval * self.max_poll_attempts


@dataclass
class DetectionConfig:
    exact_threshold: float = 1.0
    near_duplicate_threshold: float = 0.95
    similar_threshold: float = 0.75  # informational tier only
    chunk_size: int = 8192
    dhash_size: int = 8


@dataclass
class TokenConfig:
    fresh_duration: float = 5 * 60
    throttle_duration: float = 10.0
    request_timeout: float = 30.0
    namespace: str = "PhotoShareJwtPrefs"


@dataclass
class UploadConfig:
    retry_backoff: float = 2.0
    attempt_timeout: float = 30.0
    device_id: str = "Python_Worker"


@dataclass
class PipelineConfig:
    fetch: FetchConfig = field(default_factory=FetchConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    token: TokenConfig = field(default_factory=TokenConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)
