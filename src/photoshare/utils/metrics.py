import time
from contextlib import contextmanager

from prometheus_client import Counter, Histogram


# Prometheus Metrics
DUPLICATE_VERDICTS_TOTAL = Counter(
    "photoshare_duplicate_verdicts_total",
    "Duplicate checks by matching stage",
    ["stage"]  # content_hash, perceptual_exact, perceptual_similar, none, error
)

TOKEN_REQUESTS_TOTAL = Counter(
    "photoshare_token_requests_total",
    "Token requests by how they were served",
    ["outcome"]  # cached, coalesced, throttled, acquired, failed
)

UPLOAD_ATTEMPTS_TOTAL = Counter(
    "photoshare_upload_attempts_total",
    "Upload attempts by result",
    ["attempt", "result"]
)

UPLOAD_DURATION_SECONDS = Histogram(
    "photoshare_upload_duration_seconds",
    "Time spent uploading one photo, retries included",
)


@contextmanager
def observe_duration(histogram: Histogram):
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.observe(time.perf_counter() - start)
