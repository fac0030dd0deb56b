from .coordinator import UploadCoordinator
from .observers import CompositeObserver, LoggingObserver, ProgressTracker, UploadObserver, WebhookObserver
from .service import UploadService

__all__ = [
    "UploadCoordinator",
    "UploadService",
    "UploadObserver",
    "LoggingObserver",
    "ProgressTracker",
    "WebhookObserver",
    "CompositeObserver",
]
