from .download import DownloadProgress, DownloadStreamer
from .progress import BatchProgress, allot_ranges, upload_timeout_s
from .sources import UploadSource
from .upload import AmbiguousOutcome, UploadCoordinator, UploadItem, UploadPhase, UploadState

__all__ = [
    "UploadSource",
    "BatchProgress",
    "allot_ranges",
    "upload_timeout_s",
    "UploadCoordinator",
    "UploadItem",
    "UploadPhase",
    "UploadState",
    "AmbiguousOutcome",
    "DownloadStreamer",
    "DownloadProgress",
]
