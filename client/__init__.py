from .errors import (
    BoardError,
    NotFoundError,
    PermissionDeniedError,
    ServerError,
    SessionExpiredError,
    TransportError,
    UploadBusyError,
    ValidationError,
    error_message,
)
from .http import BoardApiClient
from .schemas import Assignment, AssignmentRole, FileType, Short, ShortFile, UploadTarget, User
from .settings import ClientSettings, load_settings

__all__ = [
    "BoardApiClient",
    "ClientSettings",
    "load_settings",
    "Assignment",
    "AssignmentRole",
    "FileType",
    "Short",
    "ShortFile",
    "UploadTarget",
    "User",
    "BoardError",
    "ValidationError",
    "PermissionDeniedError",
    "TransportError",
    "ServerError",
    "NotFoundError",
    "SessionExpiredError",
    "UploadBusyError",
    "error_message",
]
