from __future__ import annotations


class BoardError(Exception):
    """Base for every failure surfaced at a board action boundary.

    ``str(exc)`` is the message shown to the user.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(BoardError):
    pass


class PermissionDeniedError(BoardError):
    def __init__(self, message: str = "You do not have permission to do that.") -> None:
        super().__init__(message)


class TransportError(BoardError):
    def __init__(self, kind: str, message: str) -> None:
        self.kind = kind
        super().__init__(message)

    @property
    def is_timeout(self) -> bool:
        return self.kind == "timeout"


class ServerError(BoardError):
    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(ServerError):
    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(404, message)


class SessionExpiredError(ServerError):
    def __init__(self, message: str = "Your session has expired. Please log in again.") -> None:
        super().__init__(401, message)


class UploadBusyError(BoardError):
    def __init__(self) -> None:
        super().__init__("An upload is already in progress.")


def error_message(error: BaseException | None, default: str = "An error occurred") -> str:
    if isinstance(error, BoardError) and error.message:
        return error.message
    return default
