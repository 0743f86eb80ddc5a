from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import Any, Callable, Iterator, TypeVar

import httpx
import pydantic

from transfer.progress import upload_timeout_s
from transfer.sources import UploadSource

from .errors import (
    NotFoundError,
    ServerError,
    SessionExpiredError,
    TransportError,
)
from .schemas import Assignment, AssignmentRole, Short, ShortFile, UploadTarget, User
from .settings import ClientSettings, load_settings

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)
ProgressCallback = Callable[[int, int], None]

DEFAULT_TIME_RANGE_DAYS = {AssignmentRole.CLIPPER.value: 4, AssignmentRole.EDITOR.value: 2}
UPLOAD_TIMEOUT_MESSAGE = "Upload timed out. Please try again, the file may be too large."


def _value(item: Any) -> Any:
    return getattr(item, "value", item)


def _response_message(response: httpx.Response, default: str) -> str:
    try:
        payload = response.json()
    except ValueError:
        return default
    if isinstance(payload, dict):
        for key in ("error", "detail", "message"):
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value
    return default


def raise_for_status(response: httpx.Response) -> None:
    if response.status_code < 400:
        return
    if response.status_code == 401:
        raise SessionExpiredError()
    if response.status_code == 404:
        raise NotFoundError(_response_message(response, "Resource not found"))
    message = _response_message(response, f"Request failed with status {response.status_code}")
    raise ServerError(response.status_code, message)


def transport_error(exc: httpx.RequestError, action: str) -> TransportError:
    if isinstance(exc, httpx.TimeoutException):
        return TransportError("timeout", f"{action} timed out. Please try again.")
    return TransportError("network", f"Network error during {action.lower()}. Check your connection and try again.")


class BoardApiClient:
    """REST collaborator for the shorts board, including the upload protocol calls."""

    def __init__(
        self,
        settings: ClientSettings | None = None,
        *,
        http: httpx.Client | None = None,
    ) -> None:
        self.settings = settings or load_settings()
        self._owns_http = http is None
        self.http = http or httpx.Client(
            base_url=self.settings.api_url,
            timeout=self.settings.timeout_s,
        )

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> "BoardApiClient":
        return self

    def __exit__(self, *_args) -> None:
        self.close()

    def _auth_headers(self) -> dict[str, str]:
        if not self.settings.token:
            return {}
        return {"Authorization": f"Bearer {self.settings.token}"}

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict | None = None,
        params: dict | None = None,
        action: str = "Request",
    ) -> Any:
        try:
            response = self.http.request(
                method,
                path,
                json=json,
                params=params,
                headers=self._auth_headers(),
            )
        except httpx.RequestError as exc:
            raise transport_error(exc, action) from exc
        raise_for_status(response)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ServerError(response.status_code, "Unexpected response from server") from exc

    def _parse(self, model: type[ModelT], payload: Any) -> ModelT:
        try:
            return model.model_validate(payload)
        except pydantic.ValidationError as exc:
            logger.warning("Unexpected %s payload: %s", model.__name__, exc)
            raise ServerError(200, "Unexpected response from server") from exc

    def _parse_list(self, model: type[ModelT], payload: Any) -> list[ModelT]:
        if not isinstance(payload, list):
            raise ServerError(200, "Unexpected response from server")
        return [self._parse(model, item) for item in payload]

    def _delete(self, path: str) -> bool:
        try:
            self._request("DELETE", path, action="Delete")
        except NotFoundError:
            logger.info("DELETE %s: already gone", path)
            return False
        return True

    # Board queries

    def get_me(self) -> User:
        return self._parse(User, self._request("GET", "/auth/me"))

    def list_shorts(self, assigned_only: bool = False) -> list[Short]:
        path = "/shorts/assigned" if assigned_only else "/shorts"
        return self._parse_list(Short, self._request("GET", path, action="Loading shorts"))

    def get_short(self, short_id: int) -> Short:
        return self._parse(Short, self._request("GET", f"/shorts/{short_id}", action="Loading short"))

    def create_short(
        self,
        title: str,
        description: str | None = None,
        idea: str | None = None,
    ) -> Short:
        payload = {"title": title, "description": description or "", "idea": idea or ""}
        return self._parse(Short, self._request("POST", "/shorts", json=payload, action="Creating short"))

    def update_short(self, short_id: int, **fields: Any) -> Short:
        payload = {key: _value(value) for key, value in fields.items()}
        data = self._request("PUT", f"/shorts/{short_id}", json=payload, action="Updating short")
        return self._parse(Short, data)

    def update_status(self, short_id: int, status: str) -> Short:
        return self.update_short(short_id, status=status)

    def delete_short(self, short_id: int) -> bool:
        return self._delete(f"/shorts/{short_id}")

    def mark_clips_complete(self, short_id: int) -> Short:
        data = self._request("POST", f"/shorts/{short_id}/mark-clips-complete", action="Marking clips complete")
        return self._parse(Short, data)

    def mark_editing_complete(self, short_id: int) -> Short:
        data = self._request("POST", f"/shorts/{short_id}/mark-editing-complete", action="Marking editing complete")
        return self._parse(Short, data)

    def list_assignments(self) -> list[Assignment]:
        return self._parse_list(Assignment, self._request("GET", "/assignments", action="Loading assignments"))

    def list_public_assignments(self) -> list[Assignment]:
        data = self._request("GET", "/assignments/public", action="Loading assignments")
        return self._parse_list(Assignment, data)

    def create_assignment(
        self,
        short_id: int,
        user_id: int,
        role: AssignmentRole | str,
        *,
        rate: float | None = None,
        rate_description: str | None = None,
        due_date: str | None = None,
    ) -> Assignment:
        role = _value(role)
        payload: dict[str, Any] = {
            "short_id": short_id,
            "user_id": user_id,
            "role": role,
            "default_time_range": DEFAULT_TIME_RANGE_DAYS.get(role),
        }
        if rate is not None:
            payload["rate"] = rate
        if rate_description:
            payload["rate_description"] = rate_description
        if due_date:
            payload["due_date"] = due_date
        data = self._request("POST", "/assignments", json=payload, action="Assigning")
        return self._parse(Assignment, data)

    def delete_assignment(self, assignment_id: int) -> bool:
        return self._delete(f"/assignments/{assignment_id}")

    def list_users(self) -> list[User]:
        return self._parse_list(User, self._request("GET", "/users", action="Loading users"))

    def list_files(self, short_id: int) -> list[ShortFile]:
        data = self._request("GET", f"/files/short/{short_id}", action="Loading files")
        return self._parse_list(ShortFile, data)

    def delete_file(self, file_id: int) -> bool:
        return self._delete(f"/files/{file_id}")

    # Upload protocol

    def reserve_upload(
        self,
        short_id: int,
        file_type: str,
        file_name: str,
        file_size: int,
        mime_type: str,
    ) -> UploadTarget:
        payload = {
            "short_id": short_id,
            "file_type": _value(file_type),
            "file_name": file_name,
            "file_size": file_size,
            "mime_type": mime_type,
        }
        data = self._request("POST", "/files/upload-url", json=payload, action="Preparing upload")
        return self._parse(UploadTarget, data)

    def transfer_bytes(
        self,
        target: UploadTarget,
        source: UploadSource,
        on_progress: ProgressCallback | None = None,
        timeout_s: float | None = None,
    ) -> None:
        total = source.size

        def _body() -> Iterator[bytes]:
            loaded = 0
            for chunk in source.iter_chunks():
                yield chunk
                loaded += len(chunk)
                if on_progress is not None:
                    on_progress(loaded, total)

        headers = {"Content-Type": source.mime_type, "Content-Length": str(total)}
        headers.update(target.headers)
        try:
            response = self.http.put(
                target.upload_url,
                content=_body(),
                headers=headers,
                timeout=timeout_s or upload_timeout_s(total),
            )
        except httpx.TimeoutException as exc:
            raise TransportError("timeout", UPLOAD_TIMEOUT_MESSAGE) from exc
        except httpx.RequestError as exc:
            raise transport_error(exc, "Upload") from exc
        raise_for_status(response)

    def confirm_upload(
        self,
        short_id: int,
        file_type: str,
        storage_path: str,
        file_name: str,
        file_size: int,
        mime_type: str,
    ) -> ShortFile:
        payload = {
            "short_id": short_id,
            "file_type": _value(file_type),
            "storage_path": storage_path,
            "file_name": file_name,
            "file_size": file_size,
            "mime_type": mime_type,
        }
        data = self._request("POST", "/files/confirm-upload", json=payload, action="Confirming upload")
        return self._parse(ShortFile, data)

    # Downloads

    @contextmanager
    def open_download(self, url: str, timeout_s: float | None = None) -> Iterator[httpx.Response]:
        try:
            with self.http.stream("GET", url, timeout=timeout_s or self.settings.timeout_s) as response:
                if response.status_code >= 400:
                    response.read()
                    raise_for_status(response)
                yield response
        except httpx.RequestError as exc:
            raise transport_error(exc, "Download") from exc
