from __future__ import annotations

import logging
from pathlib import Path
import threading
from typing import Callable, Mapping

from client.errors import (
    BoardError,
    PermissionDeniedError,
    ValidationError,
    error_message,
)
from client.http import BoardApiClient
from client.schemas import Assignment, AssignmentRole, FileType, Short, ShortFile, User
from transfer.download import DownloadProgress, DownloadStreamer
from transfer.sources import UploadSource
from transfer.upload import UploadCoordinator, UploadItem, UploadState

from .columns import (
    CLIPS_STAGES,
    COLUMNS,
    EDITING_STAGES,
    ColumnType,
    column_to_status,
    required_artifacts,
    status_to_column,
)
from .permissions import (
    active_assignment,
    can_assign,
    can_create,
    can_edit,
    can_mark_complete,
    check_mark_complete,
    downloadable_file_types,
)
from .state import (
    Action,
    AssignedOnlyToggled,
    BoardState,
    ContentModalClosed,
    ContentModalOpened,
    ContentShortRefreshed,
    CreateModalClosed,
    CreateModalOpened,
    ErrorDismissed,
    ErrorRaised,
    LoadFailed,
    LoadStarted,
    LoadSucceeded,
    SyncGuards,
    UploadStateChanged,
    ViewToggled,
    reduce,
)
from .transitions import is_valid_move

logger = logging.getLogger(__name__)

Notify = Callable[[str, str], None]
Confirm = Callable[[str], bool]

_MISSING_FILE_MESSAGES = {
    ColumnType.SCRIPT: "Please upload both a script PDF and an audio file.",
    ColumnType.CLIPS: "Please select a clips ZIP file to upload.",
    ColumnType.CLIP_CHANGES: "Please select a clips ZIP file to upload.",
    ColumnType.EDITING: "Please select a final video file to upload.",
    ColumnType.EDITING_CHANGES: "Please select a final video file to upload.",
}


_NOTICE_LEVELS = {"error": logging.ERROR, "warning": logging.WARNING}


def _log_notice(level: str, message: str) -> None:
    logger.log(_NOTICE_LEVELS.get(level, logging.INFO), message)


def _type_value(file_type: FileType | str) -> str:
    return getattr(file_type, "value", file_type)


def plan_submission(
    column: ColumnType | str,
    short: Short,
    files: Mapping[FileType | str, UploadSource],
) -> list[UploadItem]:
    """Validate the files picked in a content modal and order them for upload.

    Every artifact the stage needs must be either picked now or already on the
    short; nothing outside the stage's artifacts is accepted.
    """
    column = ColumnType(column)
    needed = required_artifacts(column)
    if not needed:
        raise ValidationError("Files cannot be uploaded in this column.")
    picked = {_type_value(file_type): source for file_type, source in files.items() if source is not None}
    allowed = {file_type.value for file_type in needed}
    unexpected = sorted(set(picked) - allowed)
    if unexpected:
        raise ValidationError(f"Unexpected file type for this stage: {', '.join(unexpected)}")
    if not picked:
        raise ValidationError(_MISSING_FILE_MESSAGES[column])
    for file_type in needed:
        if file_type.value not in picked and not short.has_file(file_type.value):
            raise ValidationError(_MISSING_FILE_MESSAGES[column])
    for source in picked.values():
        if source.size <= 0:
            raise ValidationError(f"{source.name} is empty.")
    return [UploadItem(file_type, picked[file_type.value]) for file_type in needed if file_type.value in picked]


class BoardController:
    """Owns the board state and every user-facing action on it.

    Failures are caught here and routed to ``notify(level, message)``;
    destructive actions ask ``confirm(prompt)`` first.
    """

    def __init__(
        self,
        api: BoardApiClient,
        actor: User,
        *,
        notify: Notify | None = None,
        confirm: Confirm | None = None,
        streamer: DownloadStreamer | None = None,
        upload_hold_s: float | None = None,
    ) -> None:
        self._api = api
        self._actor = actor
        self._notify = notify or _log_notice
        self._confirm = confirm or (lambda _prompt: False)
        self._streamer = streamer or DownloadStreamer(api)
        self._lock = threading.Lock()
        self._state = BoardState()
        self._uploader = UploadCoordinator(
            api,
            on_state=self._on_upload_state,
            success_hold_s=api.settings.upload_hold_s if upload_hold_s is None else upload_hold_s,
        )

    @property
    def state(self) -> BoardState:
        return self._state

    @property
    def actor(self) -> User:
        return self._actor

    @property
    def is_admin(self) -> bool:
        return self._actor.is_admin

    def dispatch(self, action: Action) -> BoardState:
        with self._lock:
            self._state = reduce(self._state, action)
            return self._state

    def sync_guards(self) -> SyncGuards:
        return self._state.sync_guards()

    def _fail(self, exc: BaseException, default: str) -> None:
        message = error_message(exc, default)
        level = "warning" if isinstance(exc, ValidationError) else "error"
        logger.warning("%s: %s", default, message)
        self.dispatch(ErrorRaised(message))
        self._notify(level, message)

    def dismiss_error(self) -> None:
        self.dispatch(ErrorDismissed())

    # Loading

    def _load(self) -> bool:
        assigned_only = self._state.assigned_only
        try:
            shorts = self._api.list_shorts(assigned_only)
            if self.is_admin:
                assignments = self._api.list_assignments()
                users = self._api.list_users()
            else:
                assignments = self._api.list_public_assignments()
                users = []
        except BoardError as exc:
            message = error_message(exc, "Failed to load data")
            logger.warning("Board load failed: %s", message)
            self.dispatch(LoadFailed(message))
            return False
        self.dispatch(LoadSucceeded(tuple(shorts), tuple(assignments), tuple(users)))
        logger.debug("Loaded %s shorts, %s assignments", len(shorts), len(assignments))
        return True

    def reload(self) -> bool:
        self.dispatch(LoadStarted())
        return self._load()

    def poll(self) -> bool:
        """Scheduled refresh; skipped while a modal is open or a load is running."""
        with self._lock:
            if not self._state.sync_guards().may_refresh:
                return False
            self._state = reduce(self._state, LoadStarted())
        return self._load()

    def set_assigned_only(self, enabled: bool) -> bool:
        self.dispatch(AssignedOnlyToggled(enabled))
        return self.reload()

    def toggle_view(self, view: str) -> frozenset[ColumnType]:
        return self.dispatch(ViewToggled(view)).visible_columns

    def shorts_in(self, column: ColumnType | str) -> list[Short]:
        column = ColumnType(column)
        return [short for short in self._state.shorts if status_to_column(short.status) is column]

    def visible_board(self) -> dict[ColumnType, list[Short]]:
        visible = self._state.visible_columns
        return {column.id: self.shorts_in(column.id) for column in COLUMNS if column.id in visible}

    # Drag and drop

    def drop(self, short_id: int, target: ColumnType | str) -> bool:
        """Commit a drag-and-drop move. Invalid drops are ignored without notice."""
        if not self.is_admin:
            logger.debug("Drop of short %s ignored: dragging is admin only", short_id)
            return False
        short = self._state.find_short(short_id)
        if short is None:
            return False
        current = status_to_column(short.status)
        if not is_valid_move(current, target, self.is_admin, short):
            logger.debug("Drop of short %s from %s to %s rejected", short_id, current.value, _type_value(target))
            return False
        try:
            self._api.update_status(short_id, column_to_status(target))
        except BoardError as exc:
            self._fail(exc, "Failed to update short status")
            return False
        self.reload()
        return True

    # Create

    def open_create(self, column: ColumnType | str) -> bool:
        column = ColumnType(column)
        if not can_create(column, self._actor):
            return False
        self.dispatch(CreateModalOpened(column))
        return True

    def close_create(self) -> None:
        self.dispatch(CreateModalClosed())

    def create_short(self, title: str, description: str = "", idea: str = "") -> Short | None:
        column = self._state.create_column
        try:
            if column is None or not can_create(column, self._actor):
                raise PermissionDeniedError()
            if not title or not title.strip():
                raise ValidationError("Title is required.")
            short = self._api.create_short(title.strip(), description, idea)
            if column is ColumnType.SCRIPT:
                short = self._api.update_status(short.id, column_to_status(ColumnType.SCRIPT))
        except BoardError as exc:
            self._fail(exc, "Failed to create short. Please try again.")
            return None
        self.dispatch(CreateModalClosed())
        self.reload()
        return short

    # Content modal

    def open_content(self, short_id: int, column: ColumnType | str | None = None) -> bool:
        short = self._state.find_short(short_id)
        if short is None:
            return False
        column = ColumnType(column) if column is not None else status_to_column(short.status)
        editable = can_edit(column, short, self._state.assignments, self._actor)
        if not editable and (column in CLIPS_STAGES or column in EDITING_STAGES):
            return False
        try:
            short = self._api.get_short(short_id)
        except BoardError as exc:
            logger.warning("Falling back to board copy of short %s: %s", short_id, exc)
        self.dispatch(ContentModalOpened(short, column, editable))
        return True

    def close_content(self) -> bool:
        if self._state.uploading:
            return False
        self.dispatch(ContentModalClosed())
        return True

    def _refresh_content_short(self) -> None:
        modal = self._state.content_modal
        if modal is None:
            return
        try:
            short = self._api.get_short(modal.short.id)
        except BoardError as exc:
            logger.warning("Could not refresh short %s: %s", modal.short.id, exc)
            return
        self.dispatch(ContentShortRefreshed(short))

    def _on_upload_state(self, upload: UploadState) -> None:
        self.dispatch(UploadStateChanged(upload.busy, upload.progress))

    def submit_content(self, files: Mapping[FileType | str, UploadSource]) -> list[ShortFile] | None:
        modal = self._state.content_modal
        try:
            if modal is None or not modal.editable:
                raise PermissionDeniedError()
            items = plan_submission(modal.column, modal.short, files)
            uploaded = self._uploader.submit(modal.short.id, items)
        except BoardError as exc:
            self._fail(exc, "Failed to save content. Please try again.")
            return None
        self.dispatch(ContentModalClosed())
        self.reload()
        return uploaded

    # Assignments

    def assign(
        self,
        short_id: int,
        role: AssignmentRole | str,
        user_id: int,
        *,
        rate: float | None = None,
        rate_description: str | None = None,
    ) -> Assignment | None:
        role = _type_value(role)
        try:
            if not can_assign(self._actor):
                raise PermissionDeniedError()
            # Fresh read so a stale board never leaves two active assignments.
            existing = active_assignment(short_id, role, self._api.list_assignments())
            if existing is not None:
                self._api.delete_assignment(existing.id)
            assignment = self._api.create_assignment(
                short_id,
                user_id,
                role,
                rate=rate,
                rate_description=rate_description,
            )
        except BoardError as exc:
            self._fail(exc, "Failed to assign user")
            return None
        self.reload()
        return assignment

    def unassign(self, assignment_id: int) -> bool:
        try:
            if not can_assign(self._actor):
                raise PermissionDeniedError()
            if not self._confirm("Remove this assignment?"):
                return False
            self._api.delete_assignment(assignment_id)
        except BoardError as exc:
            self._fail(exc, "Failed to remove assignment")
            return False
        self.reload()
        return True

    # Mark complete

    def mark_complete(self) -> Short | None:
        modal = self._state.content_modal
        try:
            if modal is None or not can_mark_complete(modal.column, self._actor):
                raise PermissionDeniedError()
            check_mark_complete(modal.column, modal.short, self._state.assignments)
            if modal.column in CLIPS_STAGES:
                short = self._api.mark_clips_complete(modal.short.id)
            else:
                short = self._api.mark_editing_complete(modal.short.id)
        except BoardError as exc:
            self._fail(exc, "Failed to mark complete")
            return None
        self.dispatch(ContentShortRefreshed(short))
        self.reload()
        return short

    # Deletes

    def delete_short(self, short_id: int) -> bool:
        try:
            if not self.is_admin:
                raise PermissionDeniedError()
            if not self._confirm("Delete this short? This cannot be undone."):
                return False
            self._api.delete_short(short_id)
        except BoardError as exc:
            self._fail(exc, "Failed to delete short")
            return False
        self.reload()
        return True

    def delete_file(self, file_id: int) -> bool:
        """Delete a file of the short in the open content modal.

        Admins may delete any file; everyone else needs an editable modal
        showing the short the file belongs to.
        """
        modal = self._state.content_modal
        try:
            if not self.is_admin:
                if modal is None or not modal.editable:
                    raise PermissionDeniedError()
                if file_id not in {item.id for item in modal.short.files}:
                    raise PermissionDeniedError()
            if not self._confirm("Delete this file?"):
                return False
            self._api.delete_file(file_id)
        except BoardError as exc:
            self._fail(exc, "Failed to delete file")
            return False
        self._refresh_content_short()
        self.reload()
        return True

    # Downloads

    def download_file(
        self,
        item: ShortFile,
        destination: str | Path,
        on_progress: Callable[[DownloadProgress], None] | None = None,
    ) -> Path | None:
        modal = self._state.content_modal
        try:
            if modal is not None:
                allowed = downloadable_file_types(modal.column, modal.short, self._state.assignments, self._actor)
                if item.file_type not in {file_type.value for file_type in allowed}:
                    raise PermissionDeniedError()
            path = Path(destination)
            if path.is_dir():
                path = path / item.file_name
            return self._streamer.save(item.download_url, path, on_progress)
        except BoardError as exc:
            self._fail(exc, "Failed to download file")
            return None
