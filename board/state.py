from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Union

from client.schemas import Assignment, Short, User

from .columns import COLUMNS, ColumnType

ALL_COLUMNS = frozenset(column.id for column in COLUMNS)

# View toggles and the column groups they show or hide.
VIEW_GROUPS: dict[str, tuple[ColumnType, ...]] = {
    "idea": (ColumnType.IDEA,),
    "script": (ColumnType.SCRIPT,),
    "clipper": (ColumnType.CLIPS, ColumnType.CLIP_CHANGES),
    "editing": (ColumnType.EDITING, ColumnType.EDITING_CHANGES),
    "upload": (ColumnType.READY_TO_UPLOAD,),
}


@dataclass(frozen=True)
class ContentModal:
    short: Short
    column: ColumnType
    editable: bool


@dataclass(frozen=True)
class SyncGuards:
    """Snapshot the scheduler reads before each refresh."""

    loading: bool = False
    modal_open: bool = False

    @property
    def may_refresh(self) -> bool:
        return not (self.loading or self.modal_open)


@dataclass(frozen=True)
class BoardState:
    shorts: tuple[Short, ...] = ()
    assignments: tuple[Assignment, ...] = ()
    users: tuple[User, ...] = ()
    loading: bool = False
    assigned_only: bool = False
    visible_columns: frozenset[ColumnType] = ALL_COLUMNS
    create_column: ColumnType | None = None
    content_modal: ContentModal | None = None
    uploading: bool = False
    upload_progress: int = 0
    last_error: str | None = None

    @property
    def modal_open(self) -> bool:
        return self.create_column is not None or self.content_modal is not None

    def sync_guards(self) -> SyncGuards:
        return SyncGuards(loading=self.loading, modal_open=self.modal_open)

    def find_short(self, short_id: int) -> Short | None:
        for short in self.shorts:
            if short.id == short_id:
                return short
        return None


@dataclass(frozen=True)
class LoadStarted:
    pass


@dataclass(frozen=True)
class LoadSucceeded:
    shorts: tuple[Short, ...]
    assignments: tuple[Assignment, ...]
    users: tuple[User, ...] = ()


@dataclass(frozen=True)
class LoadFailed:
    message: str


@dataclass(frozen=True)
class CreateModalOpened:
    column: ColumnType


@dataclass(frozen=True)
class CreateModalClosed:
    pass


@dataclass(frozen=True)
class ContentModalOpened:
    short: Short
    column: ColumnType
    editable: bool


@dataclass(frozen=True)
class ContentModalClosed:
    pass


@dataclass(frozen=True)
class ContentShortRefreshed:
    short: Short


@dataclass(frozen=True)
class AssignedOnlyToggled:
    enabled: bool


@dataclass(frozen=True)
class ViewToggled:
    view: str


@dataclass(frozen=True)
class UploadStateChanged:
    uploading: bool
    progress: int = 0


@dataclass(frozen=True)
class ErrorRaised:
    message: str


@dataclass(frozen=True)
class ErrorDismissed:
    pass


Action = Union[
    LoadStarted,
    LoadSucceeded,
    LoadFailed,
    CreateModalOpened,
    CreateModalClosed,
    ContentModalOpened,
    ContentModalClosed,
    ContentShortRefreshed,
    AssignedOnlyToggled,
    ViewToggled,
    UploadStateChanged,
    ErrorRaised,
    ErrorDismissed,
]


def _toggle_view(visible: frozenset[ColumnType], view: str) -> frozenset[ColumnType]:
    group = VIEW_GROUPS.get(view)
    if not group:
        return visible
    if all(column in visible for column in group):
        return visible - frozenset(group)
    return visible | frozenset(group)


def _content_refreshed(state: BoardState, action: ContentShortRefreshed) -> BoardState:
    modal = state.content_modal
    if modal is None or modal.short.id != action.short.id:
        return state
    return replace(state, content_modal=replace(modal, short=action.short))


def _content_closed(state: BoardState, _action: ContentModalClosed) -> BoardState:
    if state.uploading:
        return state
    return replace(state, content_modal=None)


_REDUCERS: dict[type, Callable[[BoardState, object], BoardState]] = {
    LoadStarted: lambda state, _a: replace(state, loading=True),
    LoadSucceeded: lambda state, a: replace(
        state,
        loading=False,
        shorts=tuple(a.shorts),
        assignments=tuple(a.assignments),
        users=tuple(a.users),
    ),
    LoadFailed: lambda state, a: replace(state, loading=False, last_error=a.message),
    CreateModalOpened: lambda state, a: replace(state, create_column=a.column),
    CreateModalClosed: lambda state, _a: replace(state, create_column=None),
    ContentModalOpened: lambda state, a: replace(
        state,
        content_modal=ContentModal(short=a.short, column=a.column, editable=a.editable),
    ),
    ContentModalClosed: _content_closed,
    ContentShortRefreshed: _content_refreshed,
    AssignedOnlyToggled: lambda state, a: replace(state, assigned_only=a.enabled),
    ViewToggled: lambda state, a: replace(state, visible_columns=_toggle_view(state.visible_columns, a.view)),
    UploadStateChanged: lambda state, a: replace(state, uploading=a.uploading, upload_progress=a.progress),
    ErrorRaised: lambda state, a: replace(state, last_error=a.message),
    ErrorDismissed: lambda state, _a: replace(state, last_error=None),
}


def reduce(state: BoardState, action: Action) -> BoardState:
    """Pure (state, action) -> state transition."""
    handler = _REDUCERS.get(type(action))
    if handler is None:
        raise TypeError(f"Unknown board action: {type(action).__name__}")
    return handler(state, action)
