from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from client.schemas import FileType


class ColumnType(str, Enum):
    IDEA = "idea"
    SCRIPT = "script"
    CLIPS = "clips"
    CLIP_CHANGES = "clip_changes"
    EDITING = "editing"
    EDITING_CHANGES = "editing_changes"
    READY_TO_UPLOAD = "ready_to_upload"
    UPLOADED = "uploaded"


@dataclass(frozen=True)
class Column:
    id: ColumnType
    title: str
    order: int
    can_add: bool = False


COLUMNS: tuple[Column, ...] = (
    Column(ColumnType.IDEA, "Idea", 0, can_add=True),
    Column(ColumnType.SCRIPT, "Script", 1, can_add=True),
    Column(ColumnType.CLIPS, "Clips", 2),
    Column(ColumnType.CLIP_CHANGES, "Clip Changes", 3),
    Column(ColumnType.EDITING, "Editing", 4),
    Column(ColumnType.EDITING_CHANGES, "Editing Changes", 5),
    Column(ColumnType.READY_TO_UPLOAD, "Ready to Upload", 6),
    Column(ColumnType.UPLOADED, "Uploaded/Scheduled", 7),
)

# Persisted status values, including legacy ones, and the column they render in.
STATUSES: tuple[str, ...] = (
    "idea",
    "script",
    "clipping",
    "clips",
    "clip_changes",
    "editing",
    "editing_changes",
    "completed",
    "ready_to_upload",
    "uploaded",
)

_STATUS_TO_COLUMN: dict[str, ColumnType] = {
    "idea": ColumnType.IDEA,
    "script": ColumnType.SCRIPT,
    "clipping": ColumnType.CLIPS,
    "clips": ColumnType.CLIPS,
    "clip_changes": ColumnType.CLIP_CHANGES,
    "editing": ColumnType.EDITING,
    "editing_changes": ColumnType.EDITING_CHANGES,
    "completed": ColumnType.READY_TO_UPLOAD,
    "ready_to_upload": ColumnType.READY_TO_UPLOAD,
    "uploaded": ColumnType.UPLOADED,
}

_BY_ID = {column.id: column for column in COLUMNS}
_BY_ORDER = {column.order: column for column in COLUMNS}

CLIPS_STAGES = frozenset({ColumnType.CLIPS, ColumnType.CLIP_CHANGES})
EDITING_STAGES = frozenset({ColumnType.EDITING, ColumnType.EDITING_CHANGES})
CHANGES_STAGES = frozenset({ColumnType.CLIP_CHANGES, ColumnType.EDITING_CHANGES})

# Files a stage must have before its work counts as delivered.
STAGE_ARTIFACTS: dict[ColumnType, tuple[FileType, ...]] = {
    ColumnType.SCRIPT: (FileType.SCRIPT, FileType.AUDIO),
    ColumnType.CLIPS: (FileType.CLIPS_ZIP,),
    ColumnType.CLIP_CHANGES: (FileType.CLIPS_ZIP,),
    ColumnType.EDITING: (FileType.FINAL_VIDEO,),
    ColumnType.EDITING_CHANGES: (FileType.FINAL_VIDEO,),
}


def status_to_column(status: str | None) -> ColumnType:
    if not status:
        return ColumnType.IDEA
    return _STATUS_TO_COLUMN.get(status.strip().lower(), ColumnType.IDEA)


def column_to_status(column: ColumnType | str) -> str:
    return ColumnType(column).value


def get_column(column: ColumnType | str) -> Column | None:
    try:
        return _BY_ID[ColumnType(column)]
    except ValueError:
        return None


def column_at(order: int) -> Column | None:
    return _BY_ORDER.get(order)


def required_artifacts(column: ColumnType | str) -> tuple[FileType, ...]:
    try:
        return STAGE_ARTIFACTS.get(ColumnType(column), ())
    except ValueError:
        return ()
