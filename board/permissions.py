from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from client.errors import ValidationError
from client.schemas import Assignment, AssignmentRole, FileType, Short, User

from .columns import (
    CLIPS_STAGES,
    EDITING_STAGES,
    ColumnType,
    get_column,
    required_artifacts,
)

SCRIPT_WRITER_ROLE = "script_writer"


class CardStage(str, Enum):
    UPLOADED = "uploaded"
    IN_PROGRESS = "in_progress"
    UNASSIGNED = "unassigned"


def stage_role(column: ColumnType | str) -> Optional[AssignmentRole]:
    """Assignment role responsible for a clips or editing stage."""
    column = ColumnType(column)
    if column in CLIPS_STAGES:
        return AssignmentRole.CLIPPER
    if column in EDITING_STAGES:
        return AssignmentRole.EDITOR
    return None


def active_assignment(
    short_id: int,
    role: AssignmentRole | str,
    assignments: Iterable[Assignment],
) -> Assignment | None:
    for assignment in assignments:
        if assignment.short_id == short_id and assignment.role == role:
            return assignment
    return None


def _is_admin(actor: User | None, is_admin: bool | None) -> bool:
    if is_admin is not None:
        return is_admin
    return actor is not None and actor.is_admin


def can_edit(
    column: ColumnType | str,
    short: Short,
    assignments: Iterable[Assignment],
    actor: User | None,
    is_admin: bool | None = None,
) -> bool:
    if _is_admin(actor, is_admin):
        return True
    if actor is None:
        return False
    column = ColumnType(column)
    if column is ColumnType.SCRIPT:
        writer = short.script_writer
        if writer is not None:
            return writer.id == actor.id
        return actor.has_role(SCRIPT_WRITER_ROLE)
    role = stage_role(column)
    if role is None:
        return False
    assignment = active_assignment(short.id, role, assignments)
    return assignment is not None and assignment.user_id == actor.id


def can_create(column: ColumnType | str, actor: User | None, is_admin: bool | None = None) -> bool:
    target = get_column(column)
    return target is not None and target.can_add and _is_admin(actor, is_admin)


def can_mark_complete(column: ColumnType | str, actor: User | None, is_admin: bool | None = None) -> bool:
    return stage_role(column) is not None and _is_admin(actor, is_admin)


def can_assign(actor: User | None, is_admin: bool | None = None) -> bool:
    return _is_admin(actor, is_admin)


def _stage_label(role: AssignmentRole) -> str:
    return "Clips ZIP file" if role is AssignmentRole.CLIPPER else "Final video file"


def check_mark_complete(column: ColumnType | str, short: Short, assignments: Iterable[Assignment]) -> Assignment:
    """Raise ValidationError unless the stage can be marked complete.

    Returns the assignment the payment will be booked against.
    """
    role = stage_role(column)
    if role is None:
        raise ValidationError("Only clips and editing stages can be marked complete.")
    for file_type in required_artifacts(column):
        if not short.has_file(file_type.value):
            raise ValidationError(f"Cannot mark complete. {_stage_label(role)} is required.")
    assignment = active_assignment(short.id, role, assignments)
    if assignment is None:
        raise ValidationError(f"Cannot mark complete. No {role.value} assignment found for this short.")
    if not assignment.rate or assignment.rate <= 0:
        raise ValidationError(
            f"Cannot mark complete. Rate must be set for the {role.value} assignment before marking complete."
        )
    return assignment


def downloadable_file_types(
    column: ColumnType | str,
    short: Short,
    assignments: Iterable[Assignment],
    actor: User | None,
    is_admin: bool | None = None,
) -> frozenset[FileType]:
    if _is_admin(actor, is_admin):
        return frozenset(FileType)
    column = ColumnType(column)
    if column in CLIPS_STAGES:
        return frozenset({FileType.SCRIPT, FileType.AUDIO, FileType.CLIPS_ZIP})
    if column in EDITING_STAGES:
        return frozenset({FileType.SCRIPT, FileType.AUDIO, FileType.CLIPS_ZIP, FileType.FINAL_VIDEO})
    if column is ColumnType.SCRIPT and can_edit(column, short, assignments, actor, False):
        return frozenset({FileType.SCRIPT, FileType.AUDIO})
    return frozenset()


def _uploaded_since(short: Short, file_type: FileType, since: datetime | None) -> bool:
    item = short.file_of_type(file_type.value)
    if item is None or since is None or item.uploaded_at is None:
        return False
    return item.uploaded_at >= since


def card_stage(column: ColumnType | str, short: Short, assignments: Iterable[Assignment]) -> CardStage | None:
    """Badge shown on a card in the script, clips and editing stages."""
    column = ColumnType(column)
    if column is ColumnType.SCRIPT:
        uploaded = short.has_file(FileType.SCRIPT.value) and short.has_file(FileType.AUDIO.value)
        assigned = short.script_writer is not None
    elif column is ColumnType.CLIPS:
        uploaded = short.has_file(FileType.CLIPS_ZIP.value)
        assigned = active_assignment(short.id, AssignmentRole.CLIPPER, assignments) is not None
    elif column is ColumnType.CLIP_CHANGES:
        uploaded = _uploaded_since(short, FileType.CLIPS_ZIP, short.entered_clip_changes_at)
        assigned = active_assignment(short.id, AssignmentRole.CLIPPER, assignments) is not None
    elif column is ColumnType.EDITING:
        uploaded = short.has_file(FileType.FINAL_VIDEO.value)
        assigned = active_assignment(short.id, AssignmentRole.EDITOR, assignments) is not None
    elif column is ColumnType.EDITING_CHANGES:
        uploaded = _uploaded_since(short, FileType.FINAL_VIDEO, short.entered_editing_changes_at)
        assigned = active_assignment(short.id, AssignmentRole.EDITOR, assignments) is not None
    else:
        return None

    if uploaded:
        return CardStage.UPLOADED
    if assigned:
        return CardStage.IN_PROGRESS
    return CardStage.UNASSIGNED
