from __future__ import annotations

from client.schemas import Short

from .columns import ColumnType, column_at, get_column

# Forward steps into a "changes" column are reserved for admins.
_ESCALATIONS: dict[ColumnType, ColumnType] = {
    ColumnType.CLIPS: ColumnType.CLIP_CHANGES,
    ColumnType.EDITING: ColumnType.EDITING_CHANGES,
}

# Moves gated on a completion timestamp, keyed by source column.
_FAST_FORWARDS: dict[ColumnType, tuple[ColumnType, str]] = {
    ColumnType.CLIPS: (ColumnType.EDITING, "clips_completed_at"),
    ColumnType.CLIP_CHANGES: (ColumnType.EDITING, "clips_completed_at"),
    ColumnType.EDITING: (ColumnType.READY_TO_UPLOAD, "editing_completed_at"),
    ColumnType.EDITING_CHANGES: (ColumnType.READY_TO_UPLOAD, "editing_completed_at"),
}

_GATED_TARGETS = frozenset(_ESCALATIONS.values()) | frozenset(target for target, _ in _FAST_FORWARDS.values())


def _completed(short: Short | None, flag: str) -> bool:
    return short is not None and getattr(short, flag, None) is not None


def valid_targets(
    current: ColumnType | str,
    is_admin: bool = False,
    short: Short | None = None,
) -> frozenset[ColumnType]:
    """Columns a short in ``current`` may be dropped on.

    Backward steps are always allowed. Forward steps are allowed unless the
    next column is reached only by admin escalation or by a completion flag.
    """
    column = get_column(current)
    if column is None:
        return frozenset()

    targets: set[ColumnType] = set()
    previous = column_at(column.order - 1)
    if previous is not None:
        targets.add(previous.id)
    following = column_at(column.order + 1)
    if following is not None and following.id not in _GATED_TARGETS:
        targets.add(following.id)

    escalation = _ESCALATIONS.get(column.id)
    if is_admin and escalation is not None:
        targets.add(escalation)

    fast_forward = _FAST_FORWARDS.get(column.id)
    if fast_forward is not None:
        target, flag = fast_forward
        if _completed(short, flag):
            targets.add(target)

    if column.id is ColumnType.READY_TO_UPLOAD:
        targets.add(ColumnType.UPLOADED)

    targets.discard(column.id)
    return frozenset(targets)


def is_valid_move(
    current: ColumnType | str,
    target: ColumnType | str,
    is_admin: bool = False,
    short: Short | None = None,
) -> bool:
    try:
        target = ColumnType(target)
    except ValueError:
        return False
    return target in valid_targets(current, is_admin, short)
