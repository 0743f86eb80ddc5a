from .columns import COLUMNS, Column, ColumnType, column_to_status, status_to_column
from .controller import BoardController, plan_submission
from .permissions import CardStage, can_edit, card_stage, check_mark_complete
from .state import BoardState, SyncGuards, reduce
from .sync import BoardSyncScheduler
from .transitions import is_valid_move, valid_targets

__all__ = [
    "COLUMNS",
    "Column",
    "ColumnType",
    "status_to_column",
    "column_to_status",
    "valid_targets",
    "is_valid_move",
    "can_edit",
    "check_mark_complete",
    "card_stage",
    "CardStage",
    "BoardState",
    "SyncGuards",
    "reduce",
    "BoardController",
    "plan_submission",
    "BoardSyncScheduler",
]
