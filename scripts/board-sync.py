#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
import threading
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from board.columns import COLUMNS  # noqa: E402
from board.controller import BoardController  # noqa: E402
from board.logging_config import setup_logging  # noqa: E402
from board.permissions import card_stage  # noqa: E402
from board.sync import BoardSyncScheduler  # noqa: E402
from client.errors import BoardError  # noqa: E402
from client.http import BoardApiClient  # noqa: E402
from client.settings import load_settings  # noqa: E402


def _print_board(controller: BoardController) -> None:
    state = controller.state
    for column in COLUMNS:
        if column.id not in state.visible_columns:
            continue
        shorts = controller.shorts_in(column.id)
        print(f"[board] {column.title}: {len(shorts)}")
        for short in shorts:
            stage = card_stage(column.id, short, state.assignments)
            badge = f" ({stage.value})" if stage is not None else ""
            print(f"[board]   #{short.id} {short.title}{badge}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Poll the shorts board and print it")
    parser.add_argument("--once", action="store_true", help="Load once and exit")
    parser.add_argument("--assigned-only", action="store_true", help="Only shorts assigned to me")
    parser.add_argument("--interval", type=float, default=None, help="Poll interval in seconds")
    args = parser.parse_args()

    settings = load_settings()
    setup_logging(settings.log_level)

    with BoardApiClient(settings) as api:
        try:
            actor = api.get_me()
        except BoardError as exc:
            raise SystemExit(f"[board-sync] {exc}") from exc

        controller = BoardController(api, actor)
        if args.assigned_only:
            controller.set_assigned_only(True)
        elif not controller.reload():
            raise SystemExit(f"[board-sync] {controller.state.last_error}")
        _print_board(controller)
        if args.once:
            return

        def _refresh() -> None:
            if controller.poll():
                _print_board(controller)

        interval = args.interval or settings.poll_interval_s
        scheduler = BoardSyncScheduler(_refresh, controller.sync_guards, interval)
        print(f"[board-sync] polling every {interval}s as {actor.display_name}; Ctrl-C to stop")
        with scheduler:
            try:
                threading.Event().wait()
            except KeyboardInterrupt:
                print("[board-sync] stopped")


if __name__ == "__main__":
    main()
