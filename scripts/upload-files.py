#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from board.logging_config import setup_logging  # noqa: E402
from client.errors import BoardError  # noqa: E402
from client.http import BoardApiClient  # noqa: E402
from client.schemas import FileType  # noqa: E402
from client.settings import load_settings  # noqa: E402
from transfer.sources import UploadSource  # noqa: E402
from transfer.upload import UploadCoordinator, UploadItem, UploadPhase, UploadState  # noqa: E402


def _parse_item(raw: str) -> UploadItem:
    file_type, sep, path = raw.partition("=")
    if not sep or not path:
        raise SystemExit(f"[upload] expected TYPE=PATH, got {raw!r}")
    try:
        kind = FileType(file_type.strip())
    except ValueError as exc:
        choices = ", ".join(item.value for item in FileType)
        raise SystemExit(f"[upload] unknown file type {file_type!r} (choose from {choices})") from exc
    try:
        source = UploadSource.from_path(path.strip())
    except FileNotFoundError as exc:
        raise SystemExit(f"[upload] {exc}") from exc
    return UploadItem(kind, source)


def main() -> None:
    parser = argparse.ArgumentParser(description="Upload files to a short (reserve, transfer, confirm)")
    parser.add_argument("--short-id", type=int, required=True)
    parser.add_argument(
        "--file",
        action="append",
        required=True,
        help="TYPE=PATH, e.g. script=script.pdf; repeat for a batch",
    )
    args = parser.parse_args()

    settings = load_settings()
    setup_logging(settings.log_level)
    items = [_parse_item(raw) for raw in args.file]

    last = {"progress": -1}

    def _on_state(state: UploadState) -> None:
        if state.phase is UploadPhase.TRANSFERRING and state.progress != last["progress"]:
            last["progress"] = state.progress
            print(f"[upload] {state.file_name}: {state.progress}%")
        elif state.phase in {UploadPhase.CONFIRMING, UploadPhase.AMBIGUOUS}:
            print(f"[upload] {state.file_name}: {state.phase.value}")

    with BoardApiClient(settings) as api:
        coordinator = UploadCoordinator(api, on_state=_on_state, success_hold_s=0)
        try:
            uploaded = coordinator.submit(args.short_id, items)
        except BoardError as exc:
            raise SystemExit(f"[upload] failed: {exc}") from exc

    for record in uploaded:
        print(f"[upload] ok id={record.id} type={record.file_type} name={record.file_name}")


if __name__ == "__main__":
    main()
