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
from transfer.download import DownloadProgress, DownloadStreamer  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Download a short's file through its signed link")
    parser.add_argument("--short-id", type=int, required=True)
    parser.add_argument("--file-type", choices=[item.value for item in FileType], required=True)
    parser.add_argument("--out", default=".", help="Destination file or directory")
    args = parser.parse_args()

    settings = load_settings()
    setup_logging(settings.log_level)

    def _on_progress(progress: DownloadProgress) -> None:
        if progress.percent is None:
            print(f"\r[download] {progress.loaded} bytes", end="", flush=True)
        else:
            print(f"\r[download] {progress.percent}%", end="", flush=True)

    with BoardApiClient(settings) as api:
        try:
            short = api.get_short(args.short_id)
            item = short.file_of_type(args.file_type)
            if item is None:
                raise SystemExit(f"[download] short {args.short_id} has no {args.file_type} file")
            destination = Path(args.out)
            if destination.is_dir():
                destination = destination / item.file_name
            path = DownloadStreamer(api).save(item.download_url, destination, _on_progress)
        except BoardError as exc:
            print()
            raise SystemExit(f"[download] failed: {exc}") from exc

    print()
    print(f"[download] saved {path}")


if __name__ == "__main__":
    main()
