from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Callable

import httpx

from client.errors import ValidationError

if TYPE_CHECKING:
    from client.http import BoardApiClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DownloadProgress:
    loaded: int
    total: int | None = None

    @property
    def percent(self) -> int | None:
        """``None`` while the size is unknown (indeterminate)."""
        if not self.total:
            return None
        return min(100, (self.loaded * 100) // self.total)


ProgressListener = Callable[[DownloadProgress], None]


def _content_length(response: httpx.Response) -> int | None:
    raw = response.headers.get("content-length")
    if raw is None:
        return None
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value > 0 else None


class DownloadStreamer:
    def __init__(self, api: "BoardApiClient", chunk_size: int | None = None, timeout_s: float | None = None) -> None:
        self._api = api
        self._chunk_size = chunk_size or api.settings.download_chunk_bytes
        self._timeout_s = timeout_s

    def fetch(self, url: str | None, on_progress: ProgressListener | None = None) -> bytes:
        if not url:
            raise ValidationError("Download link is not available. Please try again later.")
        chunks: list[bytes] = []
        loaded = 0
        with self._api.open_download(url, self._timeout_s) as response:
            total = _content_length(response)
            if on_progress is not None:
                on_progress(DownloadProgress(0, total))
            for chunk in response.iter_bytes(self._chunk_size):
                chunks.append(chunk)
                loaded += len(chunk)
                if on_progress is not None:
                    on_progress(DownloadProgress(loaded, total))
        logger.info("Downloaded %s bytes", loaded)
        return b"".join(chunks)

    def save(self, url: str | None, destination: str | Path, on_progress: ProgressListener | None = None) -> Path:
        data = self.fetch(url, on_progress)
        path = Path(destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("Saved %s", path)
        return path
