from __future__ import annotations

from dataclasses import dataclass
import io
import mimetypes
from pathlib import Path
from typing import BinaryIO, Callable, Iterator

DEFAULT_CHUNK_BYTES = 256 * 1024


@dataclass(frozen=True)
class UploadSource:
    name: str
    size: int
    mime_type: str
    opener: Callable[[], BinaryIO]

    @classmethod
    def from_path(cls, path: str | Path, mime_type: str | None = None) -> "UploadSource":
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Upload source not found: {path}")
        guessed, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            size=path.stat().st_size,
            mime_type=mime_type or guessed or "application/octet-stream",
            opener=lambda: path.open("rb"),
        )

    @classmethod
    def from_bytes(cls, name: str, data: bytes, mime_type: str = "application/octet-stream") -> "UploadSource":
        return cls(name=name, size=len(data), mime_type=mime_type, opener=lambda: io.BytesIO(data))

    def iter_chunks(self, chunk_size: int = DEFAULT_CHUNK_BYTES) -> Iterator[bytes]:
        with self.opener() as handle:
            while True:
                chunk = handle.read(chunk_size)
                if not chunk:
                    break
                yield chunk
