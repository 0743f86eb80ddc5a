from __future__ import annotations

import math
from typing import Sequence

_MB = 1024 * 1024


def allot_ranges(sizes: Sequence[int]) -> list[tuple[int, int]]:
    """Split 0..100 into one sub-range per file, proportional to byte size."""
    total = sum(sizes)
    ranges: list[tuple[int, int]] = []
    done = 0
    for size in sizes:
        start = (done * 100) // total if total else 0
        done += size
        end = (done * 100) // total if total else 0
        ranges.append((start, end))
    return ranges


class BatchProgress:
    """Byte-accurate percentage for files transferred one after another.

    Each file may only move the percentage inside its own allotted range, and
    the reported value never goes down. With more than one file the value
    stays below 100 until ``finish()`` is called after the last confirm.
    """

    def __init__(self, sizes: Sequence[int]) -> None:
        self._sizes = [max(0, int(size)) for size in sizes]
        self._total = sum(self._sizes)
        self._ranges = allot_ranges(self._sizes)
        self._loaded = [0] * len(self._sizes)
        self._hold_back = len(self._sizes) > 1
        self._percent = 0

    @property
    def percent(self) -> int:
        return self._percent

    def update(self, index: int, loaded: int, total: int | None = None) -> int:
        size = self._sizes[index]
        self._loaded[index] = max(0, min(int(loaded), size))
        if not self._hold_back:
            denominator = total if total else size
            raw = (min(int(loaded), denominator) * 100) // denominator if denominator else 0
        elif self._total:
            start, end = self._ranges[index]
            raw = (sum(self._loaded) * 100) // self._total
            raw = max(start, min(raw, end))
            raw = min(raw, 99)
        else:
            raw = 0
        self._percent = max(self._percent, raw)
        return self._percent

    def complete_file(self, index: int) -> int:
        return self.update(index, self._sizes[index])

    def finish(self) -> int:
        self._loaded = list(self._sizes)
        self._percent = 100
        return self._percent


def upload_timeout_s(file_size: int) -> float:
    """One minute per 100 MB, between 5 and 30 minutes."""
    minutes = math.ceil((file_size / _MB) / 100) if file_size > 0 else 0
    return float(min(30, max(5, minutes)) * 60)
