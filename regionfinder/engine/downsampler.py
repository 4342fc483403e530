"""Positional downsampling.

Caps how many reads may share one alignment start. The first reads seen at a
start are kept, so the same ordered stream always yields the same subset.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from regionfinder.core.reads import Read


class PositionalDownsampler:
    """Stateful per-stream filter keeping at most ``max_reads_per_start`` reads per start.

    The stream must be ordered by alignment start within a contig. Only the
    count for the current ``(contig, start)`` is kept, so memory stays
    constant. ``max_reads_per_start == 0`` keeps everything.
    """

    __slots__ = ("max_reads_per_start", "_key", "_count")

    def __init__(self, max_reads_per_start: int) -> None:
        if max_reads_per_start < 0:
            raise ValueError(f"max_reads_per_start must be >= 0, got {max_reads_per_start}")
        self.max_reads_per_start = max_reads_per_start
        self._key: tuple[str, int] | None = None
        self._count = 0

    @property
    def enabled(self) -> bool:
        return self.max_reads_per_start > 0

    def accept(self, read: Read) -> bool:
        if not self.enabled:
            return True
        key = (read.contig, read.start)
        if key != self._key:
            self._key = key
            self._count = 0
        if self._count >= self.max_reads_per_start:
            return False
        self._count += 1
        return True

    def reset(self) -> None:
        self._key = None
        self._count = 0

    def filter(self, reads: Iterable[Read]) -> Iterator[Read]:
        for read in reads:
            if self.accept(read):
                yield read


def downsample(reads: Iterable[Read], max_reads_per_start: int) -> list[Read]:
    """Downsample an ordered read stream with a fresh :class:`PositionalDownsampler`."""
    if max_reads_per_start == 0:
        return list(reads)
    return list(PositionalDownsampler(max_reads_per_start).filter(reads))


__all__ = ["PositionalDownsampler", "downsample"]
