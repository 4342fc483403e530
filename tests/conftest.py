"""Shared test fixtures and configuration for regionfinder tests."""

from __future__ import annotations

import threading

import pytest

from regionfinder.core.interval import GenomicInterval, SequenceDictionary
from regionfinder.core.reads import Read


class ConstantEvaluator:
    """Scores every locus with the same probability."""

    def __init__(self, value: float = 0.0) -> None:
        self.value = value

    def is_active(self, pileup, reference, features):
        return self.value


class SignalEvaluator:
    """Scores loci inside the given intervals with ``high``, all others with ``low``."""

    def __init__(self, intervals: list[GenomicInterval], high: float = 0.9, low: float = 0.0) -> None:
        self.intervals = intervals
        self.high = high
        self.low = low

    def is_active(self, pileup, reference, features):
        locus = pileup.locus
        if any(interval.contains(locus) for interval in self.intervals):
            return self.high
        return self.low


class TrackingFactory:
    """Evaluator factory recording how many evaluators were built and closed."""

    def __init__(self, value: float = 0.0) -> None:
        self.value = value
        self.created = 0
        self.closed = 0
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            self.created += 1
        return _ClosingEvaluator(self)


class _ClosingEvaluator(ConstantEvaluator):
    def __init__(self, factory: TrackingFactory) -> None:
        super().__init__(factory.value)
        self._factory = factory

    def close(self) -> None:
        with self._factory._lock:
            self._factory.closed += 1


def tile_reads(
    contig: str,
    first: int,
    last: int,
    read_length: int = 50,
    step: int = 10,
    copies: int = 1,
    prefix: str = "r",
) -> list[Read]:
    """Ungapped reads of ``read_length`` every ``step`` loci covering ``first..last``."""
    reads = []
    starts = list(range(first, last - read_length + 2, step))
    if not starts or starts[-1] + read_length - 1 < last:
        starts.append(max(first, last - read_length + 1))
    for start in starts:
        for copy in range(copies):
            reads.append(
                Read(
                    name=f"{prefix}{start}-{copy}",
                    contig=contig,
                    start=start,
                    cigar=f"{read_length}M",
                    bases="A" * read_length,
                )
            )
    return reads


@pytest.fixture
def dictionary() -> SequenceDictionary:
    """Two small contigs."""
    return SequenceDictionary([("chr1", 1000), ("chr2", 500)])


@pytest.fixture
def chr1_reads() -> list[Read]:
    """Reads covering every locus of chr1 (length 1000)."""
    return tile_reads("chr1", 1, 1000)


@pytest.fixture
def make_reads():
    """Factory fixture for tiled reads."""
    return tile_reads
