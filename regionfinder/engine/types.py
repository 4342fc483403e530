"""Shared engine datatypes."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum

import numpy as np

from regionfinder.core.interval import GenomicInterval, ShardBoundary
from regionfinder.core.reads import Read


class ActivityResult(Enum):
    """Auxiliary signal an evaluator may attach to a locus."""

    NONE = "none"
    HIGH_QUALITY_SOFT_CLIPS = "high_quality_soft_clips"


@dataclass(frozen=True, slots=True)
class ActivityProfileState:
    """Activity probability of a single locus.

    ``result_value`` is only meaningful for ``HIGH_QUALITY_SOFT_CLIPS`` where
    it holds the number of high-quality soft-clipped bases; the segmenter
    spreads such a locus' probability over that many neighbours.
    """

    locus: GenomicInterval
    is_active_prob: float
    result_state: ActivityResult = ActivityResult.NONE
    result_value: float = 0.0

    def __post_init__(self) -> None:
        if self.locus.length != 1:
            raise ValueError(f"Activity state must cover a single locus, got {self.locus}")
        if not 0.0 <= self.is_active_prob <= 1.0:
            raise ValueError(f"is_active_prob must be in [0, 1], got {self.is_active_prob}")
        if self.result_value < 0:
            raise ValueError(f"result_value must be non-negative, got {self.result_value}")

    @property
    def contig(self) -> str:
        return self.locus.contig

    @property
    def position(self) -> int:
        return self.locus.start


@dataclass(frozen=True, slots=True, eq=False)
class ActivityProfileStateRange:
    """Activity states of one shard's core interval, stored as arrays.

    This is the record that crosses the regroup-by-contig barrier of the
    strict pipeline, so it is kept compact: one float per locus plus one
    soft-clip count per locus. Loci without a state (a shard that had no
    reads) hold ``NaN`` as probability.
    """

    boundary: ShardBoundary
    probabilities: np.ndarray
    soft_clips: np.ndarray

    def __post_init__(self) -> None:
        n_loci = self.boundary.interval.length
        if self.probabilities.shape != (n_loci,) or self.soft_clips.shape != (n_loci,):
            raise ValueError(
                f"State range for {self.boundary.interval} needs {n_loci} values, "
                f"got {self.probabilities.shape} and {self.soft_clips.shape}"
            )

    def __len__(self) -> int:
        return int(self.probabilities.shape[0])

    @property
    def contig(self) -> str:
        return self.boundary.contig

    @property
    def interval(self) -> GenomicInterval:
        return self.boundary.interval

    @property
    def n_states(self) -> int:
        return int(np.count_nonzero(~np.isnan(self.probabilities)))

    def states(self) -> Iterator[ActivityProfileState]:
        contig = self.boundary.contig
        start = self.boundary.start
        for idx in range(len(self)):
            prob = float(self.probabilities[idx])
            if np.isnan(prob):
                continue
            clips = float(self.soft_clips[idx])
            yield ActivityProfileState(
                GenomicInterval(contig, start + idx, start + idx),
                prob,
                ActivityResult.HIGH_QUALITY_SOFT_CLIPS if clips > 0 else ActivityResult.NONE,
                clips,
            )

    @classmethod
    def from_states(
        cls, boundary: ShardBoundary, states: Iterable[ActivityProfileState]
    ) -> ActivityProfileStateRange:
        n_loci = boundary.interval.length
        probabilities = np.full(n_loci, np.nan, dtype=np.float64)
        soft_clips = np.zeros(n_loci, dtype=np.float64)
        for state in states:
            idx = state.position - boundary.start
            if state.contig != boundary.contig or not 0 <= idx < n_loci:
                raise ValueError(f"State at {state.locus} lies outside {boundary.interval}")
            probabilities[idx] = state.is_active_prob
            if state.result_state is ActivityResult.HIGH_QUALITY_SOFT_CLIPS:
                soft_clips[idx] = state.result_value
        return cls(boundary, probabilities, soft_clips)


@dataclass(frozen=True, slots=True)
class AssemblyRegion:
    """A contiguous interval classified active or inactive.

    The region owns its :class:`ShardBoundary`: the core span is
    ``boundary.interval`` and the extended (padded) span is
    ``boundary.padded``. ``reads`` is ``None`` for a readless region.
    """

    boundary: ShardBoundary
    is_active: bool
    reads: tuple[Read, ...] | None = None

    @property
    def contig(self) -> str:
        return self.boundary.contig

    @property
    def span(self) -> GenomicInterval:
        return self.boundary.interval

    @property
    def extended_span(self) -> GenomicInterval:
        return self.boundary.padded

    @property
    def extension(self) -> int:
        core, padded = self.boundary.interval, self.boundary.padded
        return max(core.start - padded.start, padded.end - core.end)

    @property
    def is_readless(self) -> bool:
        return self.reads is None

    def with_reads(self, reads: Iterable[Read]) -> AssemblyRegion:
        """Return a copy carrying ``reads``; every read must overlap the extended span."""
        attached = tuple(reads)
        extended = self.boundary.padded
        for read in attached:
            if not read.overlaps(extended):
                raise ValueError(f"Read {read.name} at {read.interval} does not overlap {extended}")
        return AssemblyRegion(self.boundary, self.is_active, attached)

    def readless(self) -> AssemblyRegion:
        return AssemblyRegion(self.boundary, self.is_active, None)


@dataclass(frozen=True, slots=True)
class Feature:
    """An annotation record (e.g. a BED line) on the reference."""

    interval: GenomicInterval
    name: str = ""
    score: float | None = None
    strand: str = "."
    source: str = ""


@dataclass(frozen=True, slots=True)
class ReferenceSlice:
    interval: GenomicInterval
    bases: str

    def __post_init__(self) -> None:
        if len(self.bases) != self.interval.length:
            raise ValueError(
                f"Reference slice for {self.interval} needs {self.interval.length} bases, got {len(self.bases)}"
            )

    def __len__(self) -> int:
        return len(self.bases)

    def base_at(self, position: int) -> str:
        if not self.interval.start <= position <= self.interval.end:
            raise IndexError(f"Position {position} outside reference slice {self.interval}")
        return self.bases[position - self.interval.start]

    def sub(self, interval: GenomicInterval) -> ReferenceSlice:
        if not self.interval.contains(interval):
            raise IndexError(f"{interval} is not inside reference slice {self.interval}")
        lo = interval.start - self.interval.start
        return ReferenceSlice(interval, self.bases[lo : lo + interval.length])


@dataclass(frozen=True, slots=True)
class FeatureSlice:
    interval: GenomicInterval
    features: tuple[Feature, ...] = ()

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self.features)

    def sub(self, interval: GenomicInterval) -> FeatureSlice:
        return FeatureSlice(interval, tuple(f for f in self.features if f.interval.overlaps(interval)))


@dataclass(frozen=True, slots=True)
class AssemblyRegionWalkerContext:
    """Final record handed to the assembler: region plus its context slices."""

    region: AssemblyRegion
    reference: ReferenceSlice | None = None
    features: FeatureSlice | None = None

    @property
    def span(self) -> GenomicInterval:
        return self.region.span


__all__ = [
    "ActivityResult",
    "ActivityProfileState",
    "ActivityProfileStateRange",
    "AssemblyRegion",
    "Feature",
    "ReferenceSlice",
    "FeatureSlice",
    "AssemblyRegionWalkerContext",
]
