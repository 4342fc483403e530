"""Band-pass segmentation of an activity profile into assembly regions.

Algorithm
=========

Each locus spreads its activity probability to neighbours up to ``D =
max_prob_propagation_distance`` loci away through the normalized triangular
kernel ``w(d) = (D + 1 - |d|) / (D + 1)**2``. A locus carrying
``HIGH_QUALITY_SOFT_CLIPS`` first copies its probability flat onto
``min(result_value, D)`` loci on either side, each copy then going through
the kernel. Smoothed values are capped at ``1.0`` and a locus is active when
its smoothed value reaches ``active_prob_threshold``.

Regions are cut from the front of the buffered profile as runs of equal
activity. A run reaching ``max_region_size`` is cut there when inactive, and
at the lowest local minimum within ``[min_region_size, max_region_size]``
when active. A final piece of a run shorter than ``min_region_size`` is
merged back into the piece before it when the result still fits.

The profile is streamed: a region is cut only once every value it depends on
is final, so feeding a span locus by locus gives the same regions as feeding
it all at once. Input is flushed at a contig change, at a gap between loci
and at the end of input.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from functools import lru_cache

import numpy as np

from regionfinder.core.interval import GenomicInterval, SequenceDictionary, ShardBoundary
from regionfinder.engine.config import AssemblyRegionArgs
from regionfinder.engine.types import (
    ActivityProfileState,
    ActivityProfileStateRange,
    ActivityResult,
    AssemblyRegion,
)

_LOGGER = logging.getLogger(__name__)


@lru_cache(maxsize=None)
def triangular_kernel(distance: int) -> np.ndarray:
    """Kernel of ``2 * distance + 1`` weights summing to one."""
    offsets = np.arange(-distance, distance + 1)
    return (distance + 1 - np.abs(offsets)) / float((distance + 1) ** 2)


@lru_cache(maxsize=None)
def _spread_kernel(distance: int, spread: int) -> np.ndarray:
    kernel = triangular_kernel(distance)
    if spread == 0:
        return kernel
    return np.convolve(np.ones(2 * spread + 1), kernel)


@dataclass(slots=True)
class _Piece:
    start: int
    length: int
    is_active: bool
    continues_run: bool


@dataclass(slots=True)
class _SpanSegmenter:
    """Streaming segmentation of one gap-free span of loci."""

    owner: BandPassSegmenter
    contig: str
    start: int
    _acc: np.ndarray = field(init=False)
    _n_loci: int = field(default=0, init=False)
    _pending: _Piece | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self._acc = np.zeros(self.owner.args.max_assembly_region_size + 4 * self.owner.reach + 2)

    @property
    def next_position(self) -> int:
        return self.start + self._n_loci

    def add(self, probability: float, soft_clips: float) -> list[AssemblyRegion]:
        distance = self.owner.args.max_prob_propagation_distance
        spread = min(int(soft_clips), distance)
        kernel = _spread_kernel(distance, spread)
        half = spread + distance
        lo = self._n_loci - half
        hi = self._n_loci + half + 1
        if hi > self._acc.shape[0]:
            grown = np.zeros(max(hi, 2 * self._acc.shape[0]))
            grown[: self._acc.shape[0]] = self._acc
            self._acc = grown
        skip = max(0, -lo)
        self._acc[lo + skip : hi] += probability * kernel[skip:]
        self._n_loci += 1
        return self._pop(force=False)

    def finish(self) -> list[AssemblyRegion]:
        regions = self._pop(force=True)
        if self._pending is not None:
            regions.append(self._region(self._pending))
            self._pending = None
        return regions

    def _pop(self, force: bool) -> list[AssemblyRegion]:
        args = self.owner.args
        ready = args.max_assembly_region_size + self.owner.reach + 1
        regions: list[AssemblyRegion] = []
        while self._n_loci > 0 and (force or self._n_loci >= ready):
            window = min(self._n_loci, args.max_assembly_region_size + 1)
            values = np.minimum(self._acc[:window], 1.0)
            active = values >= args.active_prob_threshold

            is_active = bool(active[0])
            limit = min(self._n_loci, args.max_assembly_region_size)
            length = 1
            while length < limit and bool(active[length]) == is_active:
                length += 1
            if is_active and length == args.max_assembly_region_size:
                length = self._best_cut_site(values, length)
            continues_run = length < self._n_loci and bool(active[length]) == is_active

            regions.extend(self._take(_Piece(self.start, length, is_active, continues_run)))
            self._acc = self._acc[length:]
            self.start += length
            self._n_loci -= length
        return regions

    def _best_cut_site(self, values: np.ndarray, end: int) -> int:
        min_i = end - 1
        min_p = float("inf")
        for i in range(end - 1, self.owner.args.min_assembly_region_size - 2, -1):
            cur = float(values[i])
            if cur < min_p and self._is_minimum(values, i):
                min_p = cur
                min_i = i
        return min_i + 1

    def _is_minimum(self, values: np.ndarray, i: int) -> bool:
        if i == self._n_loci - 1 or i < 1:
            return False
        return values[i] <= values[i + 1] and values[i] < values[i - 1]

    def _take(self, piece: _Piece) -> list[AssemblyRegion]:
        args = self.owner.args
        regions: list[AssemblyRegion] = []
        pending = self._pending
        self._pending = None
        if pending is not None:
            if (
                piece.length < args.min_assembly_region_size
                and pending.length + piece.length <= args.max_assembly_region_size
            ):
                piece = _Piece(pending.start, pending.length + piece.length, pending.is_active, piece.continues_run)
            else:
                regions.append(self._region(pending))
        if piece.continues_run:
            self._pending = piece
        else:
            regions.append(self._region(piece))
        return regions

    def _region(self, piece: _Piece) -> AssemblyRegion:
        core = GenomicInterval(self.contig, piece.start, piece.start + piece.length - 1)
        boundary = ShardBoundary.from_interval(
            core, self.owner.args.assembly_region_padding, self.owner.dictionary.length(self.contig)
        )
        return AssemblyRegion(boundary, piece.is_active)


@dataclass(frozen=True, slots=True)
class BandPassSegmenter:
    """Turns ordered activity states into readless assembly regions.

    Parameters
    ----------
    dictionary:
        Contig lengths, used to clip region padding.
    args:
        Region size, padding, threshold and propagation settings.

    Examples
    --------
    >>> segmenter = BandPassSegmenter(SequenceDictionary([("chr1", 1000)]))
    >>> regions = list(segmenter.segment(states))  # doctest: +SKIP
    """

    dictionary: SequenceDictionary
    args: AssemblyRegionArgs = field(default_factory=AssemblyRegionArgs)

    def __post_init__(self) -> None:
        self.args.validate()

    @property
    def reach(self) -> int:
        """Farthest distance a single state influences (soft-clip spread plus kernel)."""
        return 2 * self.args.max_prob_propagation_distance

    def segment(self, states: Iterable[ActivityProfileState]) -> Iterator[AssemblyRegion]:
        """Segment states ordered by position; regions come out in the same order."""
        return self._run(
            (
                state.contig,
                state.position,
                state.is_active_prob,
                state.result_value if state.result_state is ActivityResult.HIGH_QUALITY_SOFT_CLIPS else 0.0,
            )
            for state in states
        )

    def segment_ranges(self, ranges: Iterable[ActivityProfileStateRange]) -> Iterator[AssemblyRegion]:
        """Segment the concatenation of state ranges ordered by core start."""
        return self._run(_range_loci(ranges))

    def _run(self, loci: Iterable[tuple[str, int, float, float]]) -> Iterator[AssemblyRegion]:
        span: _SpanSegmenter | None = None
        n_regions = 0
        for contig, position, probability, soft_clips in loci:
            if span is not None and (span.contig != contig or position != span.next_position):
                if span.contig == contig and position < span.next_position:
                    raise ValueError(
                        f"Activity states out of order: {contig}:{position} after "
                        f"{contig}:{span.next_position - 1}"
                    )
                regions = span.finish()
                n_regions += len(regions)
                yield from regions
                span = None
            if span is None:
                self.dictionary.validate_interval(GenomicInterval(contig, position, position))
                span = _SpanSegmenter(self, contig, position)
            regions = span.add(probability, soft_clips)
            n_regions += len(regions)
            yield from regions
        if span is not None:
            regions = span.finish()
            n_regions += len(regions)
            yield from regions
        _LOGGER.debug("Segmenter produced %d regions", n_regions)


def _range_loci(ranges: Iterable[ActivityProfileStateRange]) -> Iterator[tuple[str, int, float, float]]:
    for state_range in ranges:
        contig = state_range.contig
        start = state_range.interval.start
        for idx, (prob, clips) in enumerate(zip(state_range.probabilities.tolist(), state_range.soft_clips.tolist())):
            # NaN marks a locus without a state
            if prob != prob:
                continue
            yield contig, start + idx, prob, clips


__all__ = ["BandPassSegmenter", "triangular_kernel"]
