"""Per-locus activity profiles of a shard."""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from regionfinder.core.errors import DataError
from regionfinder.core.interval import ShardBoundary
from regionfinder.core.pileup import ReadPileup, iter_pileups
from regionfinder.core.reads import Read
from regionfinder.engine.interfaces import ActivityEvaluator, FeatureSource, ReferenceSource
from regionfinder.engine.types import (
    ActivityProfileState,
    ActivityProfileStateRange,
    FeatureSlice,
    ReferenceSlice,
)


@dataclass(frozen=True, slots=True)
class ActivityProfileComputer:
    """Evaluate every core locus of a shard.

    The padded part of a shard only contributes reads, so pileups at the core
    edges see every read overlapping them. Reference bases and features are
    fetched once per shard for the padded interval and narrowed to each locus
    before the evaluator sees them.

    Parameters
    ----------
    reference:
        Optional reference source.
    features:
        Optional feature source.
    include_deletions:
        Whether reads with a deletion at a locus are part of its pileup.
    """

    reference: ReferenceSource | None = None
    features: FeatureSource | None = None
    include_deletions: bool = True

    def compute(
        self,
        boundary: ShardBoundary,
        reads: Sequence[Read],
        evaluator: ActivityEvaluator,
    ) -> Iterator[ActivityProfileState]:
        """Yield one state per core locus, in increasing position.

        ``reads`` must be ordered by alignment start. Once a shard has reads,
        loci none of them aligns to are evaluated with an empty pileup; a shard
        without reads yields nothing.
        """
        if not reads:
            return
        reference = self._reference_slice(boundary)
        features = self._feature_slice(boundary)
        pileups = iter_pileups(
            reads,
            boundary.interval,
            include_deletions=self.include_deletions,
        )
        for pileup in pileups:
            locus = pileup.locus
            result = evaluator.is_active(
                pileup,
                reference.sub(locus) if reference is not None else None,
                features.sub(locus) if features is not None else None,
            )
            yield _to_state(pileup, result)

    def compute_range(
        self,
        boundary: ShardBoundary,
        reads: Sequence[Read],
        evaluator: ActivityEvaluator,
    ) -> ActivityProfileStateRange:
        return ActivityProfileStateRange.from_states(boundary, self.compute(boundary, reads, evaluator))

    def _reference_slice(self, boundary: ShardBoundary) -> ReferenceSlice | None:
        if self.reference is None:
            return None
        return ReferenceSlice(boundary.padded, self.reference.slice(boundary.padded))

    def _feature_slice(self, boundary: ShardBoundary) -> FeatureSlice | None:
        if self.features is None:
            return None
        return FeatureSlice(boundary.padded, tuple(self.features.slice(boundary.padded)))


def _to_state(pileup: ReadPileup, result: float | ActivityProfileState) -> ActivityProfileState:
    if isinstance(result, ActivityProfileState):
        if result.locus != pileup.locus:
            raise DataError(f"Evaluator returned a state for {result.locus} while evaluating {pileup.locus}")
        return result
    prob = float(result)
    if math.isnan(prob) or not 0.0 <= prob <= 1.0:
        raise DataError(f"Evaluator returned probability {prob} at {pileup.locus}; expected a value in [0, 1]")
    return ActivityProfileState(pileup.locus, prob)


__all__ = ["ActivityProfileComputer"]
