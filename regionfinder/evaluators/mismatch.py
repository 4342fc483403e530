"""Reference-mismatch activity heuristic.

A locus is scored by the fraction of its pileup that disagrees with the
reference. This is a stand-in for a statistical genotype-likelihood model,
good enough to drive the pipeline from the command line.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from regionfinder.core.pileup import ReadPileup
from regionfinder.engine.types import (
    ActivityProfileState,
    ActivityResult,
    FeatureSlice,
    ReferenceSlice,
)


@dataclass(slots=True)
class MismatchEvaluator:
    """Fraction of pileup bases that differ from the reference.

    Parameters
    ----------
    min_depth:
        Loci with fewer usable pileup elements score ``0.0``.
    min_base_quality:
        Bases below this quality are ignored. Deletions are always used and
        always count as a mismatch.
    min_soft_clip_quality:
        Quality a soft-clipped base needs to count as high quality.
    soft_clip_threshold:
        When the mean number of high-quality soft-clipped bases per read
        exceeds this, the state carries ``HIGH_QUALITY_SOFT_CLIPS`` with that
        mean as its value.
    """

    min_depth: int = 4
    min_base_quality: int = 10
    min_soft_clip_quality: int = 29
    soft_clip_threshold: float = 6.0

    requires_reference: ClassVar[bool] = True

    def is_active(
        self,
        pileup: ReadPileup,
        reference: ReferenceSlice | None,
        features: FeatureSlice | None,
    ) -> float | ActivityProfileState:
        if reference is None:
            raise ValueError("MismatchEvaluator needs the reference base of every locus")
        ref_base = reference.base_at(pileup.position).upper()

        used = 0
        mismatches = 0
        for element in pileup:
            if element.is_deletion:
                used += 1
                mismatches += 1
                continue
            quality = element.quality
            if quality is not None and quality < self.min_base_quality:
                continue
            base = element.base
            if base is None:
                continue
            used += 1
            if ref_base != "N" and base.upper() != ref_base:
                mismatches += 1
        prob = mismatches / used if used >= self.min_depth else 0.0

        if pileup.depth:
            mean_clips = sum(
                element.read.high_quality_soft_clips(self.min_soft_clip_quality) for element in pileup
            ) / pileup.depth
            if mean_clips > self.soft_clip_threshold:
                return ActivityProfileState(
                    pileup.locus, prob, ActivityResult.HIGH_QUALITY_SOFT_CLIPS, mean_clips
                )
        return prob

    def close(self) -> None:
        """Nothing to release."""


__all__ = ["MismatchEvaluator"]
