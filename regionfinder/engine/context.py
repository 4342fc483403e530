"""Attach reference bases and features to finished regions."""

from __future__ import annotations

from dataclasses import dataclass

from regionfinder.engine.interfaces import FeatureSource, ReferenceSource
from regionfinder.engine.types import (
    AssemblyRegion,
    AssemblyRegionWalkerContext,
    FeatureSlice,
    ReferenceSlice,
)


@dataclass(frozen=True, slots=True)
class ContextEnricher:
    """Builds the final record for a region from read-only sources.

    Both slices cover the region's extended span; a missing source yields
    ``None`` for its slice.
    """

    reference: ReferenceSource | None = None
    features: FeatureSource | None = None

    def enrich(self, region: AssemblyRegion) -> AssemblyRegionWalkerContext:
        span = region.extended_span
        reference = None
        if self.reference is not None:
            reference = ReferenceSlice(span, self.reference.slice(span))
        features = None
        if self.features is not None:
            features = FeatureSlice(span, tuple(self.features.slice(span)))
        return AssemblyRegionWalkerContext(region, reference, features)


__all__ = ["ContextEnricher"]
