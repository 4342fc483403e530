"""Input adapters: alignment files, reference sequences, features and intervals."""

from .bam import BamReadSource
from .features import InMemoryFeatureSource, TabixFeatureSource, read_bed
from .intervals import load_intervals
from .reference import FastaReferenceSource, InMemoryReferenceSource

__all__ = [
    "BamReadSource",
    "FastaReferenceSource",
    "InMemoryFeatureSource",
    "InMemoryReferenceSource",
    "TabixFeatureSource",
    "load_intervals",
    "read_bed",
]
