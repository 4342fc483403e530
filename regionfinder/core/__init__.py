"""Core primitives.

Coordinates, reads, pileups and errors used across every stage. Nothing here
depends on the engine.
"""

from .errors import (
    ConfigurationError,
    DataError,
    JobFailedError,
    RegionFinderError,
    TransientWorkerFailure,
)
from .interval import ContigRecord, GenomicInterval, SequenceDictionary, ShardBoundary, merge_intervals
from .pileup import PileupElement, ReadPileup, iter_pileups
from .reads import Read, ReadCollection, parse_cigar

__all__ = [
    "ConfigurationError",
    "DataError",
    "JobFailedError",
    "RegionFinderError",
    "TransientWorkerFailure",
    "ContigRecord",
    "GenomicInterval",
    "SequenceDictionary",
    "ShardBoundary",
    "merge_intervals",
    "PileupElement",
    "ReadPileup",
    "iter_pileups",
    "Read",
    "ReadCollection",
    "parse_cigar",
]
