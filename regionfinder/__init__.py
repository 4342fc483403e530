"""regionfinder public interface.

Sharded activity profiling and band-pass segmentation of aligned reads into
assembly regions. The pipelines live under ``regionfinder.engine``; input
adapters under ``regionfinder.data``.
"""

from __future__ import annotations

from .core import ConfigurationError, DataError, GenomicInterval, JobFailedError, Read, SequenceDictionary
from .core.results import RegionResults
from .engine import FastPipeline, RegionFinderConfig, StrictPipeline, find_assembly_regions

__all__ = [
    "ConfigurationError",
    "DataError",
    "GenomicInterval",
    "JobFailedError",
    "Read",
    "SequenceDictionary",
    "RegionResults",
    "FastPipeline",
    "RegionFinderConfig",
    "StrictPipeline",
    "find_assembly_regions",
]

__version__ = "0.1.0"
