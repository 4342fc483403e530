"""Region-finding engine: sharding, activity, segmentation and pipelines."""

from .types import (
    ActivityProfileState,
    ActivityProfileStateRange,
    ActivityResult,
    AssemblyRegion,
    AssemblyRegionWalkerContext,
    Feature,
    FeatureSlice,
    ReferenceSlice,
)
from .interfaces import ActivityEvaluator, FeatureSource, PartitionExecutor, ReadSource, ReferenceSource
from .config import AssemblyRegionArgs, ReadShardArgs, RegionFinderConfig
from .evaluation import EvaluatorHandle
from .downsampler import PositionalDownsampler, downsample
from .sharder import Shard, assign_partitions, make_shard_boundaries, shard
from .activity import ActivityProfileComputer
from .segmenter import BandPassSegmenter
from .context import ContextEnricher
from .pipeline import FastPipeline, StrictPipeline, find_assembly_regions
from .executors import ExecutorConfig, ExecutorFactory, LocalPoolExecutor, SerialExecutor

__all__ = [
    "ActivityProfileState",
    "ActivityProfileStateRange",
    "ActivityResult",
    "AssemblyRegion",
    "AssemblyRegionWalkerContext",
    "Feature",
    "FeatureSlice",
    "ReferenceSlice",
    "ActivityEvaluator",
    "FeatureSource",
    "PartitionExecutor",
    "ReadSource",
    "ReferenceSource",
    "AssemblyRegionArgs",
    "ReadShardArgs",
    "RegionFinderConfig",
    "EvaluatorHandle",
    "PositionalDownsampler",
    "downsample",
    "Shard",
    "assign_partitions",
    "make_shard_boundaries",
    "shard",
    "ActivityProfileComputer",
    "BandPassSegmenter",
    "ContextEnricher",
    "FastPipeline",
    "StrictPipeline",
    "find_assembly_regions",
    "ExecutorConfig",
    "ExecutorFactory",
    "LocalPoolExecutor",
    "SerialExecutor",
]
