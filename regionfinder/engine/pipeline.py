"""Fast and strict region-finding pipelines.

Fast
====

Shards are processed independently: activity profile, segmentation of the
shard's core and read reattachment all happen inside one partition task, with
no data moved between workers. Region boundaries near shard edges depend on
the shard size because the smoothing cannot see past the shard.

Strict
======

Seven phases with two barriers::

    1. shard reads
    2. per partition: activity state range per shard
    3. regroup ranges by contig, order by core start      (barrier)
    4. per contig: segment the whole-contig signal
    5. collect region boundaries at the driver
    6. re-shard the original reads on those boundaries    (barrier)
    7. per partition: attach reads and context

The output for a contig equals one activity pass over a single whole-contig
shard followed by one segmentation pass, whatever the shard size and worker
count.

Both pipelines are generators: no partition runs before iteration starts.
Across contigs the output order is not part of the contract.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass

from regionfinder.core.errors import DataError
from regionfinder.core.interval import GenomicInterval, SequenceDictionary, merge_intervals
from regionfinder.core.reads import Read, ReadCollection
from regionfinder.engine.activity import ActivityProfileComputer
from regionfinder.engine.config import RegionFinderConfig
from regionfinder.engine.context import ContextEnricher
from regionfinder.engine.evaluation import EvaluatorHandle
from regionfinder.engine.executors.factory import ExecutorFactory
from regionfinder.engine.interfaces import (
    EvaluatorFactory,
    FeatureSource,
    PartitionExecutor,
    ReadSource,
    ReferenceSource,
)
from regionfinder.engine.segmenter import BandPassSegmenter
from regionfinder.engine.sharder import Shard, assign_partitions, make_shard_boundaries, shard
from regionfinder.engine.types import (
    ActivityProfileStateRange,
    AssemblyRegion,
    AssemblyRegionWalkerContext,
)

_LOGGER = logging.getLogger(__name__)


# Partition tasks are module-level dataclasses so process pools can pickle them.


@dataclass(frozen=True, slots=True)
class _FastPartitionTask:
    handle: EvaluatorHandle
    computer: ActivityProfileComputer
    segmenter: BandPassSegmenter
    enricher: ContextEnricher
    max_reads_per_start: int

    def __call__(self, shards: list[Shard]) -> list[AssemblyRegionWalkerContext]:
        contexts: list[AssemblyRegionWalkerContext] = []
        with self.handle.acquire() as evaluator:
            for item in shards:
                reads = item.downsampled_reads(self.max_reads_per_start)
                states = self.computer.compute(item.boundary, reads, evaluator)
                for region in self.segmenter.segment(states):
                    extended = region.extended_span
                    resident = [read for read in reads if read.overlaps(extended)]
                    contexts.append(self.enricher.enrich(region.with_reads(resident)))
        return contexts


@dataclass(frozen=True, slots=True)
class _ActivityRangeTask:
    handle: EvaluatorHandle
    computer: ActivityProfileComputer
    max_reads_per_start: int

    def __call__(self, shards: list[Shard]) -> list[ActivityProfileStateRange]:
        ranges: list[ActivityProfileStateRange] = []
        with self.handle.acquire() as evaluator:
            for item in shards:
                reads = item.contig_downsampled_reads(self.max_reads_per_start)
                state_range = self.computer.compute_range(item.boundary, reads, evaluator)
                if state_range.n_states:
                    ranges.append(state_range)
        return ranges


@dataclass(frozen=True, slots=True)
class _SegmentContigTask:
    segmenter: BandPassSegmenter

    def __call__(self, ranges: list[ActivityProfileStateRange]) -> list[AssemblyRegion]:
        return list(self.segmenter.segment_ranges(ranges))


@dataclass(frozen=True, slots=True)
class _RefillTask:
    enricher: ContextEnricher

    def __call__(self, pairs: list[tuple[AssemblyRegion, Shard]]) -> list[AssemblyRegionWalkerContext]:
        return [self.enricher.enrich(region.with_reads(item.reads)) for region, item in pairs]


class _RegionPipeline(ABC):
    """Shared setup of both pipelines.

    Parameters
    ----------
    reads:
        A :class:`ReadSource` or any iterable of reads (indexed in memory).
    dictionary:
        Contigs and their lengths.
    evaluator:
        An :class:`EvaluatorHandle` or a zero-argument evaluator factory.
    intervals:
        Requested intervals; ``None`` scans every contig. Overlapping or
        abutting intervals are merged.
    config:
        Run settings, validated on construction.
    reference, features:
        Optional read-only context sources.
    executor:
        Partition executor; built from ``config.executor`` when omitted, in
        which case it is also closed after the run.

    Raises
    ------
    DataError
        If ``reads`` carries its own sequence dictionary (as a BAM header
        does) with a contig missing from ``dictionary`` or of another length.
    """

    def __init__(
        self,
        reads: ReadSource | Iterable[Read],
        dictionary: SequenceDictionary,
        evaluator: EvaluatorHandle | EvaluatorFactory,
        intervals: Sequence[GenomicInterval] | None = None,
        *,
        config: RegionFinderConfig | None = None,
        reference: ReferenceSource | None = None,
        features: FeatureSource | None = None,
        executor: PartitionExecutor | None = None,
    ) -> None:
        self.config = config if config is not None else RegionFinderConfig()
        self.config.validate()
        self.handle = evaluator if isinstance(evaluator, EvaluatorHandle) else EvaluatorHandle(evaluator)
        self.handle.check(has_reference=reference is not None)
        _check_read_dictionary(reads, dictionary)
        self.dictionary = dictionary
        if intervals is None:
            intervals = [dictionary.contig_interval(name) for name in dictionary.names]
        self.intervals = merge_intervals(intervals, dictionary)
        self.reference = reference
        self.features = features
        self.executor = executor
        self._reads = reads

    def _read_source(self) -> ReadSource:
        if not hasattr(self._reads, "query"):
            self._reads = ReadCollection(self._reads, self.dictionary)  # type: ignore[arg-type]
        return self._reads  # type: ignore[return-value]

    def _shards(self) -> list[Shard]:
        sharding = self.config.sharding
        boundaries = make_shard_boundaries(
            self.intervals, self.dictionary, sharding.read_shard_size, sharding.read_shard_padding
        )
        shards = shard(self._read_source(), self.dictionary, boundaries, sharding.read_shard_size)
        _LOGGER.info("Sharded %d intervals into %d shards", len(self.intervals), len(shards))
        return shards

    def _computer(self) -> ActivityProfileComputer:
        return ActivityProfileComputer(
            self.reference,
            self.features,
            self.config.include_reads_with_deletions_in_is_active_pileups,
        )

    def _segmenter(self) -> BandPassSegmenter:
        return BandPassSegmenter(self.dictionary, self.config.regions)

    def _enricher(self) -> ContextEnricher:
        return ContextEnricher(self.reference, self.features)

    @contextmanager
    def _executor_scope(self) -> Iterator[PartitionExecutor]:
        if self.executor is not None:
            yield self.executor
            return
        executor = ExecutorFactory.build(self.config.executor)
        executor.prepare()
        try:
            yield executor
        finally:
            executor.close()

    @abstractmethod
    def run(self) -> Iterator[AssemblyRegionWalkerContext]:
        """Yield region contexts lazily."""

    def __iter__(self) -> Iterator[AssemblyRegionWalkerContext]:
        return self.run()


def _check_read_dictionary(reads: object, dictionary: SequenceDictionary) -> None:
    read_dictionary = getattr(reads, "dictionary", None)
    if read_dictionary is None:
        return
    for record in read_dictionary:
        if record.name not in dictionary:
            raise DataError(f"Reads are aligned to contig '{record.name}', which the sequence dictionary lacks")
        length = dictionary.length(record.name)
        if length != record.length:
            raise DataError(
                f"Contig '{record.name}' has length {record.length} in the reads but {length} in the sequence dictionary"
            )


class FastPipeline(_RegionPipeline):
    """Shard-local region finding with no data movement between workers."""

    def run(self) -> Iterator[AssemblyRegionWalkerContext]:
        config = self.config
        shards = self._shards()
        task = _FastPartitionTask(
            self.handle,
            self._computer(),
            self._segmenter(),
            self._enricher(),
            config.max_reads_per_alignment_start,
        )
        with self._executor_scope() as executor:
            partitions = assign_partitions(shards, executor.parallelism, config.rebalance)
            _LOGGER.info(
                "Fast pipeline: %d shards in %d partitions (rebalance=%s)",
                len(shards),
                len(partitions),
                config.rebalance,
            )
            results = executor.map_partitions(task, partitions)
        n_regions = 0
        for contexts in results:
            n_regions += len(contexts)
            yield from contexts
        _LOGGER.info("Fast pipeline emitted %d regions", n_regions)


class StrictPipeline(_RegionPipeline):
    """Whole-contig segmentation; output does not depend on the sharding."""

    def run(self) -> Iterator[AssemblyRegionWalkerContext]:
        config = self.config
        shards = self._shards()
        with self._executor_scope() as executor:
            # Phase 2
            partitions = assign_partitions(shards, executor.parallelism)
            range_task = _ActivityRangeTask(self.handle, self._computer(), config.max_reads_per_alignment_start)
            range_results = executor.map_partitions(range_task, partitions)

            # Phase 3
            by_contig = self._regroup(range_results)
            _LOGGER.info("Regrouped activity of %d shards into %d contigs", len(shards), len(by_contig))

            # Phases 4 and 5
            region_lists = executor.map_partitions(_SegmentContigTask(self._segmenter()), by_contig)
            regions = [region for contig_regions in region_lists for region in contig_regions]
            _LOGGER.info("Segmentation produced %d regions", len(regions))

            # Phase 6
            region_shards = shard(
                self._read_source(),
                self.dictionary,
                [region.boundary for region in regions],
                config.sharding.read_shard_size,
            )
            pairs = list(zip(regions, region_shards))

            # Phase 7
            results = executor.map_partitions(
                _RefillTask(self._enricher()), assign_partitions(pairs, executor.parallelism)
            )
        for contexts in results:
            yield from contexts

    def _regroup(
        self, range_results: list[list[ActivityProfileStateRange]]
    ) -> list[list[ActivityProfileStateRange]]:
        by_contig: dict[str, list[ActivityProfileStateRange]] = defaultdict(list)
        for ranges in range_results:
            for state_range in ranges:
                by_contig[state_range.contig].append(state_range)
        return [
            sorted(by_contig[contig], key=lambda r: r.interval.start)
            for contig in sorted(by_contig, key=self.dictionary.index)
        ]


def find_assembly_regions(
    reads: ReadSource | Iterable[Read],
    dictionary: SequenceDictionary,
    evaluator: EvaluatorHandle | EvaluatorFactory,
    intervals: Sequence[GenomicInterval] | None = None,
    *,
    config: RegionFinderConfig | None = None,
    reference: ReferenceSource | None = None,
    features: FeatureSource | None = None,
    executor: PartitionExecutor | None = None,
) -> Iterator[AssemblyRegionWalkerContext]:
    """Find assembly regions with the pipeline selected by ``config.strict``.

    Settings are validated here, so a :class:`ConfigurationError` is raised
    on the call itself; the regions are produced lazily.
    """
    config = config if config is not None else RegionFinderConfig()
    pipeline_cls = StrictPipeline if config.strict else FastPipeline
    pipeline = pipeline_cls(
        reads,
        dictionary,
        evaluator,
        intervals,
        config=config,
        reference=reference,
        features=features,
        executor=executor,
    )
    return pipeline.run()


__all__ = [
    "FastPipeline",
    "StrictPipeline",
    "find_assembly_regions",
]
