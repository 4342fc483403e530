"""Sharding of requested intervals and their reads.

A shard is a core interval of at most ``shard_size`` loci plus a padded
interval; it holds every read overlapping the padded interval. The same
``shard_size`` bounds the reference span of a read, which is what lets an
overlap lookup start only ``shard_size`` loci before the padded start.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TypeVar

from regionfinder.core.errors import DataError
from regionfinder.core.interval import GenomicInterval, SequenceDictionary, ShardBoundary
from regionfinder.core.reads import Read, ReadCollection
from regionfinder.engine.downsampler import PositionalDownsampler
from regionfinder.engine.interfaces import ReadSource

T = TypeVar("T")

_LOGGER = logging.getLogger(__name__)


def make_shard_boundaries(
    intervals: Iterable[GenomicInterval],
    dictionary: SequenceDictionary,
    shard_size: int,
    padding: int,
) -> list[ShardBoundary]:
    """Split every interval into consecutive cores of at most ``shard_size`` loci.

    Padding is clipped to ``[1, contig length]``. Boundaries come out in the
    order of ``intervals``.

    Raises
    ------
    DataError
        If an interval is not on a known contig or runs past its end.
    """
    if shard_size < 1:
        raise ValueError(f"shard_size must be >= 1, got {shard_size}")
    if padding < 0:
        raise ValueError(f"padding must be >= 0, got {padding}")

    boundaries: list[ShardBoundary] = []
    for interval in intervals:
        dictionary.validate_interval(interval)
        contig_length = dictionary.length(interval.contig)
        for start in range(interval.start, interval.end + 1, shard_size):
            core = GenomicInterval(interval.contig, start, min(start + shard_size - 1, interval.end))
            boundaries.append(ShardBoundary.from_interval(core, padding, contig_length))
    return boundaries


@dataclass(slots=True, eq=False)
class Shard:
    """Reads overlapping one :class:`ShardBoundary`.

    Reads are fetched from ``source`` on first access, in alignment-start
    order, so a shard is cheap to build at the driver and to ship to a
    worker.

    Parameters
    ----------
    boundary:
        Core and padded interval.
    source:
        Where reads are queried from.
    max_read_length:
        Longest reference span a read may have; a longer read raises
        :class:`DataError` when the reads are materialized.
    contig_length:
        Length of the shard's contig; a read ending past it raises
        :class:`DataError`.
    """

    boundary: ShardBoundary
    source: ReadSource
    max_read_length: int
    contig_length: int
    _reads: list[Read] | None = field(default=None, init=False, repr=False)

    def __len__(self) -> int:
        return len(self.reads)

    @property
    def interval(self) -> GenomicInterval:
        return self.boundary.interval

    @property
    def padded(self) -> GenomicInterval:
        return self.boundary.padded

    @property
    def reads(self) -> list[Read]:
        if self._reads is None:
            self._reads = [self._check(read) for read in self.source.query(self.boundary.padded)]
        return self._reads

    def _check(self, read: Read) -> Read:
        if read.end > self.contig_length:
            raise DataError(
                f"Read {read.name} ends at {read.contig}:{read.end}, past the contig length {self.contig_length}"
            )
        if read.reference_length > self.max_read_length:
            raise DataError(
                f"Read {read.name} at {read.interval} spans {read.reference_length} loci, "
                f"more than the shard size {self.max_read_length}"
            )
        return read

    def downsampled_reads(self, max_reads_per_start: int) -> list[Read]:
        """Downsample this shard's own reads."""
        if max_reads_per_start == 0:
            return self.reads
        return list(PositionalDownsampler(max_reads_per_start).filter(self.reads))

    def contig_downsampled_reads(self, max_reads_per_start: int) -> list[Read]:
        """Reads kept by downsampling the whole contig's read stream, restricted to this shard.

        Every read starting in ``[padded.start - max_read_length + 1, padded.end]``
        is run through the downsampler, which sees all reads sharing a start
        in stream order. The result therefore does not depend on where the
        shard boundaries fall.
        """
        if max_reads_per_start == 0:
            return self.reads
        padded = self.boundary.padded
        window = GenomicInterval(padded.contig, max(1, padded.start - self.max_read_length + 1), padded.end)
        downsampler = PositionalDownsampler(max_reads_per_start)
        kept: list[Read] = []
        for read in self.source.query(window):
            if downsampler.accept(read) and read.overlaps(padded):
                kept.append(self._check(read))
        return kept


def shard(
    reads: ReadSource | Iterable[Read],
    dictionary: SequenceDictionary,
    boundaries: Sequence[ShardBoundary],
    max_read_length: int,
) -> list[Shard]:
    """Build one :class:`Shard` per boundary, in the order given.

    ``reads`` is either a :class:`ReadSource` or any iterable of reads; the
    latter is indexed into a :class:`ReadCollection` checked against
    ``dictionary``. A read overlapping several padded intervals lands in each
    of those shards.

    Raises
    ------
    DataError
        If two boundary cores overlap, a boundary lies outside the
        dictionary, or (for an iterable) a read is on an unknown contig or
        past its contig end. Reads from a :class:`ReadSource` are checked
        against the contig length when a shard materializes them.
    """
    _check_disjoint(boundaries, dictionary)
    source: ReadSource
    if hasattr(reads, "query"):
        source = reads  # type: ignore[assignment]
    else:
        source = ReadCollection(reads, dictionary)  # type: ignore[arg-type]
    shards = [
        Shard(boundary, source, max_read_length, dictionary.length(boundary.contig)) for boundary in boundaries
    ]
    _LOGGER.debug("Built %d shards", len(shards))
    return shards


def _check_disjoint(boundaries: Sequence[ShardBoundary], dictionary: SequenceDictionary) -> None:
    for boundary in boundaries:
        dictionary.validate_interval(boundary.padded)
    ordered = sorted((b.interval for b in boundaries), key=dictionary.sort_key)
    for prev, cur in zip(ordered, ordered[1:]):
        if prev.overlaps(cur):
            raise DataError(f"Shard cores {prev} and {cur} overlap")


def assign_partitions(
    items: Sequence[T], num_partitions: int, rebalance: bool = False
) -> list[list[T]]:
    """Group items into at most ``num_partitions`` non-empty partitions.

    By default partitions are contiguous blocks, keeping neighbouring shards
    on one worker. With ``rebalance`` items are dealt round-robin, which
    spreads dense neighbouring shards over the workers. Items are never
    altered, only grouped.
    """
    if num_partitions < 1:
        raise ValueError(f"num_partitions must be >= 1, got {num_partitions}")
    n_parts = min(num_partitions, len(items))
    if n_parts == 0:
        return []
    if rebalance:
        return [list(items[i::n_parts]) for i in range(n_parts)]
    base, extra = divmod(len(items), n_parts)
    partitions: list[list[T]] = []
    start = 0
    for i in range(n_parts):
        size = base + (1 if i < extra else 0)
        partitions.append(list(items[start : start + size]))
        start += size
    return partitions


__all__ = [
    "Shard",
    "assign_partitions",
    "make_shard_boundaries",
    "shard",
]
