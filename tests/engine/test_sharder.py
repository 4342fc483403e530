"""Tests for sharding and partition assignment."""

import pytest

from regionfinder.core.errors import DataError
from regionfinder.core.interval import GenomicInterval, ShardBoundary
from regionfinder.core.reads import Read, ReadCollection
from regionfinder.engine.sharder import assign_partitions, make_shard_boundaries, shard


def _read(name, start, length, contig="chr1"):
    return Read(name, contig, start, f"{length}M", bases="A" * length)


class TestMakeShardBoundaries:
    def test_splits_and_pads(self, dictionary):
        boundaries = make_shard_boundaries([GenomicInterval("chr1", 1, 1000)], dictionary, 500, 100)
        assert [(b.interval, b.padded) for b in boundaries] == [
            (GenomicInterval("chr1", 1, 500), GenomicInterval("chr1", 1, 600)),
            (GenomicInterval("chr1", 501, 1000), GenomicInterval("chr1", 401, 1000)),
        ]

    def test_last_shard_is_shorter(self, dictionary):
        boundaries = make_shard_boundaries([GenomicInterval("chr2", 101, 350)], dictionary, 100, 0)
        assert [b.interval for b in boundaries] == [
            GenomicInterval("chr2", 101, 200),
            GenomicInterval("chr2", 201, 300),
            GenomicInterval("chr2", 301, 350),
        ]

    def test_interval_outside_dictionary(self, dictionary):
        with pytest.raises(DataError):
            make_shard_boundaries([GenomicInterval("chr2", 1, 501)], dictionary, 100, 0)
        with pytest.raises(DataError):
            make_shard_boundaries([GenomicInterval("chrX", 1, 10)], dictionary, 100, 0)


class TestShard:
    def _boundaries(self, dictionary):
        return make_shard_boundaries([GenomicInterval("chr1", 1, 1000)], dictionary, 500, 100)

    def test_read_spanning_shards_lands_in_both(self, dictionary):
        spanning = _read("span", 480, 51)
        late = _read("late", 700, 51)
        near = _read("near", 550, 11)
        shards = shard([late, spanning, near], dictionary, self._boundaries(dictionary), 500)
        assert [r.name for r in shards[0].reads] == ["span", "near"]
        assert [r.name for r in shards[1].reads] == ["span", "near", "late"]
        first, second = shards[0].reads[0], shards[1].reads[0]
        assert (first.start, first.end) == (second.start, second.end) == (480, 530)

    def test_empty_shard(self, dictionary):
        shards = shard([_read("a", 10, 20)], dictionary, self._boundaries(dictionary), 500)
        assert len(shards[1]) == 0

    def test_overlong_read_fails_on_materialization(self, dictionary):
        shards = shard([_read("long", 1, 600)], dictionary, self._boundaries(dictionary), 500)
        with pytest.raises(DataError):
            shards[0].reads

    def test_unknown_contig_read(self, dictionary):
        with pytest.raises(DataError):
            shard([_read("x", 1, 10, contig="chrX")], dictionary, self._boundaries(dictionary), 500)

    def test_overlapping_cores_rejected(self, dictionary):
        boundaries = [
            ShardBoundary(GenomicInterval("chr1", 1, 100), GenomicInterval("chr1", 1, 100)),
            ShardBoundary(GenomicInterval("chr1", 100, 200), GenomicInterval("chr1", 100, 200)),
        ]
        with pytest.raises(DataError):
            shard([], dictionary, boundaries, 500)

    def test_accepts_read_source(self, dictionary):
        source = ReadCollection([_read("a", 10, 20)])
        shards = shard(source, dictionary, self._boundaries(dictionary), 500)
        assert shards[0].source is source
        assert [r.name for r in shards[0].reads] == ["a"]

    def test_read_past_contig_end_from_source(self, dictionary):
        source = ReadCollection([_read("tail", 981, 40)])
        shards = shard(source, dictionary, self._boundaries(dictionary), 500)
        assert shards[0].reads == []
        with pytest.raises(DataError, match="past the contig length 1000"):
            shards[1].reads
        with pytest.raises(DataError):
            shards[1].contig_downsampled_reads(1)

    def test_downsampling_views(self, dictionary):
        # Three reads share a start; the first one ends before the shard's padded start.
        reads = [_read("B", 95, 3), _read("A", 95, 10), _read("C", 95, 20)]
        boundary = ShardBoundary(GenomicInterval("chr1", 101, 200), GenomicInterval("chr1", 100, 201))
        (item,) = shard(reads, dictionary, [boundary], 100)
        assert [r.name for r in item.reads] == ["A", "C"]
        assert [r.name for r in item.downsampled_reads(1)] == ["A"]
        assert item.contig_downsampled_reads(1) == []
        assert [r.name for r in item.contig_downsampled_reads(2)] == ["A"]
        assert [r.name for r in item.downsampled_reads(0)] == ["A", "C"]


class TestAssignPartitions:
    def test_contiguous_blocks(self):
        assert assign_partitions(list(range(7)), 3) == [[0, 1, 2], [3, 4], [5, 6]]

    def test_rebalance_interleaves(self):
        assert assign_partitions(list(range(7)), 3, rebalance=True) == [[0, 3, 6], [1, 4], [2, 5]]

    def test_never_more_partitions_than_items(self):
        assert assign_partitions(["a", "b"], 8) == [["a"], ["b"]]
        assert assign_partitions([], 4) == []

    def test_rebalance_keeps_items(self):
        items = list(range(23))
        partitions = assign_partitions(items, 5, rebalance=True)
        assert sorted(x for part in partitions for x in part) == items

    def test_invalid_partition_count(self):
        with pytest.raises(ValueError):
            assign_partitions([1], 0)
