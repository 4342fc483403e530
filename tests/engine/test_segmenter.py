"""Tests for band-pass segmentation."""

import numpy as np
import pytest

from regionfinder.core.errors import ConfigurationError, DataError
from regionfinder.core.interval import GenomicInterval, ShardBoundary
from regionfinder.engine.config import AssemblyRegionArgs
from regionfinder.engine.segmenter import BandPassSegmenter, triangular_kernel
from regionfinder.engine.types import ActivityProfileState, ActivityProfileStateRange, ActivityResult


def _states(probs, contig="chr1", first=1, clips=None):
    clips = clips or {}
    states = []
    for offset, prob in enumerate(probs):
        pos = first + offset
        if pos in clips:
            states.append(
                ActivityProfileState(
                    GenomicInterval.locus(contig, pos), prob, ActivityResult.HIGH_QUALITY_SOFT_CLIPS, clips[pos]
                )
            )
        else:
            states.append(ActivityProfileState(GenomicInterval.locus(contig, pos), prob))
    return states


def _spans(regions):
    return [(r.span.start, r.span.end, r.is_active) for r in regions]


def _args(**overrides):
    values = dict(
        min_assembly_region_size=1,
        max_assembly_region_size=50,
        assembly_region_padding=0,
        active_prob_threshold=0.1,
        max_prob_propagation_distance=0,
    )
    values.update(overrides)
    return AssemblyRegionArgs(**values)


class TestKernel:
    def test_sums_to_one(self):
        for distance in (0, 1, 2, 50):
            assert triangular_kernel(distance).sum() == pytest.approx(1.0)

    def test_shape(self):
        np.testing.assert_allclose(triangular_kernel(2), np.array([1, 2, 3, 2, 1]) / 9.0)


class TestThresholding:
    def test_runs_of_equal_activity(self, dictionary):
        probs = [0.9] * 10 + [0.0] * 5 + [0.9] * 10
        segmenter = BandPassSegmenter(dictionary, _args(min_assembly_region_size=5))
        assert _spans(segmenter.segment(_states(probs))) == [
            (1, 10, True),
            (11, 15, False),
            (16, 25, True),
        ]

    def test_spike_is_smoothed_over_neighbours(self, dictionary):
        probs = [0.0] * 20
        probs[9] = 1.0
        segmenter = BandPassSegmenter(dictionary, _args(max_prob_propagation_distance=2))
        assert _spans(segmenter.segment(_states(probs))) == [
            (1, 7, False),
            (8, 12, True),
            (13, 20, False),
        ]

    def test_soft_clips_widen_the_spike(self, dictionary):
        probs = [0.0] * 20
        probs[9] = 1.0
        segmenter = BandPassSegmenter(
            dictionary, _args(max_prob_propagation_distance=2, active_prob_threshold=0.05)
        )
        plain = _spans(segmenter.segment(_states(probs)))
        clipped = _spans(segmenter.segment(_states(probs, clips={10: 1.0})))
        assert plain[1] == (8, 12, True)
        assert clipped[1] == (7, 13, True)

    def test_threshold_is_inclusive(self, dictionary):
        segmenter = BandPassSegmenter(dictionary, _args(active_prob_threshold=1.0, max_prob_propagation_distance=1))
        # Every interior locus sums to 1.0 after smoothing; the edges fall short.
        regions = _spans(segmenter.segment(_states([1.0] * 6)))
        assert regions == [(1, 1, False), (2, 5, True), (6, 6, False)]


class TestSizeBounds:
    def test_inactive_runs_are_cut_at_max(self, dictionary):
        segmenter = BandPassSegmenter(
            dictionary, _args(min_assembly_region_size=5, max_assembly_region_size=10)
        )
        assert _spans(segmenter.segment(_states([0.0] * 25))) == [
            (1, 10, False),
            (11, 20, False),
            (21, 25, False),
        ]

    def test_short_tail_kept_when_merge_would_overflow(self, dictionary):
        segmenter = BandPassSegmenter(
            dictionary, _args(min_assembly_region_size=5, max_assembly_region_size=10)
        )
        assert _spans(segmenter.segment(_states([0.0] * 23))) == [
            (1, 10, False),
            (11, 20, False),
            (21, 23, False),
        ]

    def test_active_run_cut_at_local_minimum(self, dictionary):
        segmenter = BandPassSegmenter(
            dictionary, _args(min_assembly_region_size=5, max_assembly_region_size=10)
        )
        probs = [0.9] * 14
        probs[4] = 0.5
        assert _spans(segmenter.segment(_states(probs))) == [(1, 5, True), (6, 14, True)]

        probs = [0.9] * 11
        probs[7] = 0.5
        assert _spans(segmenter.segment(_states(probs))) == [(1, 8, True), (9, 11, True)]

    def test_short_tail_merged_back(self, dictionary):
        segmenter = BandPassSegmenter(
            dictionary, _args(min_assembly_region_size=5, max_assembly_region_size=10)
        )
        probs = [0.9] * 10
        probs[7] = 0.5
        assert _spans(segmenter.segment(_states(probs))) == [(1, 10, True)]

    def test_sizes_within_bounds(self, dictionary):
        rng = np.random.default_rng(7)
        probs = rng.uniform(0.0, 1.0, size=400).round(3).tolist()
        args = _args(
            min_assembly_region_size=20,
            max_assembly_region_size=60,
            max_prob_propagation_distance=5,
            active_prob_threshold=0.5,
        )
        regions = list(BandPassSegmenter(dictionary, args).segment(_states(probs)))
        assert all(r.span.length <= 60 for r in regions)
        assert regions[0].span.start == 1
        assert regions[-1].span.end == 400
        for prev, cur in zip(regions, regions[1:]):
            assert cur.span.start == prev.span.end + 1


class TestFlushing:
    def test_gap_splits_spans(self, dictionary):
        states = _states([1.0] * 5) + _states([1.0] * 5, first=8)
        segmenter = BandPassSegmenter(dictionary, _args(max_prob_propagation_distance=2))
        assert _spans(segmenter.segment(states)) == [(1, 5, True), (8, 12, True)]

    def test_contig_change_flushes(self, dictionary):
        states = _states([0.9] * 5) + _states([0.9] * 5, contig="chr2")
        regions = list(BandPassSegmenter(dictionary, _args()).segment(states))
        assert [(r.contig, r.span.start, r.span.end) for r in regions] == [
            ("chr1", 1, 5),
            ("chr2", 1, 5),
        ]

    def test_out_of_order_states_rejected(self, dictionary):
        states = _states([0.0] * 5, first=5) + _states([0.0], first=3)
        with pytest.raises(ValueError):
            list(BandPassSegmenter(dictionary, _args()).segment(states))

    def test_unknown_contig(self, dictionary):
        with pytest.raises(DataError):
            list(BandPassSegmenter(dictionary, _args()).segment(_states([0.0], contig="chrX")))

    def test_empty_input(self, dictionary):
        assert list(BandPassSegmenter(dictionary, _args()).segment([])) == []


class TestPadding:
    def test_padding_clipped_to_contig(self, dictionary):
        segmenter = BandPassSegmenter(dictionary, _args(assembly_region_padding=100))
        head = list(segmenter.segment(_states([0.9] * 10, contig="chr2")))
        tail = list(segmenter.segment(_states([0.9] * 30, contig="chr2", first=471)))
        assert head[0].extended_span == GenomicInterval("chr2", 1, 110)
        assert tail[0].extended_span == GenomicInterval("chr2", 371, 500)
        assert all(r.is_readless for r in head + tail)


class TestRanges:
    def _profile(self):
        rng = np.random.default_rng(11)
        return rng.choice([0.0, 0.05, 0.6, 0.95], size=300, p=[0.6, 0.2, 0.1, 0.1]).tolist()

    def _segmenter(self, dictionary):
        return BandPassSegmenter(
            dictionary,
            _args(
                min_assembly_region_size=10,
                max_assembly_region_size=40,
                max_prob_propagation_distance=5,
                active_prob_threshold=0.2,
                assembly_region_padding=25,
            ),
        )

    def _range(self, states, start, end):
        boundary = ShardBoundary(GenomicInterval("chr1", start, end), GenomicInterval("chr1", start, end))
        return ActivityProfileStateRange.from_states(
            boundary, [s for s in states if start <= s.position <= end]
        )

    def test_split_ranges_match_single_pass(self, dictionary):
        states = _states(self._profile(), clips={50: 3.0, 180: 8.0})
        segmenter = self._segmenter(dictionary)
        expected = list(segmenter.segment(states))
        ranges = [self._range(states, 1, 97), self._range(states, 98, 211), self._range(states, 212, 300)]
        assert list(segmenter.segment_ranges(ranges)) == expected
        assert list(segmenter.segment_ranges([self._range(states, 1, 300)])) == expected

    def test_readless_shard_acts_as_gap(self, dictionary):
        states = [s for s in _states([0.9] * 30) if not 11 <= s.position <= 15]
        segmenter = self._segmenter(dictionary)
        ranges = [self._range(states, 1, 10), self._range(states, 11, 15), self._range(states, 16, 30)]
        assert ranges[1].n_states == 0
        assert _spans(segmenter.segment_ranges(ranges)) == _spans(segmenter.segment(states))
        assert [r.span.start for r in segmenter.segment_ranges(ranges)][:2] == [1, 16]


def test_invalid_args_rejected(dictionary):
    with pytest.raises(ConfigurationError):
        BandPassSegmenter(dictionary, _args(min_assembly_region_size=60, max_assembly_region_size=50))
