"""Tests for interval loading."""

import pytest

from regionfinder.core.errors import DataError
from regionfinder.core.interval import GenomicInterval
from regionfinder.data.intervals import load_intervals


def test_strings_are_merged_in_dictionary_order(dictionary):
    intervals = load_intervals(["chr2", "chr1:150-300", "chr1:100-200", "chr1:301"], dictionary)
    assert intervals == [GenomicInterval("chr1", 100, 301), GenomicInterval("chr2", 1, 500)]


def test_single_string(dictionary):
    assert load_intervals("chr1:1,000", dictionary) == [GenomicInterval("chr1", 1000, 1000)]


def test_list_file(dictionary, tmp_path):
    path = tmp_path / "targets.list"
    path.write_text("# targets\nchr1:10-20\n\nchr2:5-6\n")
    assert load_intervals(path, dictionary) == [
        GenomicInterval("chr1", 10, 20),
        GenomicInterval("chr2", 5, 6),
    ]


def test_picard_interval_list(dictionary, tmp_path):
    path = tmp_path / "targets.interval_list"
    path.write_text(
        "@HD\tVN:1.6\n@SQ\tSN:chr1\tLN:1000\n"
        "chr1\t10\t20\t+\tt1\nchr1\t21\t30\t+\tt2\n"
    )
    assert load_intervals([path], dictionary) == [GenomicInterval("chr1", 10, 30)]


def test_bed_file(dictionary, tmp_path):
    path = tmp_path / "targets.bed"
    path.write_text("chr1\t0\t10\nchr2\t99\t200\n")
    assert load_intervals([str(path)], dictionary) == [
        GenomicInterval("chr1", 1, 10),
        GenomicInterval("chr2", 100, 200),
    ]


def test_outside_dictionary(dictionary):
    with pytest.raises(DataError):
        load_intervals(["chr1:900-1001"], dictionary)
    with pytest.raises(DataError):
        load_intervals(["chrX:1-10"], dictionary)


def test_malformed(dictionary):
    with pytest.raises(ValueError):
        load_intervals(["chr1:ten-twenty"], dictionary)
