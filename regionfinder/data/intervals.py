"""Loading of requested scan intervals."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from regionfinder.core.interval import GenomicInterval, SequenceDictionary, merge_intervals
from regionfinder.data.features import read_bed

logger = logging.getLogger(__name__)

_LIST_SUFFIXES = (".list", ".intervals", ".interval_list")
_BED_SUFFIXES = (".bed", ".bed.gz")


def load_intervals(
    specs: str | Path | Iterable[str | Path],
    dictionary: SequenceDictionary,
) -> list[GenomicInterval]:
    """Resolve interval arguments into merged intervals in dictionary order.

    Args:
        specs: Interval strings (``chr1``, ``chr1:100-200``, ``chr1:150``) or
            paths to ``.list``/``.intervals`` files (one interval string per
            line, or Picard interval-list rows) and BED files
        dictionary: Contigs used for validation and ordering

    Returns:
        Sorted, merged intervals

    Raises:
        DataError: If an interval lies outside the dictionary
        ValueError: If an interval string cannot be parsed
    """
    if isinstance(specs, (str, Path)):
        specs = [specs]
    intervals: list[GenomicInterval] = []
    for spec in specs:
        path = Path(spec)
        name = path.name.lower()
        if name.endswith(_BED_SUFFIXES) and path.exists():
            intervals.extend(_from_bed(path))
        elif name.endswith(_LIST_SUFFIXES) and path.exists():
            intervals.extend(_from_list(path, dictionary))
        else:
            intervals.append(dictionary.parse_interval(str(spec)))
    merged = merge_intervals(intervals, dictionary)
    logger.info(f"Resolved {len(intervals)} intervals into {len(merged)} merged intervals")
    return merged


def _from_bed(path: Path) -> list[GenomicInterval]:
    frame = read_bed(path)
    return [
        GenomicInterval(str(row.contig), int(row.start) + 1, int(row.end))
        for row in frame.itertuples(index=False)
    ]


def _from_list(path: Path, dictionary: SequenceDictionary) -> list[GenomicInterval]:
    intervals: list[GenomicInterval] = []
    with open(path) as handle:
        for line in handle:
            line = line.strip()
            if not line or line.startswith(("@", "#")):
                continue
            fields = line.split("\t")
            if len(fields) >= 3:
                # Picard interval list: contig, start, end (1-based), strand, name
                intervals.append(GenomicInterval(fields[0], int(fields[1]), int(fields[2])))
            else:
                intervals.append(dictionary.parse_interval(line))
    return intervals


__all__ = ["load_intervals"]
