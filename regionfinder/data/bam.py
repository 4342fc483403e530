"""pysam-backed read source."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from regionfinder.core.interval import GenomicInterval, SequenceDictionary
from regionfinder.core.reads import Read

logger = logging.getLogger(__name__)


class BamReadSource:
    """Reads from an indexed, coordinate-sorted SAM/BAM/CRAM file.

    Unmapped, secondary and QC-failed records are always skipped; duplicates
    and supplementary alignments are skipped unless asked for. The file handle
    is opened lazily and is not pickled, so the source can be shipped to
    worker processes, each of which opens its own handle.
    """

    def __init__(
        self,
        path: str | Path,
        min_mapping_quality: int = 0,
        include_duplicates: bool = False,
        include_supplementary: bool = False,
        reference_path: str | Path | None = None,
    ):
        """Initialize BamReadSource.

        Args:
            path: Path to the alignment file (an index must sit next to it)
            min_mapping_quality: Reads below this mapping quality are skipped
            include_duplicates: Keep reads flagged as duplicates
            include_supplementary: Keep supplementary alignments
            reference_path: Reference FASTA, needed to decode CRAM
        """
        self.path = Path(path)
        self.min_mapping_quality = min_mapping_quality
        self.include_duplicates = include_duplicates
        self.include_supplementary = include_supplementary
        self.reference_path = Path(reference_path) if reference_path is not None else None
        self._bam = None

    def __getstate__(self) -> dict[str, Any]:
        state = self.__dict__.copy()
        state["_bam"] = None
        return state

    @property
    def bam(self):
        """Lazy load the alignment file."""
        if self._bam is None:
            import pysam

            logger.info(f"Opening alignment file: {self.path}")
            kwargs = {}
            if self.reference_path is not None:
                kwargs["reference_filename"] = str(self.reference_path)
            self._bam = pysam.AlignmentFile(str(self.path), **kwargs)
        return self._bam

    @property
    def dictionary(self) -> SequenceDictionary:
        return SequenceDictionary(zip(self.bam.references, self.bam.lengths))

    def query(self, interval: GenomicInterval) -> Iterator[Read]:
        """Yield reads overlapping ``interval`` in file (alignment-start) order."""
        if interval.contig not in self.bam.references:
            return
        for segment in self.bam.fetch(interval.contig, interval.start - 1, interval.end):
            if not self._keep(segment):
                continue
            yield _to_read(segment)

    def _keep(self, segment) -> bool:
        if segment.is_unmapped or segment.is_secondary or segment.is_qcfail:
            return False
        if segment.is_duplicate and not self.include_duplicates:
            return False
        if segment.is_supplementary and not self.include_supplementary:
            return False
        if not segment.cigartuples:
            return False
        return segment.mapping_quality >= self.min_mapping_quality

    def close(self) -> None:
        if self._bam is not None:
            self._bam.close()
            self._bam = None

    def __enter__(self) -> BamReadSource:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _to_read(segment) -> Read:
    qualities = segment.query_qualities
    return Read(
        name=segment.query_name or "",
        contig=segment.reference_name,
        start=segment.reference_start + 1,
        cigar=tuple(segment.cigartuples),
        bases=segment.query_sequence or "",
        qualities=tuple(qualities) if qualities is not None else (),
        mapping_quality=segment.mapping_quality,
    )


__all__ = ["BamReadSource"]
