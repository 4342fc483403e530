"""Reference sequence sources."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from regionfinder.core.errors import DataError
from regionfinder.core.interval import GenomicInterval, SequenceDictionary
from regionfinder.utils.validation import ensure_bases

logger = logging.getLogger(__name__)


class FastaReferenceSource:
    """Reference bases from an indexed FASTA file (``.fai`` next to it).

    The handle is opened lazily and dropped when pickled.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._fasta = None

    def __getstate__(self) -> dict[str, Any]:
        state = self.__dict__.copy()
        state["_fasta"] = None
        return state

    @property
    def fasta(self):
        """Lazy load FASTA file."""
        if self._fasta is None:
            import pysam

            logger.info(f"Loading FASTA file: {self.path}")
            self._fasta = pysam.FastaFile(str(self.path))
        return self._fasta

    @property
    def dictionary(self) -> SequenceDictionary:
        return SequenceDictionary(zip(self.fasta.references, self.fasta.lengths))

    def slice(self, interval: GenomicInterval) -> str:
        if interval.contig not in self.fasta.references:
            raise DataError(f"Contig '{interval.contig}' is not in {self.path}")
        contig_length = self.fasta.get_reference_length(interval.contig)
        if interval.end > contig_length:
            raise DataError(f"{interval} extends past the end of {interval.contig} (length {contig_length})")
        bases = self.fasta.fetch(interval.contig, interval.start - 1, interval.end)
        return ensure_bases(bases, context=str(interval))

    def close(self) -> None:
        if self._fasta is not None:
            self._fasta.close()
            self._fasta = None


class InMemoryReferenceSource:
    """Reference bases held in a ``{contig: sequence}`` mapping."""

    def __init__(self, sequences: Mapping[str, str]):
        self._sequences = {
            contig: ensure_bases(bases, context=f"contig {contig}") for contig, bases in sequences.items()
        }

    @property
    def dictionary(self) -> SequenceDictionary:
        return SequenceDictionary((contig, len(bases)) for contig, bases in self._sequences.items())

    def slice(self, interval: GenomicInterval) -> str:
        try:
            bases = self._sequences[interval.contig]
        except KeyError:
            raise DataError(f"Contig '{interval.contig}' has no reference sequence") from None
        if interval.end > len(bases):
            raise DataError(f"{interval} extends past the end of {interval.contig} (length {len(bases)})")
        return bases[interval.start - 1 : interval.end]


__all__ = ["FastaReferenceSource", "InMemoryReferenceSource"]
