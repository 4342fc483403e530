"""Genomic coordinate primitives.

All coordinates are 1-based with an inclusive end, matching the way loci are
reported by variant callers. Conversions to pysam's 0-based half-open
convention happen only inside the adapters under ``regionfinder.data``.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path

from regionfinder.core.errors import DataError


@dataclass(frozen=True, slots=True, order=True)
class GenomicInterval:
    """Contiguous span ``contig:start-end`` (1-based, inclusive)."""

    contig: str
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 1:
            raise ValueError(f"Interval start must be >= 1, got {self.start}")
        if self.end < self.start:
            raise ValueError(f"Interval end {self.end} precedes start {self.start}")

    def __len__(self) -> int:
        return self.end - self.start + 1

    def __str__(self) -> str:
        return f"{self.contig}:{self.start}-{self.end}"

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def overlaps(self, other: GenomicInterval) -> bool:
        return (
            self.contig == other.contig
            and self.start <= other.end
            and other.start <= self.end
        )

    def contains(self, other: GenomicInterval) -> bool:
        return (
            self.contig == other.contig
            and self.start <= other.start
            and other.end <= self.end
        )

    def contains_position(self, contig: str, position: int) -> bool:
        return self.contig == contig and self.start <= position <= self.end

    def intersect(self, other: GenomicInterval) -> GenomicInterval | None:
        """Return the shared span, or ``None`` when the intervals are disjoint."""
        if not self.overlaps(other):
            return None
        return GenomicInterval(self.contig, max(self.start, other.start), min(self.end, other.end))

    def expand_within(self, padding: int, contig_length: int) -> GenomicInterval:
        """Pad both sides by ``padding`` loci, clipped to ``[1, contig_length]``."""
        return GenomicInterval(
            self.contig,
            max(1, self.start - padding),
            min(contig_length, self.end + padding),
        )

    def loci(self) -> Iterator[GenomicInterval]:
        """Yield one single-locus interval per position, in order."""
        for pos in range(self.start, self.end + 1):
            yield GenomicInterval(self.contig, pos, pos)

    @classmethod
    def locus(cls, contig: str, position: int) -> GenomicInterval:
        return cls(contig, position, position)

    @classmethod
    def parse(cls, text: str) -> GenomicInterval:
        """Parse ``contig:start-end`` or ``contig:pos``.

        Contig names may themselves contain ``:``, so the split happens at the
        last colon. Thousands separators (``1,000``) are accepted.
        """
        contig, sep, span = text.strip().rpartition(":")
        if not sep or not contig:
            raise ValueError(f"Interval '{text}' needs a 'contig:start-end' form")
        span = span.replace(",", "")
        try:
            if "-" in span:
                start_str, end_str = span.split("-", 1)
                return cls(contig, int(start_str), int(end_str))
            pos = int(span)
        except ValueError as exc:
            raise ValueError(f"Cannot parse interval '{text}'") from exc
        return cls(contig, pos, pos)


@dataclass(frozen=True, slots=True)
class ShardBoundary:
    """Core interval plus the padded interval used to gather context reads."""

    interval: GenomicInterval
    padded: GenomicInterval

    def __post_init__(self) -> None:
        if not self.padded.contains(self.interval):
            raise ValueError(
                f"Padded interval {self.padded} must contain core interval {self.interval}"
            )

    @property
    def contig(self) -> str:
        return self.interval.contig

    @property
    def start(self) -> int:
        return self.interval.start

    @property
    def end(self) -> int:
        return self.interval.end

    @classmethod
    def from_interval(
        cls, interval: GenomicInterval, padding: int, contig_length: int
    ) -> ShardBoundary:
        return cls(interval, interval.expand_within(padding, contig_length))

    def __str__(self) -> str:
        return f"{self.interval} (padded {self.padded})"


@dataclass(frozen=True, slots=True)
class ContigRecord:
    name: str
    length: int
    index: int


class SequenceDictionary:
    """Ordered contigs with their lengths.

    The dictionary order is the genome order used whenever contigs have to be
    compared, e.g. when sorting requested intervals.
    """

    __slots__ = ("_records", "_by_name")

    def __init__(self, contigs: Iterable[tuple[str, int]]) -> None:
        records: list[ContigRecord] = []
        by_name: dict[str, ContigRecord] = {}
        for idx, (name, length) in enumerate(contigs):
            if name in by_name:
                raise ValueError(f"Duplicate contig in sequence dictionary: {name}")
            if int(length) < 1:
                raise ValueError(f"Contig {name} has non-positive length {length}")
            record = ContigRecord(name=str(name), length=int(length), index=idx)
            records.append(record)
            by_name[record.name] = record
        self._records = tuple(records)
        self._by_name = by_name

    def __getstate__(self) -> dict[str, object]:
        return {"contigs": [(r.name, r.length) for r in self._records]}

    def __setstate__(self, state: dict[str, object]) -> None:
        self.__init__(state["contigs"])  # type: ignore[misc,arg-type]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ContigRecord]:
        return iter(self._records)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SequenceDictionary):
            return NotImplemented
        return self._records == other._records

    def __repr__(self) -> str:
        return f"SequenceDictionary({[(r.name, r.length) for r in self._records]!r})"

    @property
    def names(self) -> list[str]:
        return [r.name for r in self._records]

    def get(self, name: str) -> ContigRecord:
        try:
            return self._by_name[name]
        except KeyError:
            raise DataError(f"Contig '{name}' is not in the sequence dictionary") from None

    def length(self, name: str) -> int:
        return self.get(name).length

    def index(self, name: str) -> int:
        return self.get(name).index

    def contig_interval(self, name: str) -> GenomicInterval:
        return GenomicInterval(name, 1, self.length(name))

    def validate_interval(self, interval: GenomicInterval) -> GenomicInterval:
        record = self.get(interval.contig)
        if interval.end > record.length:
            raise DataError(
                f"Interval {interval} extends past the end of {record.name} (length {record.length})"
            )
        return interval

    def sort_key(self, interval: GenomicInterval) -> tuple[int, int, int]:
        return (self.index(interval.contig), interval.start, interval.end)

    def parse_interval(self, text: str) -> GenomicInterval:
        """Parse an interval string, accepting a bare contig name for the whole contig."""
        stripped = text.strip()
        if stripped in self._by_name:
            return self.contig_interval(stripped)
        return self.validate_interval(GenomicInterval.parse(stripped))

    @classmethod
    def from_mapping(cls, lengths: Mapping[str, int]) -> SequenceDictionary:
        return cls(lengths.items())

    @classmethod
    def from_fasta(cls, path: str | Path) -> SequenceDictionary:
        """Read contig names and lengths from an indexed FASTA file."""
        import pysam

        with pysam.FastaFile(str(path)) as fasta:
            return cls(zip(fasta.references, fasta.lengths))

    @classmethod
    def from_bam(cls, path: str | Path) -> SequenceDictionary:
        """Read contig names and lengths from a SAM/BAM/CRAM header."""
        import pysam

        with pysam.AlignmentFile(str(path)) as handle:
            return cls(zip(handle.references, handle.lengths))


def merge_intervals(
    intervals: Iterable[GenomicInterval], dictionary: SequenceDictionary
) -> list[GenomicInterval]:
    """Sort intervals in dictionary order and merge overlapping or abutting ones."""
    ordered = sorted(
        (dictionary.validate_interval(i) for i in intervals), key=dictionary.sort_key
    )
    merged: list[GenomicInterval] = []
    for interval in ordered:
        if merged and merged[-1].contig == interval.contig and interval.start <= merged[-1].end + 1:
            last = merged[-1]
            merged[-1] = GenomicInterval(last.contig, last.start, max(last.end, interval.end))
        else:
            merged.append(interval)
    return merged


__all__ = [
    "GenomicInterval",
    "ShardBoundary",
    "ContigRecord",
    "SequenceDictionary",
    "merge_intervals",
]
