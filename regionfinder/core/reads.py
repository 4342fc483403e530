"""Aligned read records and an in-memory, overlap-queryable read collection."""

from __future__ import annotations

import re
from bisect import bisect_left, bisect_right
from collections import defaultdict
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Final

from regionfinder.core.errors import DataError
from regionfinder.core.interval import GenomicInterval, SequenceDictionary

# CIGAR operation codes, numbered as pysam/htslib number them.
CIGAR_MATCH: Final = 0
CIGAR_INS: Final = 1
CIGAR_DEL: Final = 2
CIGAR_REF_SKIP: Final = 3
CIGAR_SOFT_CLIP: Final = 4
CIGAR_HARD_CLIP: Final = 5
CIGAR_PAD: Final = 6
CIGAR_EQUAL: Final = 7
CIGAR_DIFF: Final = 8

_CIGAR_CODES: Final = {"M": 0, "I": 1, "D": 2, "N": 3, "S": 4, "H": 5, "P": 6, "=": 7, "X": 8}
_CIGAR_RE: Final = re.compile(r"(\d+)([MIDNSHP=X])")
_CONSUMES_REFERENCE: Final = frozenset({CIGAR_MATCH, CIGAR_DEL, CIGAR_REF_SKIP, CIGAR_EQUAL, CIGAR_DIFF})
_ALIGNED: Final = frozenset({CIGAR_MATCH, CIGAR_EQUAL, CIGAR_DIFF})

CigarTuples = tuple[tuple[int, int], ...]


def parse_cigar(cigar: str) -> CigarTuples:
    """Convert a CIGAR string such as ``"10M2D5M"`` into ``(op, length)`` tuples."""
    if cigar in ("", "*"):
        return ()
    ops = _CIGAR_RE.findall(cigar)
    if "".join(f"{n}{op}" for n, op in ops) != cigar:
        raise ValueError(f"Malformed CIGAR string: {cigar!r}")
    return tuple((_CIGAR_CODES[op], int(n)) for n, op in ops)


@dataclass(frozen=True, slots=True)
class Read:
    """An aligned read.

    ``start`` is the 1-based position of the first aligned reference base;
    ``end`` is derived from the CIGAR and is inclusive. A read without a
    CIGAR is treated as an ungapped alignment of its bases. Reads are
    immutable, so shards, regions and contexts can hold the same instance.
    """

    name: str
    contig: str
    start: int
    cigar: CigarTuples | str = ()
    bases: str = ""
    qualities: tuple[int, ...] = ()
    mapping_quality: int = 60
    end: int = field(init=False, default=0)

    def __post_init__(self) -> None:
        if isinstance(self.cigar, str):
            object.__setattr__(self, "cigar", parse_cigar(self.cigar))
        else:
            object.__setattr__(self, "cigar", tuple((int(op), int(n)) for op, n in self.cigar))
        if self.start < 1:
            raise ValueError(f"Read {self.name} has alignment start {self.start} < 1")
        if self.qualities and len(self.qualities) != len(self.bases):
            raise ValueError(f"Read {self.name} has {len(self.qualities)} qualities for {len(self.bases)} bases")
        if self.cigar:
            ref_len = sum(n for op, n in self.cigar if op in _CONSUMES_REFERENCE)
        else:
            ref_len = len(self.bases)
        object.__setattr__(self, "end", self.start + max(ref_len, 1) - 1)

    @property
    def interval(self) -> GenomicInterval:
        return GenomicInterval(self.contig, self.start, self.end)

    @property
    def reference_length(self) -> int:
        return self.end - self.start + 1

    def overlaps(self, interval: GenomicInterval) -> bool:
        return self.contig == interval.contig and self.start <= interval.end and interval.start <= self.end

    def aligned_offset(self, position: int) -> tuple[int, bool] | None:
        """Locate ``position`` on the read.

        Returns ``(read_offset, is_deletion)``; for a deletion the offset is
        the read base following the deleted span. ``None`` means the read does
        not cover the position (outside the alignment or inside a reference
        skip).
        """
        if position < self.start or position > self.end:
            return None
        if not self.cigar:
            return position - self.start, False
        ref_pos = self.start
        offset = 0
        for op, length in self.cigar:
            if op in _ALIGNED:
                if ref_pos <= position < ref_pos + length:
                    return offset + (position - ref_pos), False
                ref_pos += length
                offset += length
            elif op in (CIGAR_INS, CIGAR_SOFT_CLIP):
                offset += length
            elif op == CIGAR_DEL:
                if ref_pos <= position < ref_pos + length:
                    return offset, True
                ref_pos += length
            elif op == CIGAR_REF_SKIP:
                if ref_pos <= position < ref_pos + length:
                    return None
                ref_pos += length
        return None

    def base_at(self, offset: int) -> str | None:
        if 0 <= offset < len(self.bases):
            return self.bases[offset]
        return None

    def quality_at(self, offset: int) -> int | None:
        if 0 <= offset < len(self.qualities):
            return self.qualities[offset]
        return None

    def soft_clip_lengths(self) -> tuple[int, int]:
        """Length of the leading and trailing soft clips."""
        ops = [(op, n) for op, n in self.cigar if op != CIGAR_HARD_CLIP]
        leading = ops[0][1] if ops and ops[0][0] == CIGAR_SOFT_CLIP else 0
        trailing = ops[-1][1] if len(ops) > 1 and ops[-1][0] == CIGAR_SOFT_CLIP else 0
        return leading, trailing

    def high_quality_soft_clips(self, min_quality: int) -> int:
        """Number of soft-clipped bases with base quality >= ``min_quality``."""
        leading, trailing = self.soft_clip_lengths()
        if not self.qualities:
            return leading + trailing
        quals = self.qualities
        count = sum(1 for q in quals[:leading] if q >= min_quality)
        if trailing:
            count += sum(1 for q in quals[len(quals) - trailing :] if q >= min_quality)
        return count


class ReadCollection:
    """In-memory read source supporting interval-overlap queries.

    Reads are grouped per contig and kept in alignment-start order; reads
    sharing a start keep their input order. Queries use a binary search on
    start positions bounded by the longest reference span seen on the contig.

    Parameters
    ----------
    reads:
        Reads in any order.
    dictionary:
        When given, every read must lie on a known contig and within its
        length; violations raise :class:`DataError`.
    max_read_length:
        When given, a read spanning more reference loci raises
        :class:`DataError`.
    """

    def __init__(
        self,
        reads: Iterable[Read],
        dictionary: SequenceDictionary | None = None,
        *,
        max_read_length: int | None = None,
    ) -> None:
        by_contig: dict[str, list[Read]] = defaultdict(list)
        for read in reads:
            if dictionary is not None:
                if read.contig not in dictionary:
                    raise DataError(f"Read {read.name} is aligned to unknown contig '{read.contig}'")
                contig_length = dictionary.length(read.contig)
                if read.end > contig_length:
                    raise DataError(
                        f"Read {read.name} ends at {read.contig}:{read.end}, past the contig length {contig_length}"
                    )
            if max_read_length is not None and read.reference_length > max_read_length:
                raise DataError(
                    f"Read {read.name} spans {read.reference_length} loci, more than the maximum {max_read_length}"
                )
            by_contig[read.contig].append(read)

        self._reads: dict[str, list[Read]] = {}
        self._starts: dict[str, list[int]] = {}
        self._max_span: dict[str, int] = {}
        for contig, contig_reads in by_contig.items():
            contig_reads.sort(key=lambda r: r.start)
            self._reads[contig] = contig_reads
            self._starts[contig] = [r.start for r in contig_reads]
            self._max_span[contig] = max(r.reference_length for r in contig_reads)

    def __len__(self) -> int:
        return sum(len(v) for v in self._reads.values())

    def __iter__(self) -> Iterator[Read]:
        for contig_reads in self._reads.values():
            yield from contig_reads

    @property
    def contigs(self) -> list[str]:
        return list(self._reads)

    def reads_on(self, contig: str) -> list[Read]:
        return list(self._reads.get(contig, ()))

    def query(self, interval: GenomicInterval) -> Iterator[Read]:
        """Yield reads overlapping ``interval`` in alignment-start order."""
        starts = self._starts.get(interval.contig)
        if not starts:
            return
        reads = self._reads[interval.contig]
        lo = bisect_left(starts, interval.start - self._max_span[interval.contig] + 1)
        hi = bisect_right(starts, interval.end)
        for read in reads[lo:hi]:
            if read.end >= interval.start:
                yield read


__all__ = [
    "CIGAR_MATCH",
    "CIGAR_INS",
    "CIGAR_DEL",
    "CIGAR_REF_SKIP",
    "CIGAR_SOFT_CLIP",
    "CIGAR_HARD_CLIP",
    "CIGAR_PAD",
    "CIGAR_EQUAL",
    "CIGAR_DIFF",
    "CigarTuples",
    "parse_cigar",
    "Read",
    "ReadCollection",
]
