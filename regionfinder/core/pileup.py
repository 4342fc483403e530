"""Per-locus read pileups."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from regionfinder.core.interval import GenomicInterval
from regionfinder.core.reads import Read


@dataclass(frozen=True, slots=True)
class PileupElement:
    """One read's contribution to a locus."""

    read: Read
    offset: int
    is_deletion: bool = False

    @property
    def base(self) -> str | None:
        if self.is_deletion:
            return None
        return self.read.base_at(self.offset)

    @property
    def quality(self) -> int | None:
        if self.is_deletion:
            return None
        return self.read.quality_at(self.offset)


@dataclass(frozen=True, slots=True)
class ReadPileup:
    locus: GenomicInterval
    elements: tuple[PileupElement, ...] = ()

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self) -> Iterator[PileupElement]:
        return iter(self.elements)

    @property
    def depth(self) -> int:
        return len(self.elements)

    @property
    def position(self) -> int:
        return self.locus.start

    def base_counts(self) -> Counter[str]:
        """Counts of observed bases (upper-cased); deletions are counted as ``"-"``."""
        counts: Counter[str] = Counter()
        for element in self.elements:
            if element.is_deletion:
                counts["-"] += 1
            else:
                base = element.base
                if base is not None:
                    counts[base.upper()] += 1
        return counts

    def reads(self) -> list[Read]:
        return [e.read for e in self.elements]


def iter_pileups(
    reads: Sequence[Read],
    interval: GenomicInterval,
    *,
    include_deletions: bool = True,
) -> Iterator[ReadPileup]:
    """Sweep ``interval`` locus by locus, yielding the pileup at each position.

    ``reads`` must be ordered by alignment start. Reads on other contigs are
    ignored. When ``include_deletions`` is false, reads with a deletion at a
    locus are left out of that locus' pileup. Every locus of ``interval``
    gets a pileup, empty where no read aligns.
    """
    active: list[Read] = []
    idx = 0
    n_reads = len(reads)
    for pos in range(interval.start, interval.end + 1):
        while idx < n_reads and reads[idx].start <= pos:
            read = reads[idx]
            if read.contig == interval.contig:
                active.append(read)
            idx += 1
        active = [r for r in active if r.end >= pos]

        elements: list[PileupElement] = []
        for read in active:
            located = read.aligned_offset(pos)
            if located is None:
                continue
            offset, is_deletion = located
            if is_deletion and not include_deletions:
                continue
            elements.append(PileupElement(read, offset, is_deletion))
        yield ReadPileup(GenomicInterval(interval.contig, pos, pos), tuple(elements))


__all__ = ["PileupElement", "ReadPileup", "iter_pileups"]
