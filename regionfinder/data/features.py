"""Feature annotation sources (BED records)."""

from __future__ import annotations

import gzip
import io
import logging
from bisect import bisect_right
from collections import defaultdict
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from regionfinder.core.interval import GenomicInterval
from regionfinder.engine.types import Feature

logger = logging.getLogger(__name__)

_BED_COLUMNS = ["contig", "start", "end", "name", "score", "strand"]


class InMemoryFeatureSource:
    """Features indexed per contig for overlap queries."""

    def __init__(self, features: Iterable[Feature]):
        by_contig: dict[str, list[Feature]] = defaultdict(list)
        for feature in features:
            by_contig[feature.interval.contig].append(feature)
        self._features: dict[str, list[Feature]] = {}
        self._starts: dict[str, list[int]] = {}
        self._max_length: dict[str, int] = {}
        for contig, contig_features in by_contig.items():
            contig_features.sort(key=lambda f: (f.interval.start, f.interval.end))
            self._features[contig] = contig_features
            self._starts[contig] = [f.interval.start for f in contig_features]
            self._max_length[contig] = max(f.interval.length for f in contig_features)

    def __len__(self) -> int:
        return sum(len(v) for v in self._features.values())

    def slice(self, interval: GenomicInterval) -> list[Feature]:
        features = self._features.get(interval.contig)
        if not features:
            return []
        starts = self._starts[interval.contig]
        lo = bisect_right(starts, interval.start - self._max_length[interval.contig])
        hi = bisect_right(starts, interval.end)
        return [f for f in features[lo:hi] if f.interval.overlaps(interval)]

    @classmethod
    def from_bed(cls, path: str | Path) -> InMemoryFeatureSource:
        """Load a (possibly gzipped) BED file with pandas.

        Args:
            path: BED file; ``track``/``browser`` lines and ``#`` comments are skipped

        Returns:
            Source holding every record, converted to 1-based inclusive intervals
        """
        frame = read_bed(path)
        features = [
            Feature(
                interval=GenomicInterval(str(row.contig), int(row.start) + 1, int(row.end)),
                name=row.name or "",
                score=_parse_score(row.score),
                strand=row.strand or ".",
                source=Path(path).name,
            )
            for row in frame.itertuples(index=False)
        ]
        logger.info(f"Loaded {len(features)} features from {path}")
        return cls(features)


class TabixFeatureSource:
    """Features from a bgzipped, tabix-indexed BED file.

    The handle is opened lazily and dropped when pickled.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._tabix = None

    def __getstate__(self) -> dict[str, Any]:
        state = self.__dict__.copy()
        state["_tabix"] = None
        return state

    @property
    def tabix(self):
        """Lazy load the tabix index."""
        if self._tabix is None:
            import pysam

            logger.info(f"Opening tabix file: {self.path}")
            self._tabix = pysam.TabixFile(str(self.path))
        return self._tabix

    def slice(self, interval: GenomicInterval) -> list[Feature]:
        import pysam

        if interval.contig not in self.tabix.contigs:
            return []
        features = []
        rows = self.tabix.fetch(interval.contig, interval.start - 1, interval.end, parser=pysam.asTuple())
        for fields in rows:
            features.append(
                Feature(
                    interval=GenomicInterval(fields[0], int(fields[1]) + 1, int(fields[2])),
                    name=fields[3] if len(fields) > 3 else "",
                    score=_parse_score(fields[4]) if len(fields) > 4 else None,
                    strand=fields[5] if len(fields) > 5 else ".",
                    source=self.path.name,
                )
            )
        features.sort(key=lambda f: f.interval.start)
        return features

    def close(self) -> None:
        if self._tabix is not None:
            self._tabix.close()
            self._tabix = None


def read_bed(path: str | Path):
    """Read the first six BED columns into a DataFrame of strings.

    ``start``/``end`` are converted to int; optional columns missing from the
    file hold ``None``. ``track``/``browser`` lines and ``#`` comments are
    skipped.
    """
    import pandas as pd

    path = Path(path)
    opener = gzip.open if path.suffix == ".gz" else open
    with opener(path, "rt") as handle:
        lines = [
            line
            for line in handle
            if line.strip() and not line.startswith(("#", "track", "browser"))
        ]
    if not lines:
        return pd.DataFrame(columns=_BED_COLUMNS)
    frame = pd.read_csv(
        io.StringIO("".join(lines)),
        sep="\t",
        header=None,
        dtype=str,
        keep_default_na=False,
    )
    frame = frame.iloc[:, : len(_BED_COLUMNS)].copy()
    frame.columns = _BED_COLUMNS[: frame.shape[1]]
    for column in _BED_COLUMNS[frame.shape[1] :]:
        frame[column] = None
    return frame.astype({"start": int, "end": int})


def _parse_score(value: Any) -> float | None:
    if value is None or value in ("", "."):
        return None
    return float(value)


__all__ = ["InMemoryFeatureSource", "TabixFeatureSource", "read_bed"]
