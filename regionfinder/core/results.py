"""Result containers."""

from __future__ import annotations

import csv
import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import pandas as pd

    from regionfinder.core.interval import SequenceDictionary
    from regionfinder.engine.types import AssemblyRegionWalkerContext

COLUMNS = (
    "contig",
    "start",
    "end",
    "extended_start",
    "extended_end",
    "is_active",
    "n_reads",
    "reference_length",
    "n_features",
)


@dataclass(slots=True)
class RegionResults:
    contexts: list[AssemblyRegionWalkerContext] = field(default_factory=list)

    @classmethod
    def collect(
        cls,
        contexts: Iterable[AssemblyRegionWalkerContext],
        dictionary: SequenceDictionary | None = None,
    ) -> RegionResults:
        """Drain a pipeline; with a dictionary the regions are put in genome order."""
        items = list(contexts)
        if dictionary is not None:
            items.sort(key=lambda ctx: dictionary.sort_key(ctx.span))
        return cls(items)

    def __len__(self) -> int:
        return len(self.contexts)

    @property
    def active(self) -> list[AssemblyRegionWalkerContext]:
        return [ctx for ctx in self.contexts if ctx.region.is_active]

    def rows(self) -> list[dict[str, Any]]:
        rows = []
        for ctx in self.contexts:
            region = ctx.region
            rows.append(
                {
                    "contig": region.contig,
                    "start": region.span.start,
                    "end": region.span.end,
                    "extended_start": region.extended_span.start,
                    "extended_end": region.extended_span.end,
                    "is_active": region.is_active,
                    "n_reads": 0 if region.reads is None else len(region.reads),
                    "reference_length": 0 if ctx.reference is None else len(ctx.reference),
                    "n_features": 0 if ctx.features is None else len(ctx.features),
                }
            )
        return rows

    def summary(self) -> dict[str, Any]:
        active = self.active
        return {
            "regions": len(self.contexts),
            "active_regions": len(active),
            "loci": sum(ctx.span.length for ctx in self.contexts),
            "active_loci": sum(ctx.span.length for ctx in active),
            "contigs": sorted({ctx.region.contig for ctx in self.contexts}),
        }

    def to_frame(self) -> pd.DataFrame:
        import pandas as pd

        return pd.DataFrame(self.rows(), columns=list(COLUMNS))

    def export_json(self, path: str | Path) -> Path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        payload = {"summary": self.summary(), "regions": self.rows()}
        target.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        return target

    def export_tsv(self, path: str | Path) -> Path:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("w", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=COLUMNS, delimiter="\t")
            writer.writeheader()
            writer.writerows(self.rows())
        return target
