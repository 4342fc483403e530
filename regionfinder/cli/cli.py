"""regionfinder command-line interface.

Example config::

    inputs:
      reads: sample.bam
      reference: ref.fa
      features: genes.bed
      intervals: [chr20, "chr21:1-5000000"]
    evaluator:
      name: mismatch
      params: {min_depth: 6}
    regions:
      max_assembly_region_size: 300
    pipeline:
      strict: true
    executor:
      executor_type: pool
      num_workers: 8
"""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any

import yaml

from regionfinder.core.errors import ConfigurationError
from regionfinder.core.results import RegionResults
from regionfinder.data import (
    BamReadSource,
    FastaReferenceSource,
    InMemoryFeatureSource,
    TabixFeatureSource,
    load_intervals,
)
from regionfinder.engine import RegionFinderConfig, find_assembly_regions
from regionfinder.engine.evaluation import EvaluatorHandle
from regionfinder.evaluators import evaluator_from_name
from regionfinder.utils import get_logger

_CONFIG_SECTIONS = ("regions", "sharding", "executor", "pipeline")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Find active assembly regions in aligned reads")
    subparsers = parser.add_subparsers(dest="command")

    find_parser = subparsers.add_parser("find", help="Find assembly regions from a config file")
    find_parser.add_argument("config", help="Path to YAML/JSON config file")
    find_parser.add_argument(
        "--strict",
        action="store_true",
        help="Segment whole contigs (shard-size independent) instead of single shards",
    )
    find_parser.add_argument("--output", "-o", help="Write one row per region to this file")
    find_parser.add_argument(
        "--format",
        choices=["tsv", "json"],
        default="tsv",
        help="Output format (default: tsv)",
    )
    find_parser.add_argument("--verbose", "-v", action="store_true", help="Log debug messages")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "find":
        get_logger(level=logging.DEBUG if args.verbose else logging.INFO)
        return _find(Path(args.config), strict=args.strict, output=args.output, fmt=args.format)

    parser.print_help()
    return 0


def _find(path: Path, *, strict: bool, output: str | None, fmt: str) -> int:
    logger = logging.getLogger(__name__)
    data = _load_config(path)
    inputs = data.get("inputs") or {}
    if not inputs.get("reads"):
        raise ConfigurationError("inputs.reads is required")

    config = RegionFinderConfig.from_dict({key: data[key] for key in _CONFIG_SECTIONS if key in data})
    if strict:
        config = replace(config, strict=True)

    reference_path = inputs.get("reference")
    reads = BamReadSource(
        inputs["reads"],
        min_mapping_quality=int(inputs.get("min_mapping_quality", 0)),
        reference_path=reference_path,
    )
    reference = FastaReferenceSource(reference_path) if reference_path else None
    try:
        dictionary = reference.dictionary if reference is not None else reads.dictionary
        intervals = load_intervals(inputs["intervals"], dictionary) if inputs.get("intervals") else None
        contexts = find_assembly_regions(
            reads,
            dictionary,
            _build_evaluator(data.get("evaluator")),
            intervals,
            config=config,
            reference=reference,
            features=_build_features(inputs.get("features")),
        )
        results = RegionResults.collect(contexts, dictionary)
    finally:
        reads.close()
        if reference is not None:
            reference.close()

    if output:
        target = results.export_json(output) if fmt == "json" else results.export_tsv(output)
        logger.info(f"Wrote {len(results)} regions to {target}")
    print(json.dumps(results.summary(), indent=2))
    return 0


def _load_config(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    if path.suffix.lower() in {".json"}:
        return json.loads(path.read_text())
    return yaml.safe_load(path.read_text()) or {}


def _build_evaluator(cfg: dict[str, Any] | None) -> EvaluatorHandle:
    cfg = cfg or {}
    name = cfg.get("name", "mismatch")
    params = cfg.get("params", {})
    return evaluator_from_name(name, **params)


def _build_features(path: str | None) -> InMemoryFeatureSource | TabixFeatureSource | None:
    if not path:
        return None
    features_path = Path(path)
    if features_path.suffix == ".gz" and Path(f"{features_path}.tbi").exists():
        return TabixFeatureSource(features_path)
    return InMemoryFeatureSource.from_bed(features_path)


if __name__ == "__main__":
    raise SystemExit(main())
