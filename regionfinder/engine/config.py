"""User-facing settings for a region-finding run.

Settings are plain frozen dataclasses. ``validate()`` raises
:class:`ConfigurationError` so that bad settings fail before any partition is
submitted. Configs can be built from nested dicts, YAML or JSON files::

    regions:
      min_assembly_region_size: 50
      max_assembly_region_size: 300
    sharding:
      read_shard_size: 5000
    pipeline:
      strict: true
    executor:
      executor_type: pool
      num_workers: 8
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from regionfinder.core.errors import ConfigurationError
from regionfinder.engine.executors.factory import ExecutorConfig

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AssemblyRegionArgs:
    """Band-pass segmentation settings."""

    min_assembly_region_size: int = 50
    max_assembly_region_size: int = 300
    assembly_region_padding: int = 100
    active_prob_threshold: float = 0.002
    max_prob_propagation_distance: int = 50

    def validate(self) -> None:
        if self.min_assembly_region_size < 1:
            raise ConfigurationError(
                f"min_assembly_region_size must be >= 1, got {self.min_assembly_region_size}"
            )
        if self.max_assembly_region_size < 1:
            raise ConfigurationError(
                f"max_assembly_region_size must be >= 1, got {self.max_assembly_region_size}"
            )
        if self.min_assembly_region_size > self.max_assembly_region_size:
            raise ConfigurationError(
                "min_assembly_region_size "
                f"({self.min_assembly_region_size}) exceeds max_assembly_region_size "
                f"({self.max_assembly_region_size})"
            )
        if self.assembly_region_padding < 0:
            raise ConfigurationError(
                f"assembly_region_padding must be >= 0, got {self.assembly_region_padding}"
            )
        if not 0.0 <= self.active_prob_threshold <= 1.0:
            raise ConfigurationError(
                f"active_prob_threshold must be in [0, 1], got {self.active_prob_threshold}"
            )
        if self.max_prob_propagation_distance < 0:
            raise ConfigurationError(
                "max_prob_propagation_distance must be >= 0, "
                f"got {self.max_prob_propagation_distance}"
            )


@dataclass(frozen=True, slots=True)
class ReadShardArgs:
    """Sharding settings.

    ``read_shard_size`` is both the maximum core length of a shard and the
    longest reference span a read may have.
    """

    read_shard_size: int = 5000
    read_shard_padding: int = 100

    def validate(self) -> None:
        if self.read_shard_size < 1:
            raise ConfigurationError(f"read_shard_size must be >= 1, got {self.read_shard_size}")
        if self.read_shard_padding < 0:
            raise ConfigurationError(
                f"read_shard_padding must be >= 0, got {self.read_shard_padding}"
            )


@dataclass(frozen=True, slots=True)
class RegionFinderConfig:
    """Everything a pipeline run needs besides its inputs.

    ``rebalance`` only affects the fast pipeline. ``max_reads_per_alignment_start``
    of ``0`` disables downsampling.
    """

    regions: AssemblyRegionArgs = field(default_factory=AssemblyRegionArgs)
    sharding: ReadShardArgs = field(default_factory=ReadShardArgs)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    max_reads_per_alignment_start: int = 50
    include_reads_with_deletions_in_is_active_pileups: bool = True
    rebalance: bool = False
    strict: bool = False

    def validate(self) -> None:
        self.regions.validate()
        self.sharding.validate()
        if self.max_reads_per_alignment_start < 0:
            raise ConfigurationError(
                "max_reads_per_alignment_start must be >= 0, "
                f"got {self.max_reads_per_alignment_start}"
            )
        if self.rebalance and self.strict:
            _LOGGER.warning("rebalance only applies to the fast pipeline; ignored in strict mode")

    def to_dict(self) -> dict[str, Any]:
        return {
            "regions": asdict(self.regions),
            "sharding": asdict(self.sharding),
            "executor": asdict(self.executor),
            "pipeline": {
                "max_reads_per_alignment_start": self.max_reads_per_alignment_start,
                "include_reads_with_deletions_in_is_active_pileups": (
                    self.include_reads_with_deletions_in_is_active_pileups
                ),
                "rebalance": self.rebalance,
                "strict": self.strict,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RegionFinderConfig:
        """Build a config from the nested ``regions/sharding/executor/pipeline`` layout."""
        data = dict(data or {})
        unknown = set(data) - {"regions", "sharding", "executor", "pipeline"}
        if unknown:
            raise ConfigurationError(f"Unknown config sections: {sorted(unknown)}")

        config = cls(
            regions=_build_section(AssemblyRegionArgs, data.get("regions"), "regions"),
            sharding=_build_section(ReadShardArgs, data.get("sharding"), "sharding"),
            executor=_build_section(ExecutorConfig, data.get("executor"), "executor"),
            **_pipeline_options(data.get("pipeline")),
        )
        config.validate()
        return config

    @classmethod
    def from_yaml(cls, path: str | Path) -> RegionFinderConfig:
        import yaml

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = yaml.safe_load(f)
        _LOGGER.info("Loaded region finder config from %s", path)
        return cls.from_dict(data)

    @classmethod
    def from_json(cls, path: str | Path) -> RegionFinderConfig:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        _LOGGER.info("Loaded region finder config from %s", path)
        return cls.from_dict(data)


_PIPELINE_KEYS = (
    "max_reads_per_alignment_start",
    "include_reads_with_deletions_in_is_active_pileups",
    "rebalance",
    "strict",
)


def _build_section(section_cls: type, values: dict[str, Any] | None, name: str) -> Any:
    values = dict(values or {})
    allowed = {f.name for f in fields(section_cls)}
    unknown = set(values) - allowed
    if unknown:
        raise ConfigurationError(f"Unknown keys in '{name}' section: {sorted(unknown)}")
    return section_cls(**values)


def _pipeline_options(values: dict[str, Any] | None) -> dict[str, Any]:
    values = dict(values or {})
    unknown = set(values) - set(_PIPELINE_KEYS)
    if unknown:
        raise ConfigurationError(f"Unknown keys in 'pipeline' section: {sorted(unknown)}")
    return values


__all__ = [
    "AssemblyRegionArgs",
    "ReadShardArgs",
    "RegionFinderConfig",
]
