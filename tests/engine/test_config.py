"""Tests for run configuration."""

import json

import pytest

from regionfinder.core.errors import ConfigurationError
from regionfinder.engine.config import AssemblyRegionArgs, ReadShardArgs, RegionFinderConfig
from regionfinder.engine.executors import ExecutorConfig


class TestAssemblyRegionArgs:
    def test_defaults(self):
        args = AssemblyRegionArgs()
        args.validate()
        assert args.min_assembly_region_size == 50
        assert args.max_assembly_region_size == 300
        assert args.assembly_region_padding == 100
        assert args.active_prob_threshold == 0.002
        assert args.max_prob_propagation_distance == 50

    @pytest.mark.parametrize(
        "overrides",
        [
            {"min_assembly_region_size": 0},
            {"max_assembly_region_size": 0},
            {"min_assembly_region_size": 400},
            {"assembly_region_padding": -1},
            {"active_prob_threshold": 1.5},
            {"active_prob_threshold": -0.1},
            {"max_prob_propagation_distance": -1},
        ],
    )
    def test_invalid(self, overrides):
        with pytest.raises(ConfigurationError):
            AssemblyRegionArgs(**overrides).validate()


class TestReadShardArgs:
    def test_invalid(self):
        with pytest.raises(ConfigurationError):
            ReadShardArgs(read_shard_size=0).validate()
        with pytest.raises(ConfigurationError):
            ReadShardArgs(read_shard_padding=-5).validate()


class TestRegionFinderConfig:
    def test_negative_downsampling_limit(self):
        with pytest.raises(ConfigurationError):
            RegionFinderConfig(max_reads_per_alignment_start=-1).validate()

    def test_round_trip_dict(self):
        config = RegionFinderConfig(
            regions=AssemblyRegionArgs(max_assembly_region_size=500),
            sharding=ReadShardArgs(read_shard_size=1000),
            executor=ExecutorConfig(executor_type="pool", num_workers=2),
            strict=True,
        )
        assert RegionFinderConfig.from_dict(config.to_dict()) == config

    def test_from_dict_defaults(self):
        assert RegionFinderConfig.from_dict(None) == RegionFinderConfig()
        assert RegionFinderConfig.from_dict({"pipeline": {"strict": True}}).strict

    def test_from_dict_rejects_unknown(self):
        with pytest.raises(ConfigurationError):
            RegionFinderConfig.from_dict({"regionz": {}})
        with pytest.raises(ConfigurationError):
            RegionFinderConfig.from_dict({"regions": {"max_size": 10}})
        with pytest.raises(ConfigurationError):
            RegionFinderConfig.from_dict({"pipeline": {"fast": True}})

    def test_from_dict_validates(self):
        with pytest.raises(ConfigurationError):
            RegionFinderConfig.from_dict({"regions": {"min_assembly_region_size": 0}})

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "regions:\n"
            "  max_assembly_region_size: 1000\n"
            "sharding:\n"
            "  read_shard_size: 250\n"
            "pipeline:\n"
            "  strict: true\n"
            "  max_reads_per_alignment_start: 0\n"
        )
        config = RegionFinderConfig.from_yaml(path)
        assert config.regions.max_assembly_region_size == 1000
        assert config.sharding.read_shard_size == 250
        assert config.strict
        assert config.max_reads_per_alignment_start == 0

    def test_from_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"executor": {"executor_type": "local"}, "pipeline": {"rebalance": True}}))
        config = RegionFinderConfig.from_json(path)
        assert config.rebalance
        assert config.executor.executor_type == "local"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            RegionFinderConfig.from_yaml(tmp_path / "missing.yaml")
        with pytest.raises(FileNotFoundError):
            RegionFinderConfig.from_json(tmp_path / "missing.json")
