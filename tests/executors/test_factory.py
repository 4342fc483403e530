"""Tests for ExecutorFactory."""

import json

import pytest

from regionfinder.core.errors import ConfigurationError
from regionfinder.engine.executors.factory import ExecutorConfig, ExecutorFactory
from regionfinder.engine.executors.local import SerialExecutor
from regionfinder.engine.executors.pool import LocalPoolExecutor


class TestExecutorFactory:
    """Test ExecutorFactory."""

    def test_default_is_serial(self) -> None:
        """No config builds the serial executor."""
        assert isinstance(ExecutorFactory.build(), SerialExecutor)

    def test_build_local_executor(self) -> None:
        """Build SerialExecutor from config."""
        executor = ExecutorFactory.build({"executor_type": "local", "max_retries": 4})
        assert isinstance(executor, SerialExecutor)
        assert executor.max_retries == 4

    def test_build_pool_executor(self) -> None:
        """Build LocalPoolExecutor from config."""
        executor = ExecutorFactory.build({"executor_type": "pool", "num_workers": 4, "mode": "thread"})
        assert isinstance(executor, LocalPoolExecutor)
        assert executor.parallelism == 4
        assert executor.mode == "thread"

    def test_pool_defaults_to_auto_workers(self) -> None:
        executor = ExecutorFactory.build({"executor_type": "pool"})
        assert executor.num_workers == "auto"

    def test_from_executor_config(self) -> None:
        """Build from ExecutorConfig dataclass."""
        executor = ExecutorFactory.build(ExecutorConfig(executor_type="pool", num_workers=2))
        assert isinstance(executor, LocalPoolExecutor)
        assert executor.parallelism == 2

    def test_unknown_executor_type(self) -> None:
        """Unknown executor type raises error."""
        with pytest.raises(ConfigurationError):
            ExecutorFactory.build({"executor_type": "spark"})

    def test_invalid_config_type(self) -> None:
        """Invalid config type raises error."""
        with pytest.raises(ValueError):
            ExecutorFactory.build("invalid")  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        "config",
        [
            {"executor_type": "pool", "mode": "gpu"},
            {"executor_type": "pool", "num_workers": -1},
            {"executor_type": "local", "max_retries": -1},
        ],
    )
    def test_invalid_values(self, config) -> None:
        with pytest.raises(ConfigurationError):
            ExecutorFactory.build(config)

    def test_from_yaml(self, tmp_path) -> None:
        path = tmp_path / "executor.yaml"
        path.write_text("executor_type: pool\nnum_workers: 3\n")
        executor = ExecutorFactory.from_yaml(path)
        assert executor.parallelism == 3

    def test_from_json(self, tmp_path) -> None:
        path = tmp_path / "executor.json"
        path.write_text(json.dumps({"executor_type": "local"}))
        assert isinstance(ExecutorFactory.from_json(path), SerialExecutor)

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            ExecutorFactory.from_yaml(tmp_path / "missing.yaml")
