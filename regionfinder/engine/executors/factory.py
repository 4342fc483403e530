"""Factory for building partition executors from configuration.

Supports dicts, :class:`ExecutorConfig` instances and YAML/JSON config files.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from regionfinder.core.errors import ConfigurationError
from regionfinder.engine.interfaces import PartitionExecutor

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ExecutorConfig:
    """Base configuration for executors.

    Attributes
    ----------
    executor_type : str
        Type of executor: "local" or "pool".
    mode : str
        Pool flavour: "auto", "thread" or "process". Ignored by "local".
    num_workers : int | None
        Number of worker processes/threads (``None`` picks a default).
    max_retries : int
        Re-runs granted to a partition that fails transiently.
    """

    executor_type: str = "local"
    mode: str = "auto"
    num_workers: int | None = None
    max_retries: int = 2


class ExecutorFactory:
    """Factory for creating executors from configurations.

    Example
    -------
    >>> executor = ExecutorFactory.build({"executor_type": "pool", "num_workers": 4})
    >>> executor.parallelism
    4
    """

    @classmethod
    def build(cls, config: dict[str, Any] | ExecutorConfig | None = None) -> PartitionExecutor:
        """Build an executor from configuration.

        Parameters
        ----------
        config : dict | ExecutorConfig | None
            Executor configuration; ``None`` builds the default serial executor.

        Returns
        -------
        PartitionExecutor
            Configured executor instance.

        Raises
        ------
        ConfigurationError
            If executor type unknown or config invalid.
        """
        if config is None:
            cfg_dict: dict[str, Any] = {}
        elif isinstance(config, ExecutorConfig):
            cfg_dict = asdict(config)
        elif isinstance(config, dict):
            cfg_dict = config
        else:
            raise ConfigurationError(f"Invalid config type: {type(config)}")

        max_retries = cfg_dict.get("max_retries", 2)
        if max_retries is None or int(max_retries) < 0:
            raise ConfigurationError(f"max_retries must be >= 0, got {max_retries}")

        executor_type = str(cfg_dict.get("executor_type", "local")).lower()
        if executor_type == "local":
            return cls._build_local_executor(cfg_dict)
        elif executor_type == "pool":
            return cls._build_pool_executor(cfg_dict)
        else:
            raise ConfigurationError(
                f"Unknown executor type: {executor_type}. Available: local, pool"
            )

    @classmethod
    def _build_local_executor(cls, config: dict[str, Any]) -> PartitionExecutor:
        from regionfinder.engine.executors.local import SerialExecutor

        return SerialExecutor(max_retries=int(config.get("max_retries", 2)))

    @classmethod
    def _build_pool_executor(cls, config: dict[str, Any]) -> PartitionExecutor:
        from regionfinder.engine.executors.pool import LocalPoolExecutor

        mode = str(config.get("mode", "auto")).lower()
        if mode not in ("auto", "thread", "process"):
            raise ConfigurationError(f"Unknown pool mode: {mode}. Available: auto, thread, process")
        num_workers = config.get("num_workers")
        if num_workers is not None and int(num_workers) < 0:
            raise ConfigurationError(f"num_workers must be >= 0, got {num_workers}")
        return LocalPoolExecutor(
            mode=mode,  # type: ignore[arg-type]
            num_workers="auto" if num_workers is None else int(num_workers),
            max_retries=int(config.get("max_retries", 2)),
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> PartitionExecutor:
        """Build executor from a YAML file.

        Raises
        ------
        FileNotFoundError
            If config file not found.
        """
        import yaml

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            config = yaml.safe_load(f) or {}

        _LOGGER.info(f"Loaded executor config from {path}")
        return cls.build(config)

    @classmethod
    def from_json(cls, path: str | Path) -> PartitionExecutor:
        """Build executor from a JSON file.

        Raises
        ------
        FileNotFoundError
            If config file not found.
        """
        import json

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            config = json.load(f)

        _LOGGER.info(f"Loaded executor config from {path}")
        return cls.build(config)


__all__ = [
    "ExecutorConfig",
    "ExecutorFactory",
]
