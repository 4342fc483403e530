"""Partition executors.

``SerialExecutor`` runs partitions in-process one after another;
``LocalPoolExecutor`` fans them out to a thread or process pool. Both honour
the same barrier, ordering and retry contract.
"""

from .factory import ExecutorConfig, ExecutorFactory
from .local import SerialExecutor
from .pool import LocalPoolExecutor

__all__ = [
    "ExecutorConfig",
    "ExecutorFactory",
    "LocalPoolExecutor",
    "SerialExecutor",
]
