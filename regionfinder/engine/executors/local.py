"""In-process partition executor.

Runs partitions one after another in the calling thread. Useful for tests,
small inputs and debugging; failure semantics match the pool executor.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from regionfinder.core.errors import JobFailedError, TransientWorkerFailure

P = TypeVar("P")
R = TypeVar("R")

_LOGGER = logging.getLogger(__name__)


def run_with_retries(func: Callable[[P], R], partition: P, max_retries: int) -> R:
    """Call ``func(partition)``, re-running it after a :class:`TransientWorkerFailure`.

    The last transient failure propagates once ``max_retries`` re-runs are
    used up.
    """
    attempt = 0
    while True:
        try:
            return func(partition)
        except TransientWorkerFailure as exc:
            if attempt >= max_retries:
                raise
            attempt += 1
            _LOGGER.warning("Transient partition failure (%s); retry %d/%d", exc, attempt, max_retries)


@dataclass(slots=True)
class SerialExecutor:
    """Sequential executor with the partition-barrier contract.

    Parameters
    ----------
    max_retries : int
        Re-runs granted to a partition raising ``TransientWorkerFailure``.
    """

    max_retries: int = 2

    def prepare(self) -> None:
        """No-op."""

    @property
    def parallelism(self) -> int:
        return 1

    def map_partitions(self, func: Callable[[P], R], partitions: Sequence[P]) -> list[R]:
        results: list[R] = []
        for idx, partition in enumerate(partitions):
            try:
                results.append(run_with_retries(func, partition, self.max_retries))
            except Exception as exc:
                raise JobFailedError(f"Partition {idx} failed: {exc}", partition=idx) from exc
        return results

    def close(self) -> None:
        """No-op."""


__all__ = ["SerialExecutor", "run_with_retries"]
