"""Local pool executor for parallel partition processing.

Uses threads or processes to run one function over many partitions while
preserving partition order. In process mode the function and the partitions
must be picklable.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import ClassVar, Literal, TypeVar

from regionfinder.core.errors import JobFailedError
from regionfinder.engine.executors.local import run_with_retries

P = TypeVar("P")
R = TypeVar("R")


@dataclass(slots=True)
class LocalPoolExecutor:
    """Parallel executor that preserves partition order.

    Parameters
    ----------
    mode:
        "auto" (default), "thread", or "process".
    num_workers:
        Number of workers. If 0 or "auto", an implementation-defined default is used.
    max_retries:
        Re-runs granted to a partition raising ``TransientWorkerFailure``.
        Retries happen inside the worker that met the failure.
    """

    mode: Literal["auto", "thread", "process"] = "auto"
    num_workers: int | Literal["auto"] = "auto"
    max_retries: int = 2

    _THREADS_DEFAULT: ClassVar[int] = 4

    def prepare(self) -> None:
        """No-op for now; hook for warming up workers."""

    @property
    def parallelism(self) -> int:
        if self.num_workers == "auto" or self.num_workers == 0:
            if self._resolve_mode() == "process":
                return os.cpu_count() or 1
            return self._THREADS_DEFAULT
        return max(1, int(self.num_workers))

    def _resolve_mode(self) -> str:
        # Default to threads; processes must be asked for explicitly.
        return "thread" if self.mode == "auto" else self.mode

    def map_partitions(self, func: Callable[[P], R], partitions: Sequence[P]) -> list[R]:
        """Run ``func`` over every partition and return the results in order."""
        if not partitions:
            return []

        ExecutorCls = ThreadPoolExecutor if self._resolve_mode() == "thread" else ProcessPoolExecutor
        pool = ExecutorCls(max_workers=min(self.parallelism, len(partitions)))
        task = partial(run_with_retries, func, max_retries=self.max_retries)
        futures: list[Future] = []
        results: list[R] = []
        shutdown_wait = True
        try:
            try:
                for partition in partitions:
                    futures.append(pool.submit(task, partition))
            except BaseException:
                shutdown_wait = False
                for pending in futures:
                    pending.cancel()
                raise

            # Consume futures in submission order to preserve partition order
            for idx, fut in enumerate(futures):
                try:
                    results.append(fut.result())
                except Exception as exc:
                    shutdown_wait = False
                    for pending in futures[idx + 1 :]:
                        pending.cancel()
                    raise JobFailedError(f"Partition {idx} failed: {exc}", partition=idx) from exc
                except BaseException:
                    shutdown_wait = False
                    for pending in futures[idx + 1 :]:
                        pending.cancel()
                    raise
        finally:
            pool.shutdown(wait=shutdown_wait, cancel_futures=True)

        return results

    def close(self) -> None:
        """Optional cleanup hook."""


__all__ = ["LocalPoolExecutor"]
