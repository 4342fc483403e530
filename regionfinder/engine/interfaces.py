"""Engine protocol surfaces (no implementations).

These Protocols are the seams between the region-finding core and its
collaborators. They are intentionally small.

Collaborators
=============

- **ActivityEvaluator**: turns a pileup into an activity probability. Built
  by a zero-argument factory, exactly once per partition task (see
  :class:`~regionfinder.engine.evaluation.EvaluatorHandle`).
- **ReadSource**: genome-ordered reads, queryable by interval overlap.
- **ReferenceSource** / **FeatureSource**: read-only slices of the reference
  and of annotation tracks. Each worker holds its own copy; none is mutated.
- **PartitionExecutor**: the cluster capability. Runs one function over a list
  of partitions and returns once every partition finished.

Evaluators that cannot work without reference bases declare it with a
``requires_reference = True`` attribute on the factory (or the evaluator
class); the pipelines then refuse to start without a reference source.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from typing import Protocol, TypeVar

from regionfinder.core.interval import GenomicInterval
from regionfinder.core.pileup import ReadPileup
from regionfinder.core.reads import Read
from regionfinder.engine.types import ActivityProfileState, Feature, FeatureSlice, ReferenceSlice

P = TypeVar("P")
R = TypeVar("R")


class ActivityEvaluator(Protocol):
    """Maps a locus pileup to an activity probability in ``[0, 1]``.

    Implementations may return a full :class:`ActivityProfileState` for the
    pileup's locus when they need to attach auxiliary state (soft-clip
    counts). They may keep caches between calls; they are never shared between
    partitions. An optional ``close()`` is called when the partition ends.
    """

    def is_active(
        self,
        pileup: ReadPileup,
        reference: ReferenceSlice | None,
        features: FeatureSlice | None,
    ) -> float | ActivityProfileState:
        """Return the activity probability of ``pileup.locus``."""


EvaluatorFactory = Callable[[], ActivityEvaluator]


class ReadSource(Protocol):
    """Reads ordered by alignment start, queryable by overlap."""

    def query(self, interval: GenomicInterval) -> Iterator[Read]:
        """Yield reads overlapping ``interval`` in alignment-start order."""


class ReferenceSource(Protocol):
    def slice(self, interval: GenomicInterval) -> str:
        """Return the reference bases of ``interval`` (upper case)."""


class FeatureSource(Protocol):
    def slice(self, interval: GenomicInterval) -> Sequence[Feature]:
        """Return features overlapping ``interval`` ordered by start."""


class PartitionExecutor(Protocol):
    """Runs a function over partitions, possibly in parallel.

    ``map_partitions`` is a full barrier: it returns only after every
    partition produced its result, in partition order. A failed partition
    cancels the outstanding ones and raises
    :class:`~regionfinder.core.errors.JobFailedError`.
    """

    def prepare(self) -> None:  # pragma: no cover - surface only
        """Optional heavy initialization."""

    def map_partitions(self, func: Callable[[P], R], partitions: Sequence[P]) -> list[R]:
        """Apply ``func`` to every partition and return the results in order."""

    def close(self) -> None:  # pragma: no cover - surface only
        """Optional cleanup hook for releasing resources."""

    @property
    def parallelism(self) -> int:
        """Number of partitions that can run at the same time."""
