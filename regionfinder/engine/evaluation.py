"""Per-partition evaluator lifecycle."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from regionfinder.core.errors import ConfigurationError
from regionfinder.engine.interfaces import ActivityEvaluator, EvaluatorFactory

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EvaluatorHandle:
    """Picklable handle shipped to every partition task.

    The handle carries the factory, never an evaluator: each partition calls
    :meth:`acquire` once and gets its own instance, which is closed when the
    partition ends, including when it fails.

    Parameters
    ----------
    factory:
        Zero-argument callable building an evaluator. For process pools it
        must be picklable (a class or a module-level function).
    requires_reference:
        Whether the evaluator needs reference bases. ``None`` reads the
        factory's ``requires_reference`` attribute, defaulting to ``False``.
    """

    factory: EvaluatorFactory
    requires_reference: bool | None = None

    @property
    def needs_reference(self) -> bool:
        if self.requires_reference is not None:
            return self.requires_reference
        return bool(getattr(self.factory, "requires_reference", False))

    def check(self, *, has_reference: bool) -> None:
        """Fail fast when the evaluator needs a reference and none is configured."""
        if self.needs_reference and not has_reference:
            name = getattr(self.factory, "__name__", type(self.factory).__name__)
            raise ConfigurationError(f"Evaluator '{name}' requires a reference source, but none was given")

    @contextmanager
    def acquire(self) -> Iterator[ActivityEvaluator]:
        evaluator = self.factory()
        try:
            yield evaluator
        finally:
            close = getattr(evaluator, "close", None)
            if callable(close):
                close()
                _LOGGER.debug("Closed evaluator %s", type(evaluator).__name__)


__all__ = ["EvaluatorHandle"]
