"""Evaluator registry surface.

Provides a small factory to obtain an evaluator handle by name.
"""

from __future__ import annotations

from functools import partial
from typing import Final

from regionfinder.core.errors import ConfigurationError
from regionfinder.engine.evaluation import EvaluatorHandle
from regionfinder.evaluators.mismatch import MismatchEvaluator

_REGISTRY: Final[dict[str, type]] = {
    "mismatch": MismatchEvaluator,
}


def evaluator_from_name(name: str, **params: object) -> EvaluatorHandle:
    """Return a handle building the named evaluator once per partition.

    Raises ConfigurationError for unknown evaluators.

    Parameters
    ----------
    name : str
        Evaluator name: "mismatch"
    **params : object
        Constructor parameters (e.g., min_depth, min_base_quality)

    Returns
    -------
    EvaluatorHandle
        Picklable handle wrapping the evaluator class and its parameters
    """
    key = name.lower()
    if key not in _REGISTRY:
        raise ConfigurationError(f"Unknown evaluator: {name}. Available: {list(_REGISTRY.keys())}")
    cls = _REGISTRY[key]
    try:
        cls(**params)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid parameters for evaluator '{name}': {exc}") from exc
    return EvaluatorHandle(
        partial(cls, **params),
        requires_reference=bool(getattr(cls, "requires_reference", False)),
    )


__all__ = [
    "evaluator_from_name",
    "MismatchEvaluator",
]
