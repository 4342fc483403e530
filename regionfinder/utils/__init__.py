"""Utility exports."""

from .logging import get_logger
from .validation import ensure_bases

__all__ = [
    "get_logger",
    "ensure_bases",
]
