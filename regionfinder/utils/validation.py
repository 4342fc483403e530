"""Validation helpers for regionfinder."""

from __future__ import annotations

from regionfinder.core.errors import DataError

# IUPAC nucleotide codes, including ambiguity symbols.
ALLOWED_BASES = frozenset("ACGTNRYSWKMBDHV")


def ensure_bases(bases: str, *, context: str = "sequence") -> str:
    """Upper-case reference bases, rejecting non-IUPAC symbols."""
    upper = bases.upper()
    invalid = {char for char in upper if char not in ALLOWED_BASES}
    if invalid:
        msg = f"{context} contains invalid bases: {sorted(invalid)}"
        raise DataError(msg)
    return upper
