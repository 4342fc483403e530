"""Exception hierarchy shared by every stage."""

from __future__ import annotations


class RegionFinderError(Exception):
    """Base class for errors raised by regionfinder."""


class ConfigurationError(RegionFinderError, ValueError):
    """Invalid settings detected before any distributed work starts."""


class DataError(RegionFinderError):
    """Input data inconsistent with the sequence dictionary or the sharding.

    Raised inside the partition that meets the bad record, so it surfaces as a
    job failure rather than a silently dropped read or locus.
    """


class TransientWorkerFailure(RegionFinderError):
    """A partition failed for reasons unrelated to its input; safe to re-run."""


class JobFailedError(RegionFinderError, RuntimeError):
    """A partition failed permanently. The original error is ``__cause__``."""

    def __init__(self, message: str, *, partition: int | None = None) -> None:
        super().__init__(message)
        self.partition = partition


__all__ = [
    "RegionFinderError",
    "ConfigurationError",
    "DataError",
    "TransientWorkerFailure",
    "JobFailedError",
]
