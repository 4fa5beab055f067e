"""Core module for benchwatch.

This module contains the fundamental types, exceptions,
and configuration used throughout the library.
"""

from __future__ import annotations

from benchwatch.core.config import Settings
from benchwatch.core.exceptions import (
    BenchwatchError,
    ConfigurationError,
    DataFileError,
    DivisionByZeroError,
    DuplicateCommitError,
    NotFoundError,
    OutOfOrderRunError,
    ValidationError,
)
from benchwatch.core.types import (
    BenchResult,
    HistoryDocument,
    HistorySeries,
    RawMeasurement,
    Run,
    RunMetadata,
    SeriesPoint,
    Suite,
)

__all__ = [
    "BenchResult",
    "BenchwatchError",
    "ConfigurationError",
    "DataFileError",
    "DivisionByZeroError",
    "DuplicateCommitError",
    "HistoryDocument",
    "HistorySeries",
    "NotFoundError",
    "OutOfOrderRunError",
    "RawMeasurement",
    "Run",
    "RunMetadata",
    "SeriesPoint",
    "Settings",
    "Suite",
    "ValidationError",
]
