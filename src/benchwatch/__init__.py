"""benchwatch: Benchmark history tracking and regression detection for CI."""

from __future__ import annotations

from benchwatch.benchmarks import BenchmarkHistory, JSONFileStore, MemoryStore, normalize_entries
from benchwatch.core.exceptions import (
    BenchwatchError,
    DivisionByZeroError,
    DuplicateCommitError,
    NotFoundError,
    ValidationError,
)
from benchwatch.core.types import BenchResult, HistorySeries, Run, RunMetadata
from benchwatch.regression import AnalyzerConfig, Classification, Direction, RegressionReport

__version__ = "0.3.0"
__all__ = [
    # History
    "BenchmarkHistory",
    "JSONFileStore",
    "MemoryStore",
    "normalize_entries",
    # Types
    "BenchResult",
    "HistorySeries",
    "Run",
    "RunMetadata",
    # Analysis
    "AnalyzerConfig",
    "Classification",
    "Direction",
    "RegressionReport",
    # Errors
    "BenchwatchError",
    "DivisionByZeroError",
    "DuplicateCommitError",
    "NotFoundError",
    "ValidationError",
    # Version
    "__version__",
]
