"""Benchmark tracking module for benchwatch.

This module provides tools for normalizing, storing, and querying
benchmark runs for historical tracking and regression detection.

Example:
    >>> from benchwatch.benchmarks import BenchmarkHistory, JSONFileStore
    >>>
    >>> history = BenchmarkHistory(JSONFileStore(".benchwatch/history.json"))
    >>> report = await history.ingest(
    ...     "Benchmark",
    ...     {"commit_id": "21cc017b", "timestamp": "2023-09-21T15:43:08Z", "tool": "cargo"},
    ...     [("Polynomial/add", 107, "± 5", "ns/iter")],
    ... )
    >>> series = await history.query("Benchmark", "Polynomial/add")
"""

from __future__ import annotations

from benchwatch.benchmarks.history import BenchmarkHistory, ImportConflict, ImportSummary
from benchwatch.benchmarks.normalizer import canonical_name, normalize_entries
from benchwatch.benchmarks.storage import JSONFileStore, MemoryStore, StorageProtocol

__all__ = [
    "BenchmarkHistory",
    "ImportConflict",
    "ImportSummary",
    "JSONFileStore",
    "MemoryStore",
    "StorageProtocol",
    "canonical_name",
    "normalize_entries",
]
