"""Storage backends for benchmark history.

This module provides the storage protocol and implementations for
persisting suites and their runs.

Example:
    >>> from benchwatch.benchmarks.storage import JSONFileStore
    >>> store = JSONFileStore(".benchwatch/history.json")
    >>> await store.append_run("Benchmark", run)
"""

from __future__ import annotations

from benchwatch.benchmarks.storage.base import StorageProtocol
from benchwatch.benchmarks.storage.json_store import JSONFileStore
from benchwatch.benchmarks.storage.memory import MemoryStore

__all__ = [
    "JSONFileStore",
    "MemoryStore",
    "StorageProtocol",
]
