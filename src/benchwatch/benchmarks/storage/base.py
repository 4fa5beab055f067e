"""Base protocol for history storage backends.

This module defines the StorageProtocol that all storage backends must implement,
plus the per-suite locking shared by the bundled backends.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from benchwatch.core.exceptions import DuplicateCommitError, OutOfOrderRunError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from benchwatch.core.types import HistoryDocument, HistorySeries, Run


@runtime_checkable
class StorageProtocol(Protocol):
    """Protocol for append-only history storage backends.

    ``append_run`` is the only mutating operation. Appends to the same
    suite are serialized; appends to different suites are independent.
    Readers observe a run either completely or not at all.

    Example:
        >>> class MyStorage:
        ...     async def append_run(self, suite_name: str, run: Run) -> None: ...
        ...     # ... implement other methods
        >>> isinstance(MyStorage(), StorageProtocol)
        True
    """

    async def append_run(self, suite_name: str, run: Run) -> None:
        """Append a run to a suite, creating the suite if absent.

        Args:
            suite_name: Name of the suite.
            run: The run to append.

        Raises:
            DuplicateCommitError: If the commit is already recorded for the suite.
            OutOfOrderRunError: If the run is older than the suite's latest run.
        """
        ...

    async def runs(self, suite_name: str) -> tuple[Run, ...]:
        """Get a snapshot of a suite's runs in append order.

        Args:
            suite_name: Name of the suite.

        Returns:
            The runs, or an empty tuple for an unknown suite.
        """
        ...

    async def series_for(self, suite_name: str, name: str) -> HistorySeries:
        """Get the history series of one benchmark.

        Args:
            suite_name: Name of the suite.
            name: Canonical benchmark name.

        Returns:
            The series; empty if the suite or benchmark is unknown.
        """
        ...

    async def latest_run(self, suite_name: str) -> Run | None:
        """Get the most recently appended run of a suite.

        Args:
            suite_name: Name of the suite.

        Returns:
            The latest run, or None if the suite has no runs.
        """
        ...

    async def has_run(self, suite_name: str, commit_id: str) -> bool:
        """Check whether a commit is recorded for a suite.

        Args:
            suite_name: Name of the suite.
            commit_id: Commit identifier.

        Returns:
            True if the commit is recorded.
        """
        ...

    async def get_run(self, suite_name: str, commit_id: str) -> Run | None:
        """Get a recorded run by commit.

        Args:
            suite_name: Name of the suite.
            commit_id: Commit identifier.

        Returns:
            The run if found, None otherwise.
        """
        ...

    async def suite_names(self) -> list[str]:
        """List the names of all recorded suites."""
        ...

    async def export(self) -> HistoryDocument:
        """Export the whole history as a document."""
        ...


class SuiteLocks:
    """Lazily created asyncio locks, one per suite name.

    Example:
        >>> locks = SuiteLocks()
        >>> async with locks.for_suite("Benchmark"):
        ...     ...
    """

    def __init__(self) -> None:
        """Initialize with no locks."""
        self._locks: dict[str, asyncio.Lock] = {}

    def for_suite(self, suite_name: str) -> asyncio.Lock:
        """Get the lock guarding appends to a suite."""
        lock = self._locks.get(suite_name)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[suite_name] = lock
        return lock


def check_appendable(suite_name: str, runs: Sequence[Run], run: Run) -> None:
    """Validate that a run may be appended after the given runs.

    Args:
        suite_name: Name of the suite.
        runs: Runs already recorded for the suite, in append order.
        run: The run to append.

    Raises:
        DuplicateCommitError: If the commit is already recorded.
        OutOfOrderRunError: If the run is older than the latest recorded run.
    """
    if any(existing.commit_id == run.commit_id for existing in runs):
        raise DuplicateCommitError(suite_name, run.commit_id)
    if runs and run.timestamp < runs[-1].timestamp:
        raise OutOfOrderRunError(suite_name, run.commit_id, run.timestamp, runs[-1].timestamp)
