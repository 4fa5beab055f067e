"""In-memory history store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from benchwatch.benchmarks.storage.base import SuiteLocks, check_appendable
from benchwatch.core.types import HistoryDocument, HistorySeries, now_ms

if TYPE_CHECKING:
    from benchwatch.core.types import Run

logger = logging.getLogger(__name__)


class MemoryStore:
    """In-memory history store.

    Each suite holds an immutable tuple of runs that is replaced on append,
    so readers always see a complete snapshot. Data is lost when the
    process exits.

    Example:
        >>> store = MemoryStore()
        >>> await store.append_run("Benchmark", run)
        >>> series = await store.series_for("Benchmark", "Polynomial/add")
    """

    def __init__(self, source_ref: str = "") -> None:
        """Initialize an empty store.

        Args:
            source_ref: Reference to the benchmarked project.
        """
        self._suites: dict[str, tuple[Run, ...]] = {}
        self._locks = SuiteLocks()
        self._source_ref = source_ref
        self._last_update = 0

    async def append_run(self, suite_name: str, run: Run) -> None:
        """Append a run to a suite, creating the suite if absent."""
        async with self._locks.for_suite(suite_name):
            runs = self._suites.get(suite_name, ())
            check_appendable(suite_name, runs, run)
            self._suites[suite_name] = (*runs, run)
            self._last_update = now_ms()
            logger.debug(f"Appended run {run.commit_id} to suite '{suite_name}' ({len(runs) + 1} runs)")

    async def runs(self, suite_name: str) -> tuple[Run, ...]:
        """Get a snapshot of a suite's runs in append order."""
        return self._suites.get(suite_name, ())

    async def series_for(self, suite_name: str, name: str) -> HistorySeries:
        """Get the history series of one benchmark."""
        return HistorySeries(suite_name, name, self._suites.get(suite_name, ()))

    async def latest_run(self, suite_name: str) -> Run | None:
        """Get the most recently appended run of a suite."""
        runs = self._suites.get(suite_name, ())
        return runs[-1] if runs else None

    async def has_run(self, suite_name: str, commit_id: str) -> bool:
        """Check whether a commit is recorded for a suite."""
        return await self.get_run(suite_name, commit_id) is not None

    async def get_run(self, suite_name: str, commit_id: str) -> Run | None:
        """Get a recorded run by commit."""
        for run in self._suites.get(suite_name, ()):
            if run.commit_id == commit_id:
                return run
        return None

    async def suite_names(self) -> list[str]:
        """List the names of all recorded suites."""
        return list(self._suites)

    async def export(self) -> HistoryDocument:
        """Export the whole history as a document."""
        return HistoryDocument(
            last_update=self._last_update,
            source_ref=self._source_ref,
            suites={name: list(runs) for name, runs in self._suites.items()},
        )

    def __len__(self) -> int:
        """Return the number of recorded suites."""
        return len(self._suites)
