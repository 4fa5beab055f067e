"""High-level API for benchmark tracking.

This module provides BenchmarkHistory, the main interface for ingesting
runs and querying history. It exposes the two core entry points,
``ingest`` and ``query``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from benchwatch.benchmarks.normalizer import normalize_entries
from benchwatch.benchmarks.storage import MemoryStore, StorageProtocol
from benchwatch.core.exceptions import DuplicateCommitError, NotFoundError, ValidationError
from benchwatch.core.types import HistorySeries, Run, RunMetadata, Suite
from benchwatch.regression import AnalyzerConfig, RegressionDetector

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from benchwatch.loaders.data_js import ImportedHistory
    from benchwatch.regression import RegressionReport

logger = logging.getLogger(__name__)


@dataclass
class ImportConflict:
    """A re-submitted commit whose content differs from the recorded run.

    Attributes:
        suite_name: Suite the commit is recorded in.
        commit_id: The re-submitted commit.
        recorded: Canonical benchmark names of the recorded run.
        submitted: Canonical benchmark names of the rejected entry.
    """

    suite_name: str
    commit_id: str
    recorded: list[str] = field(default_factory=list)
    submitted: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        """Human-readable description of the conflict."""
        return (
            f"Commit {self.commit_id} in suite '{self.suite_name}' was re-submitted with different content "
            f"({len(self.submitted)} benchmark(s) rejected, {len(self.recorded)} recorded)"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert conflict to dictionary for serialization."""
        return {
            "suite": self.suite_name,
            "commit_id": self.commit_id,
            "recorded": self.recorded,
            "submitted": self.submitted,
        }


@dataclass
class ImportSummary:
    """Outcome of importing a history file.

    Attributes:
        imported: Number of runs appended.
        skipped: Number of identical re-submissions of recorded commits.
        conflicts: Re-submissions of recorded commits with different content.
        reports: Regression reports of the appended runs, in import order.
    """

    imported: int = 0
    skipped: int = 0
    conflicts: list[ImportConflict] = field(default_factory=list)
    reports: list[RegressionReport] = field(default_factory=list)

    @property
    def regression_count(self) -> int:
        """Total number of regressions across all imported runs."""
        return sum(len(report.regressions) for report in self.reports)

    @property
    def has_conflicts(self) -> bool:
        """Check if any re-submitted commit was rejected."""
        return len(self.conflicts) > 0


def _coerce_metadata(metadata: RunMetadata | Mapping[str, Any]) -> RunMetadata:
    """Validate run metadata supplied as a model or a mapping."""
    if isinstance(metadata, RunMetadata):
        return metadata
    try:
        return RunMetadata.model_validate(dict(metadata))
    except PydanticValidationError as e:
        raise ValidationError(None, None, f"Invalid run metadata: {e}") from e


def _prior_runs(runs: Sequence[Run], commit_id: str) -> Sequence[Run]:
    """Return the runs appended before the given commit."""
    for index, run in enumerate(runs):
        if run.commit_id == commit_id:
            return runs[:index]
    return runs


def _content(run: Run) -> tuple[Any, ...]:
    """Commit metadata and measurements of a run, without its ingestion date."""
    metadata = run.model_dump(exclude={"date", "results"})
    results = tuple((r.name, r.value, r.error_margin, r.unit) for r in run.results)
    return metadata, results


class BenchmarkHistory:
    """High-level API for benchmark tracking.

    Normalizes raw measurements, appends the run to the store, then
    analyzes it against the runs recorded before it. Analysis never rolls
    back a successful append.

    Example:
        >>> history = BenchmarkHistory(JSONFileStore(".benchwatch/history.json"))
        >>> report = await history.ingest("Benchmark", metadata, [("X", 1000, 10, "ns/iter")])
        >>> series = await history.query("Benchmark", "X")
    """

    def __init__(
        self,
        store: StorageProtocol | None = None,
        config: AnalyzerConfig | None = None,
    ) -> None:
        """Initialize with storage backend and analyzer configuration.

        Args:
            store: Storage backend (default: MemoryStore).
            config: Analyzer configuration (default: AnalyzerConfig()).
        """
        self._store: StorageProtocol = store if store is not None else MemoryStore()
        self._detector = RegressionDetector(config)

    @property
    def store(self) -> StorageProtocol:
        """The storage backend."""
        return self._store

    @property
    def config(self) -> AnalyzerConfig:
        """The analyzer configuration."""
        return self._detector.config

    async def ingest(
        self,
        suite_name: str,
        metadata: RunMetadata | Mapping[str, Any],
        raw_measurements: Iterable[Any],
        date: int | None = None,
    ) -> RegressionReport:
        """Record a run and classify its measurements.

        Args:
            suite_name: Name of the suite (created on first ingestion).
            metadata: Commit metadata of the run.
            raw_measurements: Ordered raw ``(name, value, error_margin, unit)`` entries.
            date: Ingestion time in epoch ms (default: now). Imports pass the
                date recorded in the source file.

        Returns:
            RegressionReport for the new run.

        Raises:
            ValidationError: If the metadata or any measurement is malformed.
            OutOfOrderRunError: If the run is older than the suite's latest run.
            DuplicateCommitError: If the commit is already recorded for the suite.
        """
        run = self._build_run(suite_name, metadata, raw_measurements, date)
        return await self._record(suite_name, run)

    def _build_run(
        self,
        suite_name: str,
        metadata: RunMetadata | Mapping[str, Any],
        raw_measurements: Iterable[Any],
        date: int | None,
    ) -> Run:
        if not suite_name:
            raise ValidationError(None, None, "Suite name must not be empty")

        run_metadata = _coerce_metadata(metadata)
        results = normalize_entries(raw_measurements)
        return Run.from_metadata(run_metadata, results, date=date)

    async def _record(self, suite_name: str, run: Run) -> RegressionReport:
        await self._store.append_run(suite_name, run)
        logger.info(f"Ingested run {run.commit_id} into suite '{suite_name}' ({len(run.results)} benchmarks)")

        runs = await self._store.runs(suite_name)
        return self._detector.detect(suite_name, run, _prior_runs(runs, run.commit_id))

    async def query(self, suite_name: str, name: str) -> HistorySeries:
        """Get the history series of one benchmark.

        Args:
            suite_name: Name of the suite.
            name: Canonical benchmark name.

        Returns:
            The series; empty if the suite or benchmark is unknown.
        """
        return await self._store.series_for(suite_name, name)

    async def latest_run(self, suite_name: str) -> Run | None:
        """Get the most recent run of a suite.

        Args:
            suite_name: Name of the suite.

        Returns:
            The latest run, or None if the suite has no runs.
        """
        return await self._store.latest_run(suite_name)

    async def suites(self) -> list[str]:
        """List the recorded suite names."""
        return await self._store.suite_names()

    async def suite(self, suite_name: str) -> Suite:
        """Get a snapshot of one suite and its runs.

        Args:
            suite_name: Name of the suite.

        Returns:
            The suite; it has no runs if the name is unknown.
        """
        return Suite(name=suite_name, runs=await self._store.runs(suite_name))

    async def analyze_run(self, suite_name: str, commit_id: str) -> RegressionReport:
        """Re-analyze a recorded run against the runs before it.

        Args:
            suite_name: Name of the suite.
            commit_id: Commit of the run to analyze.

        Returns:
            RegressionReport for the run.

        Raises:
            NotFoundError: If the commit is not recorded for the suite.
        """
        runs = await self._store.runs(suite_name)
        for index, run in enumerate(runs):
            if run.commit_id == commit_id:
                return self._detector.detect(suite_name, run, runs[:index])
        raise NotFoundError(f"Commit {commit_id} is not recorded for suite '{suite_name}'")

    async def import_history(self, imported: ImportedHistory) -> ImportSummary:
        """Ingest every run of an imported history, in file order.

        A commit that is already recorded with the same content is skipped,
        which makes re-importing the same file a no-op. A commit that is
        already recorded with different content is rejected and listed in
        ``ImportSummary.conflicts``.

        Args:
            imported: History parsed by one of the loaders.

        Returns:
            ImportSummary with counts, conflicts and the reports of appended runs.

        Raises:
            ValidationError: If an entry is malformed or older than its suite's latest run.
        """
        summary = ImportSummary()
        for suite_name, entries in imported.suites.items():
            for entry in entries:
                run = self._build_run(suite_name, entry.metadata, entry.measurements, entry.date)
                try:
                    report = await self._record(suite_name, run)
                except DuplicateCommitError:
                    recorded = await self._store.get_run(suite_name, run.commit_id)
                    if recorded is not None and _content(recorded) == _content(run):
                        logger.debug(f"Skipping import of {run.commit_id}: already recorded for '{suite_name}'")
                        summary.skipped += 1
                        continue
                    conflict = ImportConflict(
                        suite_name=suite_name,
                        commit_id=run.commit_id,
                        recorded=[r.name for r in recorded.results] if recorded is not None else [],
                        submitted=[r.name for r in run.results],
                    )
                    logger.warning(conflict.message)
                    summary.conflicts.append(conflict)
                    continue
                summary.imported += 1
                summary.reports.append(report)

        logger.info(
            f"Imported {summary.imported} run(s), skipped {summary.skipped} already recorded, "
            f"rejected {len(summary.conflicts)} conflicting"
        )
        return summary
