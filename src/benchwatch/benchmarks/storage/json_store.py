"""JSON file storage for benchmark history.

This module provides a simple JSON file-based storage backend
holding the whole history document in one file.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from filelock import FileLock
from pydantic import ValidationError as PydanticValidationError

from benchwatch.benchmarks.storage.base import SuiteLocks, check_appendable
from benchwatch.core.exceptions import DataFileError
from benchwatch.core.types import HistoryDocument, HistorySeries, Run, now_ms

logger = logging.getLogger(__name__)


class JSONFileStore:
    """JSON file storage for benchmark history.

    Uses atomic writes (temp file + rename) so a reader sees either the
    document before an append or after it, never a partial run.
    Appends to the same suite are serialized with a per-suite lock. The
    read-modify-write of the shared file is guarded by an asyncio lock
    inside one process and by an OS-level lock on a sidecar ``.lock`` file
    across processes, so writers of different suites never lose each
    other's runs.

    Example:
        >>> store = JSONFileStore(".benchwatch/history.json")
        >>> await store.append_run("Benchmark", run)
        >>> latest = await store.latest_run("Benchmark")
    """

    def __init__(
        self,
        path: str | Path = ".benchwatch/history.json",
        source_ref: str = "",
    ) -> None:
        """Initialize the JSON file store.

        Args:
            path: Path to the JSON file.
            source_ref: Reference recorded in the document when it is first created.
        """
        self._path = Path(path)
        self._source_ref = source_ref
        self._locks = SuiteLocks()
        self._file_lock = asyncio.Lock()
        self._process_lock = FileLock(self._path.with_name(self._path.name + ".lock"))

    @property
    def path(self) -> Path:
        """Path to the JSON file."""
        return self._path

    def _read(self) -> HistoryDocument | None:
        """Read the document from disk.

        Returns:
            The document, or None if the file is missing or empty.

        Raises:
            DataFileError: If the file is not a valid history document.
        """
        if not self._path.exists():
            return None

        try:
            content = self._path.read_text(encoding="utf-8")
            if not content.strip():
                return None
            data: dict[str, Any] = json.loads(content)
            return HistoryDocument.from_dict(data)
        except (UnicodeDecodeError, json.JSONDecodeError, PydanticValidationError, TypeError) as e:
            raise DataFileError(f"Invalid history file {self._path}: {e}") from e

    async def _load(self) -> HistoryDocument:
        """Load the document for reading.

        A corrupted file is logged and read as an empty history.
        """
        try:
            document = self._read()
        except DataFileError as e:
            logger.warning(f"Failed to load history from {self._path}: {e}")
            document = None
        return document or HistoryDocument(source_ref=self._source_ref)

    async def _save(self, document: HistoryDocument) -> None:
        """Save the document to the JSON file with atomic write.

        Uses temp file + rename for atomic operation.

        Args:
            document: The history document.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)

        content = json.dumps(document.to_dict(), indent=2)

        temp_fd, temp_path = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=".history_",
            suffix=".tmp",
        )
        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                f.write(content)
            Path(temp_path).replace(self._path)
        except Exception:
            Path(temp_path).unlink(missing_ok=True)
            raise

    async def append_run(self, suite_name: str, run: Run) -> None:
        """Append a run to a suite, creating the suite if absent.

        Args:
            suite_name: Name of the suite.
            run: The run to append.

        Raises:
            DuplicateCommitError: If the commit is already recorded for the suite.
            OutOfOrderRunError: If the run is older than the suite's latest run.
            DataFileError: If the existing file is corrupted (it is never overwritten).
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        async with self._locks.for_suite(suite_name), self._file_lock:
            with self._process_lock:
                document = self._read() or HistoryDocument(source_ref=self._source_ref)
                runs = document.suites.setdefault(suite_name, [])
                check_appendable(suite_name, runs, run)

                runs.append(run)
                document.last_update = now_ms()
                await self._save(document)
            logger.debug(f"Appended run {run.commit_id} to suite '{suite_name}' in {self._path}")

    async def runs(self, suite_name: str) -> tuple[Run, ...]:
        """Get a snapshot of a suite's runs in append order."""
        document = await self._load()
        return tuple(document.suites.get(suite_name, []))

    async def series_for(self, suite_name: str, name: str) -> HistorySeries:
        """Get the history series of one benchmark."""
        return HistorySeries(suite_name, name, await self.runs(suite_name))

    async def latest_run(self, suite_name: str) -> Run | None:
        """Get the most recently appended run of a suite."""
        runs = await self.runs(suite_name)
        return runs[-1] if runs else None

    async def has_run(self, suite_name: str, commit_id: str) -> bool:
        """Check whether a commit is recorded for a suite."""
        return await self.get_run(suite_name, commit_id) is not None

    async def get_run(self, suite_name: str, commit_id: str) -> Run | None:
        """Get a recorded run by commit."""
        for run in await self.runs(suite_name):
            if run.commit_id == commit_id:
                return run
        return None

    async def suite_names(self) -> list[str]:
        """List the names of all recorded suites."""
        document = await self._load()
        return list(document.suites)

    async def export(self) -> HistoryDocument:
        """Export the whole history as a document."""
        return await self._load()
