"""Import and export of benchmark history files.

Two formats are supported:

- ``data.js``: the dashboard script format
  (``window.BENCHMARK_DATA = {"lastUpdate": ..., "repoUrl": ..., "entries": {...}}``)
  where each suite lists ``{commit, date, tool, benches}`` entries and error
  margins are written as ``"± N"`` range strings.
- the canonical history JSON written by ``JSONFileStore``
  (``{"lastUpdate": ..., "sourceRef": ..., "suites": {...}}``).

Tolerant read policy:
    - The ``window.X =`` prefix and trailing semicolon are optional
    - A missing commit timestamp falls back to the entry's ``date``
    - Missing ``committer``/``message``/``url`` fields are left empty
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from benchwatch.core.exceptions import DataFileError
from benchwatch.core.types import HistoryDocument, RawMeasurement, RunMetadata, to_epoch_ms

if TYPE_CHECKING:
    from benchwatch.core.types import Run

DATA_JS_VARIABLE = "window.BENCHMARK_DATA"

_ASSIGNMENT_PATTERN = re.compile(r"^\s*(?:window\.)?[A-Za-z_$][\w$]*\s*=\s*", re.ASCII)


@dataclass
class ImportedRun:
    """One run read from a history file, not yet normalized.

    Attributes:
        metadata: Commit metadata.
        measurements: Raw measurements in file order.
        date: When the run was originally recorded (epoch ms), if the file says.
    """

    metadata: RunMetadata
    measurements: list[RawMeasurement] = field(default_factory=list)
    date: int | None = None


@dataclass
class ImportedHistory:
    """Runs read from a history file, grouped by suite in file order.

    Attributes:
        source_ref: Reference to the benchmarked project.
        last_update: Last update recorded in the file (epoch ms).
        suites: Runs per suite name.
    """

    source_ref: str = ""
    last_update: int = 0
    suites: dict[str, list[ImportedRun]] = field(default_factory=dict)

    @property
    def run_count(self) -> int:
        """Total number of runs across suites."""
        return sum(len(runs) for runs in self.suites.values())


def _strip_assignment(text: str) -> str:
    """Remove a leading ``window.X =`` assignment and trailing semicolon."""
    body = _ASSIGNMENT_PATTERN.sub("", text, count=1).strip()
    if body.endswith(";"):
        body = body[:-1].rstrip()
    return body


def _parse_payload(text: str, source: str) -> dict[str, Any]:
    """Parse the JSON payload of a history file."""
    try:
        data = json.loads(_strip_assignment(text))
    except json.JSONDecodeError as e:
        raise DataFileError(f"Invalid benchmark data in {source}: {e}") from e
    if not isinstance(data, dict):
        raise DataFileError(f"Expected an object in {source}, got {type(data).__name__}")
    return data


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise DataFileError(f"History file {path} is not valid UTF-8: {e}") from e


def _epoch_ms(value: Any, what: str, source: str) -> int:
    """Validate an epoch-ms field, accepting ISO 8601 strings too."""
    converted = to_epoch_ms(value)
    if isinstance(converted, bool) or not isinstance(converted, int):
        raise DataFileError(f"Invalid {what} in {source}: {value!r}")
    return converted


def _require(value: Any, kind: type, what: str, source: str) -> Any:
    if not isinstance(value, kind):
        raise DataFileError(f"Expected {what} to be {kind.__name__} in {source}, got {type(value).__name__}")
    return value


def parse_data_js_entry(entry: dict[str, Any], source: str = "<string>") -> ImportedRun:
    """Convert one data.js entry ({commit, date, tool, benches}) into an ImportedRun.

    Raises:
        DataFileError: If the entry does not have the data.js entry shape.
    """
    _require(entry, dict, "an entry", source)
    commit = _require(entry.get("commit") or {}, dict, "'commit'", source)
    date = entry.get("date")
    try:
        metadata = RunMetadata(
            commit_id=commit.get("id", ""),
            timestamp=commit.get("timestamp", date),
            author=commit.get("author") or {},
            committer=commit.get("committer"),
            distinct=commit.get("distinct", True),
            tool=entry.get("tool", ""),
            message=commit.get("message"),
            url=commit.get("url"),
        )
    except PydanticValidationError as e:
        raise DataFileError(f"Invalid commit metadata in {source}: {e}") from e

    benches = _require(entry.get("benches", []), list, "'benches'", source)
    measurements = [
        RawMeasurement(bench.get("name"), bench.get("value"), bench.get("range"), bench.get("unit", ""))
        for bench in (_require(bench, dict, "a bench", source) for bench in benches)
    ]
    return ImportedRun(
        metadata=metadata,
        measurements=measurements,
        date=_epoch_ms(date, "'date'", source) if date is not None else None,
    )


def parse_data_js(text: str, source: str = "<string>") -> ImportedHistory:
    """Parse the contents of a data.js history file.

    Args:
        text: File contents.
        source: Name of the source, used in error messages.

    Returns:
        The imported history.

    Raises:
        DataFileError: If the contents are not a valid data.js history.
    """
    data = _parse_payload(text, source)
    entries = data.get("entries")
    if not isinstance(entries, dict):
        raise DataFileError(f"Missing 'entries' object in {source}")

    history = ImportedHistory(
        source_ref=_require(data.get("repoUrl", ""), str, "'repoUrl'", source),
        last_update=_epoch_ms(data.get("lastUpdate", 0), "'lastUpdate'", source),
    )
    for suite_name, runs in entries.items():
        _require(runs, list, f"the runs of suite '{suite_name}'", source)
        history.suites[suite_name] = [parse_data_js_entry(entry, source) for entry in runs]
    return history


def document_to_imported(document: HistoryDocument) -> ImportedHistory:
    """Convert a canonical history document into an importable history.

    Raw names are kept, so normalizing them again reproduces the
    canonical names of the document.
    """
    history = ImportedHistory(source_ref=document.source_ref, last_update=document.last_update)
    for suite_name, runs in document.suites.items():
        history.suites[suite_name] = [
            ImportedRun(
                metadata=RunMetadata.model_validate(run.model_dump(exclude={"date", "results"})),
                measurements=[RawMeasurement(r.raw_name, r.value, r.error_margin, r.unit) for r in run.results],
                date=run.date,
            )
            for run in runs
        ]
    return history


def load_history_file(path: str | Path) -> ImportedHistory:
    """Load a data.js or canonical history JSON file.

    Args:
        path: Path to the file.

    Returns:
        The imported history.

    Raises:
        DataFileError: If the file is missing or not a recognized history.

    Example:
        >>> imported = load_history_file("bench/data.js")
        >>> summary = await history.import_history(imported)
    """
    path = Path(path)
    if not path.exists():
        raise DataFileError(f"History file not found: {path}")

    text = _read_text(path)
    data = _parse_payload(text, str(path))
    if "entries" in data:
        return parse_data_js(text, str(path))
    if "suites" in data:
        try:
            return document_to_imported(HistoryDocument.from_dict(data))
        except PydanticValidationError as e:
            raise DataFileError(f"Invalid history document in {path}: {e}") from e
    raise DataFileError(f"Unrecognized history format in {path}: expected 'entries' or 'suites'")


def _iso(timestamp_ms: int) -> str:
    seconds, millis = divmod(timestamp_ms, 1000)
    moment = datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None) + timedelta(milliseconds=millis)
    return moment.isoformat(timespec="milliseconds" if millis else "seconds") + "Z"


def _number(value: float) -> int | float:
    return int(value) if float(value).is_integer() else value


def _data_js_entry(run: Run) -> dict[str, Any]:
    commit: dict[str, Any] = {
        "author": run.author,
        "distinct": run.distinct,
        "id": run.commit_id,
        "timestamp": _iso(run.timestamp),
    }
    if run.committer is not None:
        commit["committer"] = run.committer
    if run.message is not None:
        commit["message"] = run.message
    if run.url is not None:
        commit["url"] = run.url

    return {
        "commit": commit,
        "date": run.date if run.date is not None else run.timestamp,
        "tool": run.tool,
        "benches": [
            {
                "name": result.name,
                "value": _number(result.value),
                "range": f"± {_number(result.error_margin)}",
                "unit": result.unit,
            }
            for result in run.results
        ],
    }


def dump_data_js(document: HistoryDocument) -> str:
    """Render a history document in the data.js script format.

    Args:
        document: The history document.

    Returns:
        The script text, ready to be written next to a dashboard.
    """
    data = {
        "lastUpdate": document.last_update,
        "repoUrl": document.source_ref,
        "entries": {name: [_data_js_entry(run) for run in runs] for name, runs in document.suites.items()},
    }
    return f"{DATA_JS_VARIABLE} = {json.dumps(data, indent=2, ensure_ascii=False)}\n"
