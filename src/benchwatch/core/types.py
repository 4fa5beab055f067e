"""Core type definitions for benchwatch.

This module defines the fundamental data structures used throughout
the library for measurements, runs, suites, and history series.

Serialized field names follow the exchange format (camelCase), while
Python attributes use snake_case. Both spellings are accepted on input.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, NamedTuple

from pydantic import BaseModel, Field, field_validator, model_validator
from typing_extensions import Self

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def now_ms() -> int:
    """Return the current time as epoch milliseconds."""
    return int(time.time() * 1000)


def to_epoch_ms(value: Any) -> Any:
    """Convert datetimes and ISO 8601 strings to epoch milliseconds.

    Integers and anything else are returned unchanged so that pydantic
    can validate them.

    Args:
        value: A datetime, an ISO 8601 string, or an integer timestamp.

    Returns:
        Epoch milliseconds when a conversion applies, else the input.

    Example:
        >>> to_epoch_ms("2023-09-21T15:43:08Z")
        1695310988000
    """
    if isinstance(value, datetime):
        moment = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
        return (moment - _EPOCH) // timedelta(milliseconds=1)
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
        try:
            return to_epoch_ms(datetime.fromisoformat(text.replace("Z", "+00:00")))
        except ValueError:
            return value
    return value


class RawMeasurement(NamedTuple):
    """A raw measurement as produced by a benchmark tool.

    Fields are unvalidated; the normalizer checks and converts them.

    Example:
        >>> RawMeasurement("Polynomial/add", 107, "± 5", "ns/iter")
    """

    raw_name: Any
    value: Any
    error_margin: Any
    unit: Any


class BenchResult(BaseModel):
    """One measurement within a run.

    Attributes:
        name: Canonical name, unique within its run.
        raw_name: Name reported by the tool, may repeat within a run.
        value: Measured value.
        error_margin: Uncertainty of the measurement (non-negative).
        unit: Free-form unit, e.g. "ns/iter".

    Example:
        >>> result = BenchResult(name="FFT #2", raw_name="FFT", value=80906685, error_margin=3973747, unit="ns/iter")
    """

    model_config = {"frozen": True, "populate_by_name": True}

    name: str = Field(..., min_length=1, description="Canonical benchmark name")
    raw_name: str = Field(..., alias="rawName", description="Name as reported by the tool")
    value: float = Field(..., allow_inf_nan=False, description="Measured value")
    error_margin: float = Field(
        default=0.0,
        ge=0,
        allow_inf_nan=False,
        alias="errorMargin",
        description="Measurement uncertainty",
    )
    unit: str = Field(default="", description="Unit of the value")

    @model_validator(mode="before")
    @classmethod
    def _default_raw_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and "rawName" not in data and "raw_name" not in data and "name" in data:
            return {**data, "rawName": data["name"]}
        return data


class RunMetadata(BaseModel):
    """Metadata describing the commit a run was measured on.

    Attributes:
        commit_id: Commit identifier, unique within a suite.
        timestamp: Commit timestamp in epoch milliseconds.
        author: Author metadata, passed through unmodified.
        committer: Optional committer metadata, passed through unmodified.
        distinct: Whether this commit alone caused the measured change.
        tool: Identifier of the tool that produced the measurements.
        message: Optional commit message.
        url: Optional link to the commit.
    """

    model_config = {"frozen": True, "populate_by_name": True}

    commit_id: str = Field(..., min_length=1, alias="commitId", description="Commit identifier")
    timestamp: int = Field(..., description="Commit timestamp (epoch ms)")
    author: dict[str, Any] = Field(default_factory=dict, description="Opaque author metadata")
    committer: dict[str, Any] | None = Field(default=None, description="Opaque committer metadata")
    distinct: bool = Field(default=True, description="Whether the commit is the sole cause of the change")
    tool: str = Field(default="", description="Benchmark tool identifier")
    message: str | None = Field(default=None, description="Commit message")
    url: str | None = Field(default=None, description="Commit URL")

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Any:
        return to_epoch_ms(value)


class Run(RunMetadata):
    """One ingestion event: a commit and the measurements taken on it.

    Runs are immutable once built. Canonical names are unique within a run.

    Attributes:
        date: When the run was ingested (epoch ms).
        results: Measurements in the order they were reported.

    Example:
        >>> run = Run.from_metadata(metadata, normalize_entries(raw))
        >>> run.result_for("FFT #2").value
        80906685.0
    """

    date: int | None = Field(default=None, description="Ingestion time (epoch ms)")
    results: tuple[BenchResult, ...] = Field(default=(), description="Measurements of this run")

    @model_validator(mode="after")
    def _check_unique_names(self) -> Self:
        seen: set[str] = set()
        for result in self.results:
            if result.name in seen:
                raise ValueError(f"Duplicate canonical name in run {self.commit_id}: {result.name!r}")
            seen.add(result.name)
        return self

    @classmethod
    def from_metadata(
        cls,
        metadata: RunMetadata,
        results: Sequence[BenchResult],
        date: int | None = None,
    ) -> Run:
        """Build a run from commit metadata and normalized results.

        Args:
            metadata: Commit metadata.
            results: Normalized measurements.
            date: Ingestion time in epoch ms (default: now).

        Returns:
            A new Run instance.
        """
        return cls(
            **metadata.model_dump(),
            date=date if date is not None else now_ms(),
            results=tuple(results),
        )

    def result_for(self, name: str) -> BenchResult | None:
        """Get the measurement with the given canonical name.

        Args:
            name: Canonical benchmark name.

        Returns:
            The measurement, or None if this run has no such benchmark.
        """
        for result in self.results:
            if result.name == name:
                return result
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert run to its exchange-format dictionary."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Run:
        """Create run from its exchange-format dictionary."""
        return cls.model_validate(data)


class Suite(BaseModel):
    """A named collection of benchmarks run together by one tool.

    Attributes:
        name: Suite name (unique key).
        runs: Runs in append order.
    """

    model_config = {"frozen": True}

    name: str = Field(..., min_length=1, description="Suite name")
    runs: tuple[Run, ...] = Field(default=(), description="Runs in append order")

    @property
    def tool(self) -> str | None:
        """Tool identifier of the most recent run."""
        return self.runs[-1].tool if self.runs else None

    def __len__(self) -> int:
        """Return the number of runs in the suite."""
        return len(self.runs)


@dataclass(frozen=True)
class SeriesPoint:
    """One entry of a history series.

    Attributes:
        run: The run the measurement belongs to.
        value: Measured value.
        error_margin: Measurement uncertainty.
        unit: Unit of the value.
    """

    run: Run
    value: float
    error_margin: float
    unit: str = ""

    @property
    def commit_id(self) -> str:
        """Commit identifier of the run."""
        return self.run.commit_id


class HistorySeries:
    """Ordered view of one benchmark across the runs of a suite.

    The series is built lazily from a snapshot of the suite's runs. It is
    finite and restartable: every iteration rescans the snapshot.

    Example:
        >>> series = await store.series_for("Benchmark", "Polynomial/add")
        >>> [point.value for point in series]
        [107.0, 105.0]
    """

    def __init__(self, suite_name: str, name: str, runs: Sequence[Run] = ()) -> None:
        """Initialize the series.

        Args:
            suite_name: Suite the series belongs to.
            name: Canonical benchmark name.
            runs: Snapshot of the suite's runs in append order.
        """
        self.suite_name = suite_name
        self.name = name
        self._runs = tuple(runs)

    def __iter__(self) -> Iterator[SeriesPoint]:
        """Yield points in run order."""
        for run in self._runs:
            result = run.result_for(self.name)
            if result is not None:
                yield SeriesPoint(run=run, value=result.value, error_margin=result.error_margin, unit=result.unit)

    def __len__(self) -> int:
        """Return the number of points in the series."""
        return sum(1 for _ in self)

    def __bool__(self) -> bool:
        """Return True if the series has at least one point."""
        return any(True for _ in self)

    def __repr__(self) -> str:
        return f"HistorySeries(suite_name={self.suite_name!r}, name={self.name!r}, points={len(self)})"

    def points(self) -> list[SeriesPoint]:
        """Materialize the series as a list."""
        return list(self)

    def values(self) -> list[float]:
        """Return the measured values in run order."""
        return [point.value for point in self]

    def last(self, count: int) -> list[SeriesPoint]:
        """Return the most recent points.

        Args:
            count: Maximum number of points to return.

        Returns:
            Up to ``count`` points, oldest first.
        """
        if count <= 0:
            return []
        return self.points()[-count:]


class HistoryDocument(BaseModel):
    """Top-level persisted structure of a benchmark history.

    Attributes:
        last_update: Time of the last append (epoch ms).
        source_ref: Reference to the benchmarked project (e.g. repository URL).
        suites: Runs per suite name, in append order.
    """

    model_config = {"populate_by_name": True}

    last_update: int = Field(default=0, alias="lastUpdate", description="Last update (epoch ms)")
    source_ref: str = Field(default="", alias="sourceRef", description="Source reference")
    suites: dict[str, list[Run]] = Field(default_factory=dict, description="Runs per suite")

    def to_dict(self) -> dict[str, Any]:
        """Convert document to its exchange-format dictionary."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryDocument:
        """Create document from its exchange-format dictionary."""
        return cls.model_validate(data)
