"""Models for regression detection.

This module provides the analyzer configuration, per-benchmark verdicts,
and the report handed to alert emitters.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from benchwatch.core.exceptions import ConfigurationError


class Direction(str, Enum):
    """Which direction of change is an improvement."""

    LOWER_IS_BETTER = "lower_is_better"
    HIGHER_IS_BETTER = "higher_is_better"


class Aggregation(str, Enum):
    """How the most recent W prior values are folded into a baseline."""

    LAST = "last"
    MEAN = "mean"
    MEDIAN = "median"


class Classification(str, Enum):
    """Outcome of analyzing one measurement."""

    BASELINE = "baseline"
    REGRESSION = "regression"
    IMPROVEMENT = "improvement"
    STABLE = "stable"
    INDETERMINATE = "indeterminate"


class AnalyzerConfig(BaseModel):
    """Configuration for regression detection.

    Attributes:
        threshold_ratio: Ratio a change must exceed to count (1.05 = 5%).
        window: Number of most recent prior values forming the baseline.
        aggregation: How the window is folded into one baseline value.
        default_direction: Direction for benchmarks without an explicit entry.
        directions: Direction per benchmark name or fnmatch pattern.
            Exact names take precedence over patterns.

    Example:
        >>> config = AnalyzerConfig(
        ...     threshold_ratio=1.10,
        ...     window=5,
        ...     directions={"*/throughput": Direction.HIGHER_IS_BETTER},
        ... )
        >>> config.direction_for("encode/throughput")
        <Direction.HIGHER_IS_BETTER: 'higher_is_better'>
    """

    model_config = {"frozen": True}

    threshold_ratio: float = Field(default=1.05, gt=1.0, description="Alert threshold ratio")
    window: int = Field(default=1, ge=1, description="Rolling baseline window W")
    aggregation: Aggregation = Field(default=Aggregation.MEAN, description="Baseline aggregation")
    default_direction: Direction = Field(
        default=Direction.LOWER_IS_BETTER,
        description="Direction for benchmarks without an explicit entry",
    )
    directions: dict[str, Direction] = Field(
        default_factory=dict,
        description="Direction per benchmark name or pattern",
    )

    @property
    def threshold(self) -> float:
        """Threshold as a fraction of the baseline (e.g. 0.05)."""
        return self.threshold_ratio - 1.0

    def direction_for(self, name: str) -> Direction:
        """Resolve the direction of a benchmark.

        Args:
            name: Canonical benchmark name.

        Returns:
            The configured direction, falling back to the default.
        """
        if name in self.directions:
            return self.directions[name]
        for pattern, direction in self.directions.items():
            if fnmatchcase(name, pattern):
                return direction
        return self.default_direction

    @classmethod
    def from_yaml(cls, path: Path | str) -> AnalyzerConfig:
        """Load analyzer configuration from a YAML file.

        The settings may sit at the top level or under an ``analyzer`` key.

        Args:
            path: Path to the YAML configuration file.

        Returns:
            AnalyzerConfig loaded from the file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ConfigurationError: If the YAML does not describe a valid configuration.
        """
        import yaml
        from pydantic import ValidationError

        path = Path(path)
        if not path.exists():
            msg = f"Configuration file not found: {path}"
            raise FileNotFoundError(msg)

        data = yaml.safe_load(path.read_text())
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigurationError(f"Expected a mapping in {path}, got {type(data).__name__}")

        analyzer_data = data.get("analyzer", data)
        try:
            return cls.model_validate(analyzer_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid analyzer configuration in {path}: {e}") from e

    def to_yaml(self, path: Path | str) -> None:
        """Save analyzer configuration to a YAML file.

        Args:
            path: Path to the output YAML file.
        """
        import yaml

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        data = {"analyzer": self.model_dump(mode="json")}
        path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=False))


@dataclass
class BenchmarkVerdict:
    """Classification of one measurement of a run.

    Attributes:
        name: Canonical benchmark name.
        classification: Outcome of the analysis.
        new_value: Value measured in the analyzed run.
        baseline_value: Baseline from prior runs (None without history).
        relative_delta: (new - baseline) / |baseline| (None when undefined).
        unit: Unit of the values.
        direction: Direction used to judge the change.
        noise_band: Combined error margins relative to the baseline.
        error: Why the entry is indeterminate, if it is.

    Example:
        >>> verdict.message
        'Polynomial/add regressed by 30.0% (130 vs 100 ns/iter)'
    """

    name: str
    classification: Classification
    new_value: float
    baseline_value: float | None = None
    relative_delta: float | None = None
    unit: str = ""
    direction: Direction = Direction.LOWER_IS_BETTER
    noise_band: float | None = None
    error: str | None = None

    @property
    def message(self) -> str:
        """Human-readable description of the verdict."""
        if self.classification == Classification.BASELINE:
            return f"{self.name}: first measurement ({self.new_value:g} {self.unit})".rstrip()
        if self.classification == Classification.INDETERMINATE:
            return f"{self.name}: indeterminate ({self.error})"

        if self.relative_delta is None or self.baseline_value is None:
            return f"{self.name}: {self.classification.value} (no baseline)"
        verbs = {
            Classification.REGRESSION: "regressed",
            Classification.IMPROVEMENT: "improved",
            Classification.STABLE: "stable",
        }
        values = f"{self.new_value:g} vs {self.baseline_value:g} {self.unit}".rstrip()
        if self.classification == Classification.STABLE:
            return f"{self.name} stable at {self.relative_delta * 100:+.1f}% ({values})"
        return f"{self.name} {verbs[self.classification]} by {abs(self.relative_delta) * 100:.1f}% ({values})"

    def to_dict(self) -> dict[str, Any]:
        """Convert verdict to dictionary for serialization."""
        return {
            "name": self.name,
            "classification": self.classification.value,
            "new_value": self.new_value,
            "baseline_value": self.baseline_value,
            "relative_delta": self.relative_delta,
            "unit": self.unit,
            "direction": self.direction.value,
            "noise_band": self.noise_band,
            "error": self.error,
        }


@dataclass
class RegressionReport:
    """Result of analyzing one run against its suite's history.

    Attributes:
        suite_name: Suite the run belongs to.
        commit_id: Commit of the analyzed run.
        verdicts: One verdict per measurement, in run order.
        timestamp: When the analysis was performed.

    Example:
        >>> report = await history.ingest("Benchmark", metadata, measurements)
        >>> if report.has_regressions:
        ...     print(report.summary())
    """

    suite_name: str
    commit_id: str
    verdicts: list[BenchmarkVerdict] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)

    def __len__(self) -> int:
        """Return the number of verdicts."""
        return len(self.verdicts)

    def __getitem__(self, name: str) -> BenchmarkVerdict:
        """Get the verdict for a canonical benchmark name.

        Raises:
            KeyError: If the run had no such benchmark.
        """
        for verdict in self.verdicts:
            if verdict.name == name:
                return verdict
        raise KeyError(name)

    def by_classification(self, classification: Classification) -> list[BenchmarkVerdict]:
        """Get the verdicts with a given classification, in run order."""
        return [v for v in self.verdicts if v.classification == classification]

    @property
    def regressions(self) -> list[BenchmarkVerdict]:
        """Verdicts classified as regressions."""
        return self.by_classification(Classification.REGRESSION)

    @property
    def improvements(self) -> list[BenchmarkVerdict]:
        """Verdicts classified as improvements."""
        return self.by_classification(Classification.IMPROVEMENT)

    @property
    def has_regressions(self) -> bool:
        """Check if any regressions were detected."""
        return any(v.classification == Classification.REGRESSION for v in self.verdicts)

    def counts(self) -> dict[str, int]:
        """Count verdicts per classification."""
        counts = {c.value: 0 for c in Classification}
        for verdict in self.verdicts:
            counts[verdict.classification.value] += 1
        return counts

    def summary(self) -> str:
        """Generate a human-readable summary.

        Returns:
            Multi-line summary string.
        """
        counts = self.counts()
        lines = [
            f"Regression Report for '{self.suite_name}' @ {self.commit_id[:12]} "
            f"({self.timestamp.strftime('%Y-%m-%d %H:%M:%S')})",
            "  " + ", ".join(f"{key.capitalize()}: {value}" for key, value in counts.items()),
        ]

        flagged = [
            v
            for v in self.verdicts
            if v.classification
            in (Classification.REGRESSION, Classification.IMPROVEMENT, Classification.INDETERMINATE)
        ]
        if not flagged:
            lines.append("")
            lines.append("No regressions detected.")
            return "\n".join(lines)

        lines.append("")
        for verdict in flagged:
            lines.append(f"  [{verdict.classification.value.upper()}] {verdict.message}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert report to dictionary for JSON output."""
        return {
            "suite": self.suite_name,
            "commit_id": self.commit_id,
            "timestamp": self.timestamp.isoformat(),
            "has_regressions": self.has_regressions,
            "counts": self.counts(),
            "verdicts": [v.to_dict() for v in self.verdicts],
        }
