"""JSON reporter for benchwatch.

This module provides JSON output for regression reports and history
series, suitable for alert emitters and machine processing.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from benchwatch.core.types import HistorySeries
    from benchwatch.regression.models import RegressionReport


class JSONReporter:
    """Reporter that outputs regression reports as JSON.

    Attributes:
        indent: JSON indentation level (None for compact).

    Example:
        >>> reporter = JSONReporter()
        >>> print(reporter.report(report))
        {
          "generated_at": "2024-01-15T10:30:00+00:00",
          "status": "regression",
          "report": {...}
        }
    """

    def __init__(self, indent: int | None = 2) -> None:
        """Initialize JSONReporter.

        Args:
            indent: JSON indentation level. Defaults to 2. Use None for compact output.
        """
        self.indent = indent

    def _get_timestamp(self) -> str:
        """Get current timestamp in ISO 8601 format."""
        return datetime.now(timezone.utc).isoformat(timespec="seconds")

    def report_to_dict(self, report: RegressionReport) -> dict[str, Any]:
        """Wrap a report in the standard envelope.

        Args:
            report: The regression report.

        Returns:
            Dictionary with timestamp, overall status, and the report.
        """
        return {
            "generated_at": self._get_timestamp(),
            "status": "regression" if report.has_regressions else "pass",
            "report": report.to_dict(),
        }

    def report(self, report: RegressionReport) -> str:
        """Generate JSON for a regression report.

        Args:
            report: The regression report.

        Returns:
            JSON string representation of the report.
        """
        return json.dumps(self.report_to_dict(report), indent=self.indent)

    def report_to_file(self, report: RegressionReport, path: Path | str) -> None:
        """Write a regression report to a JSON file.

        Args:
            report: The regression report.
            path: Path to the output file.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.report(report))

    def series(self, series: HistorySeries) -> str:
        """Generate JSON for a history series.

        Args:
            series: The history series.

        Returns:
            JSON string with one entry per point, oldest first.
        """
        data = {
            "suite": series.suite_name,
            "name": series.name,
            "points": [
                {
                    "commit_id": point.commit_id,
                    "timestamp": point.run.timestamp,
                    "value": point.value,
                    "error_margin": point.error_margin,
                    "unit": point.unit,
                }
                for point in series
            ],
        }
        return json.dumps(data, indent=self.indent)
