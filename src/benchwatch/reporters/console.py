"""Console reporter for benchwatch.

This module provides terminal output for regression reports,
with a table of verdicts and colored status indicators.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, TextIO

from benchwatch.regression.models import Classification

if TYPE_CHECKING:
    from benchwatch.core.types import HistorySeries
    from benchwatch.regression.models import BenchmarkVerdict, RegressionReport


# ANSI color codes
class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"


STATUS_STYLES: dict[Classification, tuple[str, str]] = {
    Classification.REGRESSION: ("REGRESSION", Colors.RED),
    Classification.IMPROVEMENT: ("IMPROVED", Colors.GREEN),
    Classification.STABLE: ("stable", Colors.DIM),
    Classification.BASELINE: ("baseline", Colors.BLUE),
    Classification.INDETERMINATE: ("???", Colors.YELLOW),
}


class ConsoleReporter:
    """Reporter that outputs regression reports to the terminal.

    Attributes:
        use_colors: Whether to use ANSI colors in output.
        output: Output stream (defaults to stdout).

    Example:
        >>> reporter = ConsoleReporter()
        >>> reporter.report(report)
          Benchmark @ 21cc017bba91
          Benchmark               Value        Baseline      Change  Status
          Polynomial/add          130 ns/iter  100 ns/iter   +30.0%  REGRESSION
    """

    def __init__(
        self,
        use_colors: bool = True,
        output: TextIO | None = None,
    ) -> None:
        """Initialize ConsoleReporter.

        Args:
            use_colors: Whether to use ANSI colors. Defaults to True.
            output: Output stream. Defaults to sys.stdout.
        """
        self.output = output or sys.stdout
        self.use_colors = use_colors and _supports_color(self.output)

    def _color(self, text: str, color: str) -> str:
        """Apply color to text if colors are enabled."""
        if self.use_colors:
            return f"{color}{text}{Colors.RESET}"
        return text

    def _print(self, text: str = "") -> None:
        """Print text to output stream."""
        print(text, file=self.output)

    @staticmethod
    def _format_value(value: float | None, unit: str) -> str:
        if value is None:
            return "-"
        return f"{value:g} {unit}".rstrip()

    def _row(self, verdict: BenchmarkVerdict, name_width: int) -> str:
        label, color = STATUS_STYLES[verdict.classification]
        change = "-" if verdict.relative_delta is None else f"{verdict.relative_delta * 100:+.1f}%"
        # Pad before coloring so ANSI codes don't break alignment
        return (
            f"  {verdict.name:<{name_width}}  "
            f"{self._format_value(verdict.new_value, verdict.unit):>18}  "
            f"{self._format_value(verdict.baseline_value, verdict.unit):>18}  "
            f"{change:>8}  "
            f"{self._color(label, color)}"
        )

    def report(self, report: RegressionReport, verbose: bool = False) -> None:
        """Print a regression report.

        Args:
            report: The report to print.
            verbose: Also list stable and baseline verdicts.
        """
        self._print()
        self._print(self._color(f"  {report.suite_name} @ {report.commit_id[:12]}", Colors.BOLD + Colors.CYAN))

        verdicts = report.verdicts
        if not verbose:
            verdicts = [
                v
                for v in verdicts
                if v.classification not in (Classification.STABLE, Classification.BASELINE)
            ]

        if verdicts:
            name_width = max(len("Benchmark"), *(len(v.name) for v in verdicts))
            header = f"  {'Benchmark':<{name_width}}  {'Value':>18}  {'Baseline':>18}  {'Change':>8}  Status"
            self._print(self._color(header, Colors.BOLD))
            for verdict in verdicts:
                self._print(self._row(verdict, name_width))

        counts = report.counts()
        self._print()
        self._print(
            self._color(
                "  " + ", ".join(f"{count} {name}" for name, count in counts.items() if count),
                Colors.DIM,
            )
        )
        if report.has_regressions:
            self.print_error(f"{len(report.regressions)} regression(s) detected")
        else:
            self.print_success("No regressions detected")

    def report_series(self, series: HistorySeries) -> None:
        """Print the points of a history series, oldest first.

        Args:
            series: The series to print.
        """
        points = series.points()
        self._print()
        self._print(self._color(f"  {series.suite_name} / {series.name}", Colors.BOLD + Colors.CYAN))
        if not points:
            self.print_warning("No measurements recorded")
            return

        for point in points:
            self._print(
                f"  {point.commit_id[:12]:<12}  {point.value:>16g} ± {point.error_margin:<12g} {point.unit}".rstrip()
            )

    def print_success(self, text: str) -> None:
        """Print a success message."""
        self._print(self._color(f"  ✅ {text}", Colors.GREEN))

    def print_warning(self, text: str) -> None:
        """Print a warning message."""
        self._print(self._color(f"  ⚠️  {text}", Colors.YELLOW))

    def print_error(self, text: str) -> None:
        """Print an error message."""
        self._print(self._color(f"  ❌ {text}", Colors.RED))


def _supports_color(stream: TextIO) -> bool:
    """Check if the output stream supports ANSI colors.

    Args:
        stream: Output stream to check.

    Returns:
        True if colors are supported, False otherwise.
    """
    if not hasattr(stream, "isatty"):
        return False
    if not stream.isatty():
        return False

    if os.environ.get("NO_COLOR"):
        return False

    return os.environ.get("TERM") != "dumb"
