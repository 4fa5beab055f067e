"""Regression detector for benchmark runs.

This module provides the RegressionDetector class, which classifies the
measurements of a newly appended run against a rolling baseline built
from the prior runs of the same suite.
"""

from __future__ import annotations

import logging
import statistics
from typing import TYPE_CHECKING

from benchwatch.core.exceptions import DivisionByZeroError
from benchwatch.core.types import HistorySeries
from benchwatch.regression.models import (
    Aggregation,
    AnalyzerConfig,
    BenchmarkVerdict,
    Classification,
    Direction,
    RegressionReport,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from benchwatch.core.types import BenchResult, Run, SeriesPoint

logger = logging.getLogger(__name__)


def aggregate(values: Sequence[float], aggregation: Aggregation) -> float:
    """Fold a window of values into one baseline value.

    Args:
        values: Values oldest first (must not be empty).
        aggregation: The aggregation to apply.

    Returns:
        The aggregated value.
    """
    if aggregation == Aggregation.LAST:
        return values[-1]
    if aggregation == Aggregation.MEDIAN:
        return statistics.median(values)
    return statistics.fmean(values)


class RegressionDetector:
    """Classify a run's measurements against its suite's history.

    A measurement is a regression when its change in the worse direction
    exceeds both the threshold and the combined noise band of the new and
    baseline error margins; an improvement under the symmetric condition
    in the favorable direction; stable otherwise. Benchmarks with no prior
    measurement are classified as baseline.

    Attributes:
        config: Analyzer configuration.

    Example:
        >>> detector = RegressionDetector(AnalyzerConfig(threshold_ratio=1.05))
        >>> report = detector.detect("Benchmark", new_run, prior_runs)
        >>> for verdict in report.regressions:
        ...     print(verdict.message)
    """

    def __init__(self, config: AnalyzerConfig | None = None) -> None:
        """Initialize detector.

        Args:
            config: Analyzer configuration. Defaults to AnalyzerConfig().
        """
        self.config = config or AnalyzerConfig()

    def _baseline(self, window: Sequence[SeriesPoint]) -> tuple[float, float]:
        """Compute baseline value and error margin from the prior window."""
        value = aggregate([p.value for p in window], self.config.aggregation)
        margin = aggregate([p.error_margin for p in window], self.config.aggregation)
        return value, margin

    def classify(
        self,
        name: str,
        new_value: float,
        new_error: float,
        baseline_value: float,
        baseline_error: float,
        direction: Direction,
    ) -> tuple[Classification, float, float]:
        """Classify one measurement against a baseline.

        Args:
            name: Canonical benchmark name.
            new_value: Newly measured value.
            new_error: Error margin of the new value.
            baseline_value: Baseline value.
            baseline_error: Error margin of the baseline.
            direction: Direction of improvement.

        Returns:
            Tuple of (classification, relative delta, noise band).

        Raises:
            DivisionByZeroError: If the baseline value is zero.

        Example:
            >>> detector.classify("X", 130, 1, 100, 1, Direction.LOWER_IS_BETTER)
            (<Classification.REGRESSION: 'regression'>, 0.3, 0.02)
        """
        if baseline_value == 0:
            raise DivisionByZeroError(name)

        scale = abs(baseline_value)
        delta = (new_value - baseline_value) / scale
        noise = (new_error + baseline_error) / scale

        worse = delta if direction == Direction.LOWER_IS_BETTER else -delta
        significant = abs(delta) > noise

        if significant and worse > self.config.threshold:
            return Classification.REGRESSION, delta, noise
        if significant and -worse > self.config.threshold:
            return Classification.IMPROVEMENT, delta, noise
        return Classification.STABLE, delta, noise

    def _verdict(self, suite_name: str, result: BenchResult, prior_runs: Sequence[Run]) -> BenchmarkVerdict:
        """Analyze one measurement of the new run."""
        direction = self.config.direction_for(result.name)
        series = HistorySeries(suite_name, result.name, prior_runs)
        window = series.last(self.config.window)

        if not window:
            return BenchmarkVerdict(
                name=result.name,
                classification=Classification.BASELINE,
                new_value=result.value,
                unit=result.unit,
                direction=direction,
            )

        baseline_value, baseline_error = self._baseline(window)
        try:
            classification, delta, noise = self.classify(
                result.name,
                result.value,
                result.error_margin,
                baseline_value,
                baseline_error,
                direction,
            )
        except DivisionByZeroError as e:
            logger.warning(f"Skipping '{result.name}' in suite '{suite_name}': {e}")
            return BenchmarkVerdict(
                name=result.name,
                classification=Classification.INDETERMINATE,
                new_value=result.value,
                baseline_value=baseline_value,
                unit=result.unit,
                direction=direction,
                error=str(e),
            )

        return BenchmarkVerdict(
            name=result.name,
            classification=classification,
            new_value=result.value,
            baseline_value=baseline_value,
            relative_delta=delta,
            unit=result.unit,
            direction=direction,
            noise_band=noise,
        )

    def detect(self, suite_name: str, run: Run, prior_runs: Sequence[Run]) -> RegressionReport:
        """Classify every measurement of a run against prior history.

        The run itself is never part of its own baseline, even if it is
        contained in ``prior_runs``.

        Args:
            suite_name: Suite the run belongs to.
            run: The newly appended run.
            prior_runs: Runs recorded before it, in append order.

        Returns:
            RegressionReport with one verdict per measurement, in run order.
        """
        history = [r for r in prior_runs if r.commit_id != run.commit_id]
        verdicts = [self._verdict(suite_name, result, history) for result in run.results]
        report = RegressionReport(suite_name=suite_name, commit_id=run.commit_id, verdicts=verdicts)

        if report.has_regressions:
            logger.info(
                f"Detected {len(report.regressions)} regression(s) in suite '{suite_name}' at {run.commit_id}"
            )
        return report
