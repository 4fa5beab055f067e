"""Regression detection module for benchwatch.

This module classifies the measurements of a new run against a rolling
baseline built from the suite's prior runs.

Example:
    >>> from benchwatch.regression import AnalyzerConfig, RegressionDetector
    >>>
    >>> detector = RegressionDetector(AnalyzerConfig(threshold_ratio=1.10, window=3))
    >>> report = detector.detect("Benchmark", new_run, prior_runs)
    >>> if report.has_regressions:
    ...     print(report.summary())
"""

from __future__ import annotations

from benchwatch.regression.detector import RegressionDetector, aggregate
from benchwatch.regression.models import (
    Aggregation,
    AnalyzerConfig,
    BenchmarkVerdict,
    Classification,
    Direction,
    RegressionReport,
)

__all__ = [
    "Aggregation",
    "AnalyzerConfig",
    "BenchmarkVerdict",
    "Classification",
    "Direction",
    "RegressionDetector",
    "RegressionReport",
    "aggregate",
]
