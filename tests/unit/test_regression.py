"""Unit tests for the regression detection module."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from benchwatch.core.exceptions import ConfigurationError, DivisionByZeroError
from benchwatch.core.types import BenchResult, Run
from benchwatch.regression import (
    Aggregation,
    AnalyzerConfig,
    BenchmarkVerdict,
    Classification,
    Direction,
    RegressionDetector,
    RegressionReport,
    aggregate,
)

if TYPE_CHECKING:
    from pathlib import Path

# ============================================================================
# Fixtures
# ============================================================================


def make_run(commit_id: str, timestamp: int, values: dict[str, float], error: float = 1.0) -> Run:
    """Helper to build a run from name -> value with a fixed error margin."""
    return Run(
        commit_id=commit_id,
        timestamp=timestamp,
        results=tuple(
            BenchResult(name=name, raw_name=name, value=value, error_margin=error, unit="ns/iter")
            for name, value in values.items()
        ),
    )


@pytest.fixture
def detector() -> RegressionDetector:
    """Create a detector with default configuration."""
    return RegressionDetector()


# ============================================================================
# Classification Tests
# ============================================================================


class TestClassify:
    """Tests for RegressionDetector.classify()."""

    def test_change_within_noise_is_stable(self, detector: RegressionDetector) -> None:
        """A 5% change inside a 20% noise band is stable."""
        classification, delta, noise = detector.classify("X", 105, 10, 100, 10, Direction.LOWER_IS_BETTER)

        assert classification == Classification.STABLE
        assert delta == pytest.approx(0.05)
        assert noise == pytest.approx(0.2)

    def test_clear_slowdown_is_regression(self, detector: RegressionDetector) -> None:
        """A 30% slowdown with tight margins is a regression."""
        classification, delta, noise = detector.classify("X", 130, 1, 100, 1, Direction.LOWER_IS_BETTER)

        assert classification == Classification.REGRESSION
        assert delta == pytest.approx(0.3)
        assert noise == pytest.approx(0.02)

    def test_clear_speedup_is_improvement(self, detector: RegressionDetector) -> None:
        """A 30% speedup with tight margins is an improvement."""
        classification, _, _ = detector.classify("X", 70, 1, 100, 1, Direction.LOWER_IS_BETTER)

        assert classification == Classification.IMPROVEMENT

    def test_higher_is_better_inverts(self, detector: RegressionDetector) -> None:
        """For throughput-like benchmarks a drop is a regression."""
        dropped, _, _ = detector.classify("X", 70, 1, 100, 1, Direction.HIGHER_IS_BETTER)
        raised, _, _ = detector.classify("X", 130, 1, 100, 1, Direction.HIGHER_IS_BETTER)

        assert dropped == Classification.REGRESSION
        assert raised == Classification.IMPROVEMENT

    def test_change_at_threshold_is_stable(self, detector: RegressionDetector) -> None:
        """The threshold must be exceeded, not merely reached."""
        classification, _, _ = detector.classify("X", 105, 0, 100, 0, Direction.LOWER_IS_BETTER)

        assert classification == Classification.STABLE

    def test_change_below_threshold_is_stable(self, detector: RegressionDetector) -> None:
        """Significant but small changes are stable."""
        classification, _, _ = detector.classify("X", 103, 0, 100, 0, Direction.LOWER_IS_BETTER)

        assert classification == Classification.STABLE

    def test_custom_threshold(self) -> None:
        """A looser threshold tolerates larger changes."""
        detector = RegressionDetector(AnalyzerConfig(threshold_ratio=1.5))

        classification, _, _ = detector.classify("X", 130, 1, 100, 1, Direction.LOWER_IS_BETTER)

        assert classification == Classification.STABLE

    def test_negative_baseline(self, detector: RegressionDetector) -> None:
        """Deltas are relative to the magnitude of the baseline."""
        classification, delta, _ = detector.classify("X", -130, 1, -100, 1, Direction.LOWER_IS_BETTER)

        assert delta == pytest.approx(-0.3)
        assert classification == Classification.IMPROVEMENT

    def test_zero_baseline_raises(self, detector: RegressionDetector) -> None:
        """A zero baseline has no relative delta."""
        with pytest.raises(DivisionByZeroError) as exc_info:
            detector.classify("X", 1, 0, 0, 0, Direction.LOWER_IS_BETTER)

        assert exc_info.value.name == "X"


# ============================================================================
# Detection Tests
# ============================================================================


class TestDetect:
    """Tests for RegressionDetector.detect()."""

    def test_no_history_is_baseline(self, detector: RegressionDetector) -> None:
        """Every measurement of a first run is a baseline."""
        run = make_run("c1", 1, {"A": 1.0, "B": 2.0})

        report = detector.detect("Benchmark", run, [])

        assert [v.classification for v in report.verdicts] == [Classification.BASELINE] * 2
        assert not report.has_regressions

    def test_new_benchmark_is_baseline(self, detector: RegressionDetector) -> None:
        """A benchmark absent from prior runs is a baseline."""
        prior = [make_run("c1", 1, {"A": 100.0})]
        run = make_run("c2", 2, {"A": 100.0, "B": 5.0})

        report = detector.detect("Benchmark", run, prior)

        assert report["A"].classification == Classification.STABLE
        assert report["B"].classification == Classification.BASELINE

    def test_run_excluded_from_own_baseline(self, detector: RegressionDetector) -> None:
        """A run is never compared against itself."""
        run = make_run("c1", 1, {"A": 100.0})

        report = detector.detect("Benchmark", run, [run])

        assert report["A"].classification == Classification.BASELINE

    def test_verdicts_in_run_order(self, detector: RegressionDetector) -> None:
        """Verdicts follow the order of the run's measurements."""
        prior = [make_run("c1", 1, {"B": 1.0, "A": 1.0})]
        run = make_run("c2", 2, {"C": 1.0, "A": 1.0, "B": 1.0})

        report = detector.detect("Benchmark", run, prior)

        assert [v.name for v in report.verdicts] == ["C", "A", "B"]

    def test_zero_baseline_is_indeterminate_and_rest_continues(self, detector: RegressionDetector) -> None:
        """A zero baseline marks one entry indeterminate without aborting the run."""
        prior = [make_run("c1", 1, {"zero": 0.0, "slow": 100.0}, error=0.0)]
        run = make_run("c2", 2, {"zero": 5.0, "slow": 200.0}, error=0.0)

        report = detector.detect("Benchmark", run, prior)

        assert report["zero"].classification == Classification.INDETERMINATE
        assert report["zero"].error is not None
        assert report["slow"].classification == Classification.REGRESSION

    def test_direction_from_config(self) -> None:
        """Per-benchmark directions are honored."""
        config = AnalyzerConfig(directions={"*/throughput": Direction.HIGHER_IS_BETTER})
        detector = RegressionDetector(config)
        prior = [make_run("c1", 1, {"io/throughput": 100.0, "io/latency": 100.0})]
        run = make_run("c2", 2, {"io/throughput": 130.0, "io/latency": 130.0})

        report = detector.detect("Benchmark", run, prior)

        assert report["io/throughput"].classification == Classification.IMPROVEMENT
        assert report["io/throughput"].direction == Direction.HIGHER_IS_BETTER
        assert report["io/latency"].classification == Classification.REGRESSION

    def test_default_compares_with_previous_value(self, detector: RegressionDetector) -> None:
        """With a window of one the baseline is the previous measurement."""
        prior = [make_run("c1", 1, {"A": 1000.0}), make_run("c2", 2, {"A": 100.0})]
        run = make_run("c3", 3, {"A": 130.0})

        report = detector.detect("Benchmark", run, prior)

        assert report["A"].baseline_value == 100.0
        assert report["A"].classification == Classification.REGRESSION


class TestRollingBaseline:
    """Tests for window and aggregation settings."""

    @pytest.fixture
    def prior(self) -> list[Run]:
        """Three prior runs with one outlier."""
        return [
            make_run("c1", 1, {"A": 100.0}, error=0.0),
            make_run("c2", 2, {"A": 100.0}, error=0.0),
            make_run("c3", 3, {"A": 1000.0}, error=0.0),
        ]

    def test_mean_window(self, prior: list[Run]) -> None:
        """The mean of the window is the baseline."""
        detector = RegressionDetector(AnalyzerConfig(window=3, aggregation=Aggregation.MEAN))

        report = detector.detect("Benchmark", make_run("c4", 4, {"A": 130.0}, error=0.0), prior)

        assert report["A"].baseline_value == pytest.approx(400.0)
        assert report["A"].classification == Classification.IMPROVEMENT

    def test_median_window_ignores_outlier(self, prior: list[Run]) -> None:
        """The median of the window resists a single outlier."""
        detector = RegressionDetector(AnalyzerConfig(window=3, aggregation=Aggregation.MEDIAN))

        report = detector.detect("Benchmark", make_run("c4", 4, {"A": 130.0}, error=0.0), prior)

        assert report["A"].baseline_value == 100.0
        assert report["A"].classification == Classification.REGRESSION

    def test_last_aggregation(self, prior: list[Run]) -> None:
        """LAST uses only the most recent prior value."""
        detector = RegressionDetector(AnalyzerConfig(window=3, aggregation=Aggregation.LAST))

        report = detector.detect("Benchmark", make_run("c4", 4, {"A": 1000.0}, error=0.0), prior)

        assert report["A"].baseline_value == 1000.0
        assert report["A"].classification == Classification.STABLE

    def test_window_larger_than_history(self, prior: list[Run]) -> None:
        """A window larger than the history uses what is available."""
        detector = RegressionDetector(AnalyzerConfig(window=10))

        report = detector.detect("Benchmark", make_run("c4", 4, {"A": 400.0}, error=0.0), prior)

        assert report["A"].baseline_value == pytest.approx(400.0)
        assert report["A"].classification == Classification.STABLE

    @pytest.mark.parametrize(
        ("aggregation", "expected"),
        [(Aggregation.LAST, 3.0), (Aggregation.MEAN, 2.0), (Aggregation.MEDIAN, 1.5)],
    )
    def test_aggregate(self, aggregation: Aggregation, expected: float) -> None:
        """aggregate() folds values oldest first."""
        values = [1.0, 1.0, 2.0, 3.0] if aggregation == Aggregation.MEDIAN else [1.0, 2.0, 3.0]

        assert aggregate(values, aggregation) == pytest.approx(expected)


# ============================================================================
# AnalyzerConfig Tests
# ============================================================================


class TestAnalyzerConfig:
    """Tests for AnalyzerConfig."""

    def test_defaults(self) -> None:
        """Defaults compare with the previous value at 5%."""
        config = AnalyzerConfig()

        assert config.threshold_ratio == 1.05
        assert config.threshold == pytest.approx(0.05)
        assert config.window == 1
        assert config.aggregation == Aggregation.MEAN
        assert config.default_direction == Direction.LOWER_IS_BETTER

    def test_invalid_ratio_rejected(self) -> None:
        """The ratio must be greater than one."""
        with pytest.raises(ValueError):
            AnalyzerConfig(threshold_ratio=1.0)

    def test_exact_name_beats_pattern(self) -> None:
        """Exact names take precedence over patterns."""
        config = AnalyzerConfig(
            directions={
                "*/throughput": Direction.HIGHER_IS_BETTER,
                "io/throughput": Direction.LOWER_IS_BETTER,
            }
        )

        assert config.direction_for("io/throughput") == Direction.LOWER_IS_BETTER
        assert config.direction_for("net/throughput") == Direction.HIGHER_IS_BETTER
        assert config.direction_for("net/latency") == Direction.LOWER_IS_BETTER

    def test_from_yaml_under_analyzer_key(self, tmp_path: Path) -> None:
        """Settings are read from the analyzer section."""
        path = tmp_path / "benchwatch.yaml"
        path.write_text(
            "analyzer:\n"
            "  threshold_ratio: 1.2\n"
            "  window: 5\n"
            "  aggregation: median\n"
            "  directions:\n"
            "    '*/ops': higher_is_better\n"
        )

        config = AnalyzerConfig.from_yaml(path)

        assert config.threshold_ratio == 1.2
        assert config.window == 5
        assert config.aggregation == Aggregation.MEDIAN
        assert config.direction_for("codec/ops") == Direction.HIGHER_IS_BETTER

    def test_from_yaml_top_level(self, tmp_path: Path) -> None:
        """Settings may also sit at the top level."""
        path = tmp_path / "benchwatch.yaml"
        path.write_text("threshold_ratio: 2.0\n")

        assert AnalyzerConfig.from_yaml(path).threshold_ratio == 2.0

    def test_from_yaml_empty_file(self, tmp_path: Path) -> None:
        """An empty file gives the defaults."""
        path = tmp_path / "benchwatch.yaml"
        path.write_text("")

        assert AnalyzerConfig.from_yaml(path) == AnalyzerConfig()

    def test_from_yaml_invalid(self, tmp_path: Path) -> None:
        """Invalid values raise ConfigurationError."""
        path = tmp_path / "benchwatch.yaml"
        path.write_text("analyzer:\n  threshold_ratio: 0.5\n")

        with pytest.raises(ConfigurationError):
            AnalyzerConfig.from_yaml(path)

    def test_from_yaml_not_a_mapping(self, tmp_path: Path) -> None:
        """A YAML list is not a configuration."""
        path = tmp_path / "benchwatch.yaml"
        path.write_text("- 1\n- 2\n")

        with pytest.raises(ConfigurationError):
            AnalyzerConfig.from_yaml(path)

    def test_from_yaml_missing_file(self, tmp_path: Path) -> None:
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            AnalyzerConfig.from_yaml(tmp_path / "missing.yaml")

    def test_yaml_round_trip(self, tmp_path: Path) -> None:
        """to_yaml() output is accepted by from_yaml()."""
        config = AnalyzerConfig(
            threshold_ratio=1.1,
            window=3,
            aggregation=Aggregation.LAST,
            directions={"*/ops": Direction.HIGHER_IS_BETTER},
        )
        path = tmp_path / "out" / "benchwatch.yaml"

        config.to_yaml(path)

        assert AnalyzerConfig.from_yaml(path) == config


# ============================================================================
# Report Tests
# ============================================================================


class TestRegressionReport:
    """Tests for RegressionReport and BenchmarkVerdict."""

    @pytest.fixture
    def report(self) -> RegressionReport:
        """A report with one verdict per interesting classification."""
        return RegressionReport(
            suite_name="Benchmark",
            commit_id="21cc017bba911e0ada0822b291a180c393616c3b",
            verdicts=[
                BenchmarkVerdict(
                    name="slow",
                    classification=Classification.REGRESSION,
                    new_value=130.0,
                    baseline_value=100.0,
                    relative_delta=0.3,
                    unit="ns/iter",
                    noise_band=0.02,
                ),
                BenchmarkVerdict(
                    name="fast",
                    classification=Classification.IMPROVEMENT,
                    new_value=70.0,
                    baseline_value=100.0,
                    relative_delta=-0.3,
                    unit="ns/iter",
                    noise_band=0.02,
                ),
                BenchmarkVerdict(name="new", classification=Classification.BASELINE, new_value=1.0, unit="ns/iter"),
            ],
        )

    def test_lookup_by_name(self, report: RegressionReport) -> None:
        """Verdicts are reachable by canonical name."""
        assert report["fast"].classification == Classification.IMPROVEMENT
        with pytest.raises(KeyError):
            report["missing"]

    def test_filters(self, report: RegressionReport) -> None:
        """Regression and improvement views."""
        assert len(report) == 3
        assert [v.name for v in report.regressions] == ["slow"]
        assert [v.name for v in report.improvements] == ["fast"]
        assert report.has_regressions

    def test_counts(self, report: RegressionReport) -> None:
        """counts() covers every classification."""
        counts = report.counts()

        assert counts["regression"] == 1
        assert counts["improvement"] == 1
        assert counts["baseline"] == 1
        assert counts["stable"] == 0
        assert counts["indeterminate"] == 0

    def test_messages(self, report: RegressionReport) -> None:
        """Verdict messages describe the change."""
        assert report["slow"].message == "slow regressed by 30.0% (130 vs 100 ns/iter)"
        assert report["fast"].message == "fast improved by 30.0% (70 vs 100 ns/iter)"
        assert report["new"].message == "new: first measurement (1 ns/iter)"

    def test_message_without_baseline_values(self) -> None:
        """A compared verdict missing its baseline still renders a message."""
        verdict = BenchmarkVerdict(name="X", classification=Classification.STABLE, new_value=1.0)

        assert verdict.message == "X: stable (no baseline)"

    def test_summary(self, report: RegressionReport) -> None:
        """The summary lists flagged verdicts."""
        summary = report.summary()

        assert "Regression Report for 'Benchmark' @ 21cc017bba91" in summary
        assert "[REGRESSION] slow regressed by 30.0%" in summary
        assert "[IMPROVEMENT] fast improved" in summary
        assert "No regressions detected." not in summary

    def test_summary_without_flags(self) -> None:
        """A quiet report says so."""
        report = RegressionReport(suite_name="Benchmark", commit_id="abc")

        assert "No regressions detected." in report.summary()

    def test_to_dict(self, report: RegressionReport) -> None:
        """to_dict() is JSON-ready."""
        data = report.to_dict()

        assert data["suite"] == "Benchmark"
        assert data["has_regressions"] is True
        assert data["counts"]["regression"] == 1
        assert data["verdicts"][0]["classification"] == "regression"
        assert data["verdicts"][0]["direction"] == "lower_is_better"
        assert data["verdicts"][2]["relative_delta"] is None
