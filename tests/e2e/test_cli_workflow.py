"""End-to-end tests for CLI workflow.

Tests the full import → ingest → analyze → export pipeline against a real history file.
"""

from __future__ import annotations

import json
import tempfile
from pathlib import Path

import pytest
from typer.testing import CliRunner

from benchwatch.cli.main import app

runner = CliRunner()

DATA_JS = {
    "lastUpdate": 1695376800000,
    "repoUrl": "https://github.com/example/project",
    "entries": {
        "Benchmark": [
            {
                "commit": {
                    "author": {"email": "ada@example.com", "name": "Ada", "username": "ada"},
                    "distinct": True,
                    "id": "21cc017bba911e0ada0822b291a180c393616c3b",
                    "message": "Add FFT benchmarks",
                    "timestamp": "2023-09-21T15:43:08Z",
                    "url": "https://github.com/example/project/commit/21cc017",
                },
                "date": 1695311943511,
                "tool": "cargo",
                "benches": [
                    {"name": "FFT", "value": 80906685, "range": "± 3973747", "unit": "ns/iter"},
                    {"name": "FFT", "value": 81227110, "range": "± 1296498", "unit": "ns/iter"},
                    {"name": "Polynomial/add", "value": 107, "range": "± 5", "unit": "ns/iter"},
                ],
            },
            {
                "commit": {
                    "author": {"name": "Ada"},
                    "id": "3d0f1b2c",
                    "timestamp": "2023-09-22T10:00:00Z",
                },
                "date": 1695376800000,
                "tool": "cargo",
                "benches": [
                    {"name": "FFT", "value": 80000000, "range": "± 3000000", "unit": "ns/iter"},
                    {"name": "FFT", "value": 81000000, "range": "± 1000000", "unit": "ns/iter"},
                    {"name": "Polynomial/add", "value": 108, "range": "± 4", "unit": "ns/iter"},
                ],
            },
        ]
    },
}


def write_data_js(path: Path) -> Path:
    path.write_text(f"window.BENCHMARK_DATA = {json.dumps(DATA_JS, ensure_ascii=False)};\n", encoding="utf-8")
    return path


def write_run(path: Path, commit_id: str, timestamp: str, fft: float, add: float) -> Path:
    data = {
        "commitId": commit_id,
        "timestamp": timestamp,
        "author": {"name": "Ada"},
        "tool": "cargo",
        "results": [
            {"name": "FFT", "value": fft, "errorMargin": 1000000, "unit": "ns/iter"},
            {"name": "FFT", "value": 81000000, "errorMargin": 1000000, "unit": "ns/iter"},
            {"name": "Polynomial/add", "value": add, "errorMargin": 2, "unit": "ns/iter"},
        ],
    }
    path.write_text(json.dumps(data))
    return path


@pytest.mark.e2e
class TestCLIWorkflow:
    """E2E tests for the CLI workflow."""

    def test_import_then_ingest_regression(self) -> None:
        """A slow run after an imported history is flagged and recorded."""
        with tempfile.TemporaryDirectory() as tmpdir:
            store = Path(tmpdir) / "history.json"
            data_js = write_data_js(Path(tmpdir) / "data.js")

            result = runner.invoke(app, ["--store", str(store), "import", str(data_js)])
            assert result.exit_code == 0
            assert "Imported 2 run(s)" in result.output

            run_file = write_run(Path(tmpdir) / "run.json", "9a8b7c6d", "2023-09-23T08:00:00Z", 120000000, 108)
            report_path = Path(tmpdir) / "report.json"
            result = runner.invoke(
                app, ["--json", "--store", str(store), "ingest", "Benchmark", str(run_file), "-o", str(report_path)]
            )

            assert result.exit_code == 1
            data = json.loads(result.output)
            assert data["status"] == "regression"
            verdicts = {v["name"]: v["classification"] for v in data["report"]["verdicts"]}
            assert verdicts == {"FFT": "regression", "FFT #2": "stable", "Polynomial/add": "stable"}
            assert json.loads(report_path.read_text())["status"] == "regression"

            result = runner.invoke(app, ["--json", "--store", str(store), "query", "Benchmark", "FFT #2"])
            assert result.exit_code == 0
            points = json.loads(result.output)["points"]
            assert [p["commit_id"] for p in points] == [
                "21cc017bba911e0ada0822b291a180c393616c3b",
                "3d0f1b2c",
                "9a8b7c6d",
            ]

    def test_rejected_runs_do_not_change_history(self) -> None:
        """Duplicate and out-of-order runs leave the file untouched."""
        with tempfile.TemporaryDirectory() as tmpdir:
            store = Path(tmpdir) / "history.json"
            runner.invoke(app, ["--store", str(store), "import", str(write_data_js(Path(tmpdir) / "data.js"))])
            before = store.read_text()

            duplicate = write_run(Path(tmpdir) / "dup.json", "3d0f1b2c", "2023-09-24T08:00:00Z", 1, 1)
            result = runner.invoke(app, ["--store", str(store), "ingest", "Benchmark", str(duplicate)])
            assert result.exit_code == 3

            stale = write_run(Path(tmpdir) / "old.json", "0badc0de", "2023-09-01T08:00:00Z", 1, 1)
            result = runner.invoke(app, ["--store", str(store), "ingest", "Benchmark", str(stale)])
            assert result.exit_code == 2
            assert "older than the latest recorded run" in result.output

            assert store.read_text() == before

    def test_export_and_reimport(self) -> None:
        """An exported data.js file rebuilds the same history elsewhere."""
        with tempfile.TemporaryDirectory() as tmpdir:
            first = Path(tmpdir) / "first.json"
            second = Path(tmpdir) / "second.json"
            exported = Path(tmpdir) / "export" / "data.js"

            runner.invoke(app, ["--store", str(first), "import", str(write_data_js(Path(tmpdir) / "data.js"))])
            result = runner.invoke(app, ["--store", str(first), "export", "--data-js", "-o", str(exported)])
            assert result.exit_code == 0

            result = runner.invoke(app, ["--store", str(second), "import", str(exported)])
            assert result.exit_code == 0

            for name in ("FFT", "FFT #2", "Polynomial/add"):
                old = runner.invoke(app, ["--json", "--store", str(first), "query", "Benchmark", name])
                new = runner.invoke(app, ["--json", "--store", str(second), "query", "Benchmark", name])
                old_values = [p["value"] for p in json.loads(old.output)["points"]]
                new_values = [p["value"] for p in json.loads(new.output)["points"]]
                assert old_values == new_values
                assert len(old_values) == 2


@pytest.mark.e2e
class TestCLIErrorHandling:
    """E2E tests for CLI error handling."""

    def test_corrupted_history_is_never_overwritten(self) -> None:
        """Ingesting into a corrupted history file fails with code 2."""
        with tempfile.TemporaryDirectory() as tmpdir:
            store = Path(tmpdir) / "history.json"
            store.write_text("{ not json")
            run_file = write_run(Path(tmpdir) / "run.json", "c1", "2023-09-23T08:00:00Z", 1, 1)

            result = runner.invoke(app, ["--store", str(store), "ingest", "Benchmark", str(run_file)])

            assert result.exit_code == 2
            assert "Invalid history file" in result.output
            assert store.read_text() == "{ not json"

    def test_unknown_command(self) -> None:
        """Unknown commands are usage errors."""
        result = runner.invoke(app, ["frobnicate"])

        assert result.exit_code == 2
