"""Main CLI entry point for benchwatch.

This module defines the Typer application and all CLI commands.

Exit codes:
    0: Success (no regressions)
    1: Regressions detected (ingest, analyze)
    2: Invalid input or configuration
    3: Commit already recorded (ingest) or re-submitted with different content (import)
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any

import typer

from benchwatch import __version__
from benchwatch.benchmarks import BenchmarkHistory, JSONFileStore
from benchwatch.core.config import Settings
from benchwatch.core.exceptions import (
    BenchwatchError,
    ConfigurationError,
    DuplicateCommitError,
    NotFoundError,
)
from benchwatch.loaders import dump_data_js, load_history_file
from benchwatch.loaders.data_js import parse_data_js_entry
from benchwatch.reporters import ConsoleReporter, JSONReporter

if TYPE_CHECKING:
    from benchwatch.core.types import Suite

EXIT_REGRESSION = 1
EXIT_BAD_INPUT = 2
EXIT_DUPLICATE = 3

app = typer.Typer(
    name="benchwatch",
    help="benchwatch: Benchmark history tracking and regression detection for CI.",
    add_completion=False,
    no_args_is_help=True,
)

# Global state for options
state: dict[str, Any] = {
    "json": False,
    "no_color": False,
    "store": None,
    "config": None,
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"benchwatch v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[  # noqa: ARG001
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
    no_color: Annotated[
        bool,
        typer.Option(
            "--no-color",
            help="Disable colored output.",
        ),
    ] = False,
    store: Annotated[
        Path | None,
        typer.Option(
            "--store",
            "-s",
            help="Path to the history file (default: BENCHWATCH_STORE_PATH).",
        ),
    ] = None,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Analyzer configuration YAML (default: BENCHWATCH_ANALYZER_CONFIG).",
        ),
    ] = None,
) -> None:
    """benchwatch: Benchmark history tracking and regression detection.

    Ingest benchmark runs commit by commit and flag performance regressions.
    """
    state["json"] = json_output
    state["no_color"] = no_color
    state["store"] = store
    state["config"] = config


def _fail(message: str, code: int = EXIT_BAD_INPUT) -> typer.Exit:
    """Report an error on stderr and build the matching exit."""
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(code)


def _history() -> BenchmarkHistory:
    """Build the history from settings and global options."""
    try:
        settings = Settings()
    except ValueError as e:
        raise _fail(f"Invalid settings: {e}") from e

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if state["config"] is not None:
        settings = settings.model_copy(update={"analyzer_config": state["config"]})
    try:
        analyzer_config = settings.analyzer()
    except (FileNotFoundError, ConfigurationError) as e:
        raise _fail(str(e)) from e

    store_path = state["store"] or settings.store_path
    return BenchmarkHistory(JSONFileStore(store_path, source_ref=settings.source_ref), analyzer_config)


def _console() -> ConsoleReporter:
    return ConsoleReporter(use_colors=not state["no_color"])


def _read_run_file(path: Path) -> tuple[dict[str, Any], list[Any]]:
    """Read a run file into (metadata, measurements).

    Accepts the exchange format (``commitId``, ``timestamp``, ..., ``results``)
    or a single data.js entry (``commit``, ``tool``, ``benches``).
    """
    if not path.exists():
        raise _fail(f"Run file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise _fail(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise _fail(f"Expected a JSON object in {path}")

    if "commit" in data:
        try:
            entry = parse_data_js_entry(data, str(path))
        except BenchwatchError as e:
            raise _fail(str(e)) from e
        return entry.metadata.model_dump(), list(entry.measurements)

    measurements = data.get("results", data.get("benches"))
    if not isinstance(measurements, list):
        raise _fail(f"Missing 'results' list in {path}")
    metadata = {k: v for k, v in data.items() if k not in ("results", "benches")}
    return metadata, measurements


@app.command()
def version() -> None:
    """Show the current version."""
    typer.echo(f"benchwatch v{__version__}")


@app.command()
def ingest(
    suite: Annotated[str, typer.Argument(help="Name of the benchmark suite.")],
    run_file: Annotated[Path, typer.Argument(help="JSON file with run metadata and measurements.")],
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Also write the JSON report to this file.",
        ),
    ] = None,
    fail_on_regression: Annotated[
        bool,
        typer.Option(
            "--fail-on-regression/--no-fail-on-regression",
            help="Exit with code 1 when a regression is detected.",
        ),
    ] = True,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="List stable and baseline benchmarks too.",
        ),
    ] = False,
) -> None:
    """Ingest one benchmark run and report regressions.

    Examples:
        benchwatch ingest Benchmark run.json
        benchwatch --json ingest Benchmark run.json --output report.json
        benchwatch ingest Benchmark run.json --no-fail-on-regression
    """
    history = _history()
    metadata, measurements = _read_run_file(run_file)

    try:
        report = asyncio.run(history.ingest(suite, metadata, measurements))
    except DuplicateCommitError as e:
        raise _fail(str(e), EXIT_DUPLICATE) from e
    except BenchwatchError as e:
        raise _fail(str(e)) from e

    if state["json"]:
        typer.echo(JSONReporter().report(report))
    else:
        _console().report(report, verbose=verbose)

    if output:
        JSONReporter().report_to_file(report, output)

    if fail_on_regression and report.has_regressions:
        raise typer.Exit(EXIT_REGRESSION)


@app.command()
def analyze(
    suite: Annotated[str, typer.Argument(help="Name of the benchmark suite.")],
    commit: Annotated[str, typer.Argument(help="Commit of a recorded run.")],
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="List stable and baseline benchmarks too.",
        ),
    ] = False,
) -> None:
    """Re-analyze a recorded run against the runs before it."""
    history = _history()
    try:
        report = asyncio.run(history.analyze_run(suite, commit))
    except NotFoundError as e:
        raise _fail(str(e)) from e

    if state["json"]:
        typer.echo(JSONReporter().report(report))
    else:
        _console().report(report, verbose=verbose)

    if report.has_regressions:
        raise typer.Exit(EXIT_REGRESSION)


@app.command()
def query(
    suite: Annotated[str, typer.Argument(help="Name of the benchmark suite.")],
    name: Annotated[str, typer.Argument(help="Canonical benchmark name.")],
) -> None:
    """Show the recorded history of one benchmark."""
    history = _history()
    series = asyncio.run(history.query(suite, name))

    if state["json"]:
        typer.echo(JSONReporter().series(series))
    else:
        _console().report_series(series)


@app.command()
def suites() -> None:
    """List recorded suites with their run counts."""
    history = _history()

    async def collect() -> list[Suite]:
        return [await history.suite(name) for name in await history.suites()]

    recorded = asyncio.run(collect())
    counts = {suite.name: len(suite) for suite in recorded}
    if state["json"]:
        typer.echo(json.dumps({"suites": counts}, indent=2))
        return

    if not counts:
        typer.echo("No suites recorded.")
        return
    for suite in recorded:
        typer.echo(f"{suite.name}\t{len(suite)} run(s)\t{suite.tool or '-'}")


@app.command(name="import")
def import_(
    path: Annotated[Path, typer.Argument(help="data.js or history JSON file to import.")],
) -> None:
    """Import runs from a data.js or history JSON file.

    Commits already recorded with the same content are skipped, so importing
    twice is safe. Commits already recorded with different content are
    rejected, listed, and make the command exit with code 3.
    """
    history = _history()
    try:
        imported = load_history_file(path)
        summary = asyncio.run(history.import_history(imported))
    except BenchwatchError as e:
        raise _fail(str(e)) from e

    if state["json"]:
        typer.echo(
            json.dumps(
                {
                    "imported": summary.imported,
                    "skipped": summary.skipped,
                    "conflicts": [conflict.to_dict() for conflict in summary.conflicts],
                    "regressions": summary.regression_count,
                },
                indent=2,
            )
        )
    else:
        typer.echo(f"Imported {summary.imported} run(s), skipped {summary.skipped} already recorded.")
        console = _console()
        for conflict in summary.conflicts:
            console.print_warning(conflict.message)

    if summary.has_conflicts:
        raise typer.Exit(EXIT_DUPLICATE)


@app.command()
def export(
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Output file (default: stdout).",
        ),
    ] = None,
    data_js: Annotated[
        bool,
        typer.Option(
            "--data-js",
            help="Write the dashboard data.js script instead of JSON.",
        ),
    ] = False,
) -> None:
    """Export the whole history."""
    history = _history()
    document = asyncio.run(history.store.export())
    text = dump_data_js(document) if data_js else json.dumps(document.to_dict(), indent=2) + "\n"

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
    else:
        typer.echo(text, nl=False)


if __name__ == "__main__":
    app()
