"""
IndexSense CLI - index and maintenance advisor for PostgreSQL.

Usage:
    indexsense advise --dsn postgresql://localhost/shop --column book.isbn:equality:unique
    indexsense advise --snapshot stats.json --format json
    indexsense advise --help

Exit codes:
    0  report produced
    1  statistics source unreachable
    2  invalid configuration
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from indexsense import __version__
from indexsense.analyzer.models import KIND_ORDER, IndexStructure, RecommendationKind
from indexsense.config import get_config
from indexsense.engine import advise as run_advise
from indexsense.exceptions import DataSourceUnavailable, InvalidConfiguration
from indexsense.output.renderers import SECTION_TITLES, OutputFormat, render
from indexsense.report import AdvisorReport
from indexsense.snapshot.models import ColumnCandidate, PredicateShape
from indexsense.snapshot.providers import (
    JsonFileStatsProvider,
    PostgresStatsProvider,
    collect_snapshot,
)

EXIT_SOURCE_UNAVAILABLE = 1
EXIT_INVALID_CONFIG = 2


class CliFormat(str, Enum):
    """Output formats accepted on the command line."""
    table = "table"
    text = "text"
    json = "json"
    markdown = "markdown"


PREDICATE_ALIASES = {
    "eq": PredicateShape.EQUALITY,
    "equality": PredicateShape.EQUALITY,
    "range": PredicateShape.RANGE,
    "prefix": PredicateShape.PREFIX_MATCH,
    "prefix_match": PredicateShape.PREFIX_MATCH,
    "substring": PredicateShape.SUBSTRING_MATCH,
    "substring_match": PredicateShape.SUBSTRING_MATCH,
}


app = typer.Typer(
    name="indexsense",
    help="Index, maintenance and slow-query advisor for PostgreSQL statistics",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"IndexSense version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """IndexSense - index advisory engine."""
    pass


def parse_column_spec(spec: str) -> ColumnCandidate:
    """
    Parse 'table.column[:predicate[:unique]]' into a ColumnCandidate.

    The table part may be schema-qualified ('sales.orders.customer_id').
    """
    parts = spec.split(":")
    if len(parts) > 3:
        raise typer.BadParameter(f"Too many ':' separators in {spec!r}")

    target = parts[0]
    if "." not in target:
        raise typer.BadParameter(f"Expected table.column, got {target!r}")
    table, column = target.rsplit(".", 1)
    if not table or not column:
        raise typer.BadParameter(f"Expected table.column, got {target!r}")

    predicate = PredicateShape.EQUALITY
    if len(parts) >= 2 and parts[1]:
        key = parts[1].lower()
        if key not in PREDICATE_ALIASES:
            choices = ", ".join(sorted(PREDICATE_ALIASES))
            raise typer.BadParameter(f"Unknown predicate {parts[1]!r} (choose from {choices})")
        predicate = PREDICATE_ALIASES[key]

    requires_unique = False
    if len(parts) == 3:
        if parts[2].lower() != "unique":
            raise typer.BadParameter(f"Expected 'unique', got {parts[2]!r}")
        requires_unique = True

    return ColumnCandidate(
        table=table,
        column=column,
        predicate=predicate,
        requires_unique=requires_unique,
    )


def print_report_table(report: AdvisorReport) -> None:
    """Pretty terminal output using Rich tables."""
    if report.is_empty:
        console.print(Panel(
            "[green]Nothing to recommend![/green]\n\n"
            f"Snapshot captured at {report.captured_at.isoformat()}.",
            title="IndexSense",
            border_style="green",
        ))

    for kind in KIND_ORDER:
        group = report.by_kind(kind)
        if not group:
            continue

        if kind == RecommendationKind.REVIEW_QUERY:
            table = Table(title=SECTION_TITLES[kind])
            table.add_column("#", justify="right")
            table.add_column("Query ID", style="cyan")
            table.add_column("Total ms", justify="right")
            table.add_column("Calls", justify="right")
            table.add_column("Mean ms", justify="right")
            table.add_column("% Time", justify="right", style="yellow")
            table.add_column("Query")
            for entry in report.ranked_queries:
                text = " ".join(entry.query_text.split())
                table.add_row(
                    str(entry.rank),
                    entry.query_id,
                    f"{entry.total_exec_time:,.2f}",
                    f"{entry.calls:,}",
                    f"{entry.mean_exec_time:,.2f}",
                    f"{entry.percent:.2f}",
                    text[:60] + ("..." if len(text) > 60 else ""),
                )
            console.print(table)
            console.print()
            continue

        table = Table(title=SECTION_TITLES[kind], show_lines=True)
        table.add_column("Subject", style="cyan")
        if kind == RecommendationKind.CREATE_INDEX:
            table.add_column("Structure")
            table.add_column("Predicted Scan")
        table.add_column("Rationale")
        table.add_column("Suggestion", style="green")

        for rec in group:
            row = [rec.subject.label]
            if kind == RecommendationKind.CREATE_INDEX:
                if rec.index_structure == IndexStructure.NONE:
                    row.append("[red]do not index[/red]")
                else:
                    row.append(rec.index_structure.value if rec.index_structure else "")
                row.append(rec.predicted_scan_strategy.value if rec.predicted_scan_strategy else "")
            row.append(rec.rationale + "".join(f"\n[dim]• {fact}[/dim]" for fact in rec.facts))
            row.append(rec.suggestion or "")
            table.add_row(*row)

        console.print(table)
        console.print()

    for warning in report.warnings:
        console.print(f"[yellow]⚠ {warning.subject}:[/yellow] {warning.message}")


@app.command()
def advise(
    dsn: Annotated[
        Optional[str],
        typer.Option(
            "--dsn",
            envvar="INDEXSENSE_DSN",
            help="PostgreSQL connection string to read statistics from",
        ),
    ] = None,
    snapshot_file: Annotated[
        Optional[Path],
        typer.Option(
            "--snapshot",
            "-s",
            help="Exported statistics snapshot (JSON) instead of a live database",
            dir_okay=False,
            resolve_path=True,
        ),
    ] = None,
    columns: Annotated[
        Optional[list[str]],
        typer.Option(
            "--column",
            "-c",
            help="Candidate column as table.column[:predicate[:unique]]; repeatable",
        ),
    ] = None,
    high_threshold: Annotated[
        Optional[float],
        typer.Option("--high-threshold", help="Selectivity for an Index Scan (default 0.85)"),
    ] = None,
    low_threshold: Annotated[
        Optional[float],
        typer.Option("--low-threshold", help="Selectivity below which not to index (default 0.05)"),
    ] = None,
    stale_days: Annotated[
        Optional[int],
        typer.Option("--stale-days", help="Days before vacuum/analyze is stale (default 7)"),
    ] = None,
    top: Annotated[
        Optional[int],
        typer.Option("--top", "-n", help="Number of slow queries to report (default 20)"),
    ] = None,
    output_format: Annotated[
        CliFormat,
        typer.Option("--format", "-f", help="Output format"),
    ] = CliFormat.table,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log progress to stderr"),
    ] = False,
) -> None:
    """
    Analyze table, index and query statistics and print recommendations.

    Examples:

        $ indexsense advise --dsn postgresql://localhost/shop \\
            --column book.isbn:equality:unique --column book.title:substring

        $ indexsense advise --snapshot stats.json --top 5 --format json
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    candidates = [parse_column_spec(spec) for spec in columns or []]

    try:
        config = get_config().with_overrides(
            selectivity_high_threshold=high_threshold,
            selectivity_low_threshold=low_threshold,
            maintenance_stale_days=stale_days,
            top_slow_queries=top,
        )

        if (dsn is None) == (snapshot_file is None):
            raise InvalidConfiguration("Provide exactly one of --dsn or --snapshot")

        if snapshot_file is not None:
            file_provider = JsonFileStatsProvider(snapshot_file)
            snapshot = collect_snapshot(
                file_provider,
                [*file_provider.declared_candidates, *candidates],
                captured_at=file_provider.captured_at,
            )
        else:
            with PostgresStatsProvider(dsn) as pg_provider:
                snapshot = collect_snapshot(pg_provider, candidates)

        report = run_advise(snapshot, config)

    except InvalidConfiguration as e:
        error_console.print(f"[red]Invalid configuration:[/red] {e.message}")
        raise typer.Exit(code=EXIT_INVALID_CONFIG)
    except DataSourceUnavailable as e:
        error_console.print(f"[red]Statistics source unavailable:[/red] {e.message}")
        raise typer.Exit(code=EXIT_SOURCE_UNAVAILABLE)

    if output_format == CliFormat.table:
        print_report_table(report)
    else:
        typer.echo(render(report, OutputFormat(output_format.value)))


if __name__ == "__main__":
    app()
