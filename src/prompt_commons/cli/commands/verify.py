"""Consistency and health commands for prompt-commons CLI."""

from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from prompt_commons.cli.app import app
from prompt_commons.cli.commands.command_utils import get_components, run_with_cleanup
from prompt_commons.sync import ConsistencyReport, SearchHealth

console = Console()


def display_consistency(report: ConsistencyReport) -> None:
    counts_style = "green" if report.counts_match else "red"
    console.print(
        f"[{counts_style}]Experiments: {report.source_count}  "
        f"Indexed documents: {report.index_count}[/{counts_style}]"
    )

    table = Table(title="Sampled experiments")
    table.add_column("ID", style="cyan")
    table.add_column("Status")
    table.add_column("Errors")
    for sample in report.samples:
        status = "[green]OK[/green]" if sample.consistent else "[red]MISMATCH[/red]"
        table.add_row(sample.id, status, "; ".join(sample.errors))
    console.print(table)

    if report.passed:
        console.print("[green]Search index is consistent[/green]")
    else:
        console.print("[red]Search index is inconsistent, run 'prompt-commons reindex'[/red]")


async def run_verify(sample_size: Optional[int]) -> ConsistencyReport:
    components = await get_components()
    return await components.sync_service.verify_consistency(sample_size=sample_size)


async def run_health() -> SearchHealth:
    components = await get_components()
    return await components.sync_service.check_health()


@app.command()
def verify(
    sample_size: Optional[int] = typer.Option(
        None, "--sample-size", min=1, help="Experiments compared field by field"
    ),
):
    """Compare the search index against the system of record."""
    try:
        report = run_with_cleanup(run_verify(sample_size))
    except Exception as e:
        logger.error(f"Error verifying index: {e}")
        typer.echo(f"Error verifying index: {e}", err=True)
        raise typer.Exit(code=1)

    display_consistency(report)
    if not report.passed:
        raise typer.Exit(code=1)


@app.command()
def health():
    """Check that the search index answers queries."""
    try:
        result = run_with_cleanup(run_health())
    except Exception as e:
        logger.error(f"Error checking health: {e}")
        typer.echo(f"Error checking health: {e}", err=True)
        raise typer.Exit(code=1)

    if result.connected:
        console.print(
            f"[green]OK[/green] index '{result.index_name}': {result.document_count} documents, "
            f"semantic search {'on' if result.semantic_enabled else 'off'}"
        )
    else:
        console.print(f"[red]Search index '{result.index_name}' unreachable: {result.error}[/red]")
        raise typer.Exit(code=1)
