"""Index maintenance commands for prompt-commons CLI."""

import typer
from loguru import logger
from rich.console import Console
from rich.progress import Progress

from prompt_commons.cli.app import app
from prompt_commons.cli.commands.command_utils import get_components, run_with_cleanup
from prompt_commons.services.index_service import BulkReindexReport

console = Console()


def display_report(report: BulkReindexReport) -> None:
    style = "green" if report.success else "yellow"
    console.print(
        f"[{style}]Reindex complete:[/{style}] total={report.total_count} "
        f"synced={report.synced_count} errors={report.error_count}"
    )
    if report.failed_ids:
        console.print(f"[yellow]Failed experiments: {', '.join(report.failed_ids)}[/yellow]")


async def run_reindex(reset: bool) -> BulkReindexReport:
    components = await get_components()

    with Progress(console=console, transient=True) as progress:
        task = progress.add_task("Reindexing", total=None)

        def on_batch(report: BulkReindexReport) -> None:
            progress.update(
                task,
                total=report.total_count,
                completed=report.synced_count + report.error_count,
            )

        if reset:
            await components.index_service.reset_index()
        return await components.index_service.bulk_reindex(
            components.experiment_repository, progress_callback=on_batch
        )


async def run_reset_index() -> None:
    components = await get_components()
    await components.index_service.reset_index()


@app.command()
def reindex(
    reset: bool = typer.Option(
        False, "--reset", help="Drop and recreate the index before rebuilding it"
    ),
):
    """Rebuild the search index from every experiment's active version."""
    try:
        report = run_with_cleanup(run_reindex(reset))
    except Exception as e:
        logger.error(f"Error reindexing: {e}")
        typer.echo(f"Error reindexing: {e}", err=True)
        raise typer.Exit(code=1)

    display_report(report)
    if not report.success:
        raise typer.Exit(code=1)


@app.command("reset-index")
def reset_index(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
):
    """Drop and recreate the search index. Every indexed document is lost."""
    if not yes and not typer.confirm("This deletes every indexed document. Continue?"):
        raise typer.Exit(code=1)

    try:
        run_with_cleanup(run_reset_index())
    except Exception as e:
        logger.error(f"Error resetting index: {e}")
        typer.echo(f"Error resetting index: {e}", err=True)
        raise typer.Exit(code=1)

    console.print("[green]Search index reset. Run 'prompt-commons reindex' to repopulate.[/green]")
