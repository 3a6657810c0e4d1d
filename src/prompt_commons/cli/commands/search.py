"""Search command for prompt-commons CLI."""

from typing import Annotated, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from prompt_commons.cli.app import app
from prompt_commons.cli.commands.command_utils import get_components, run_with_cleanup
from prompt_commons.providers import ProviderConfigurationError
from prompt_commons.schemas.experiment import ExperimentSearchPage
from prompt_commons.schemas.search import SearchQuery

console = Console()


def display_results(query: SearchQuery, page: ExperimentSearchPage) -> None:
    """Render one page of results as a table."""
    if not page.search_available:
        console.print(f"[red]{page.message}[/red]")
        return
    if not page.items:
        console.print(f"[yellow]{page.message or 'No results'}[/yellow]")
        return

    table = Table(
        title=f"Results for '{query.query or query.tag}' ({page.mode})",
        caption=(
            f"page {page.pagination.current_page}/{page.pagination.total_pages}, "
            f"{page.pagination.total_results} total"
        ),
    )
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Model")
    table.add_column("Rate", justify="right")
    table.add_column("Tags")
    table.add_column("Score", justify="right", style="green")

    for item in page.items:
        table.add_row(
            str(item.id),
            item.title,
            item.ai_model,
            f"{item.reproduction_rate}%",
            ", ".join(item.tags),
            f"{item.similarity_score:.2f}",
        )
    console.print(table)


async def run_search(query: SearchQuery) -> ExperimentSearchPage:
    components = await get_components()
    return await components.experiment_search_service.search_experiments(query)


@app.command()
def search(
    query: Annotated[str, typer.Argument(help="Free-text query")] = "",
    tag: Annotated[Optional[str], typer.Option(help="Only experiments with this tag")] = None,
    model: Annotated[Optional[str], typer.Option(help="AI model filter")] = None,
    min_rate: Annotated[int, typer.Option(min=0, max=100, help="Minimum reproduction rate")] = 0,
    page: Annotated[int, typer.Option(min=1)] = 1,
    limit: Annotated[int, typer.Option(min=1, max=100)] = 10,
):
    """Search experiments by keyword, natural language or tag."""
    search_query = SearchQuery(
        query=query, tag=tag, model=model, min_rate=min_rate, page=page, limit=limit
    )
    try:
        result = run_with_cleanup(run_search(search_query))
    except ProviderConfigurationError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    except Exception as e:  # pragma: no cover
        logger.error(f"Error searching: {e}")
        typer.echo(f"Error searching: {e}", err=True)
        raise typer.Exit(code=1)

    display_results(search_query, result)
    if not result.search_available:
        raise typer.Exit(code=1)
