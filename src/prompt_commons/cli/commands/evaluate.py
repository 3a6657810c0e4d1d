"""Search quality command for prompt-commons CLI."""

import typer
from loguru import logger
from rich.console import Console

from prompt_commons.cli.app import app
from prompt_commons.cli.commands.command_utils import get_components, run_with_cleanup
from prompt_commons.services.evaluation import CaseOutcome, evaluate_search

console = Console()


def display_outcome(outcome: CaseOutcome) -> None:
    case = outcome.case
    console.print(f"[bold]{case.intent}[/bold]: \"{case.query}\"")
    console.print(f"  expected: {', '.join(case.expected_keywords)}")
    if outcome.error:
        console.print(f"  [red]FAIL[/red] ({outcome.error})")
        return

    for rank, result in enumerate(outcome.results, start=1):
        marker = "[green]*[/green]" if result.id in outcome.relevant_ids else " "
        console.print(
            f"  {rank}. {marker} [{result.score:.2f}] {result.title} "
            f"(tags: {', '.join(result.tags)})"
        )
    status = "[green]PASS[/green]" if outcome.passed else "[red]FAIL[/red]"
    console.print(f"  {status} ({len(outcome.relevant_ids)} relevant)")


async def run_evaluate() -> list[CaseOutcome]:
    components = await get_components()
    return await evaluate_search(components.search_service)


@app.command()
def evaluate():
    """Run the built-in relevance cases against the live index."""
    try:
        outcomes = run_with_cleanup(run_evaluate())
    except Exception as e:
        logger.error(f"Error evaluating search: {e}")
        typer.echo(f"Error evaluating search: {e}", err=True)
        raise typer.Exit(code=1)

    for outcome in outcomes:
        display_outcome(outcome)

    passed = sum(1 for outcome in outcomes if outcome.passed)
    failed = len(outcomes) - passed
    console.print(f"Summary: {passed} passed, {failed} failed")
    if failed:
        raise typer.Exit(code=1)
