"""Typer application shared by every prompt-commons command."""

from typing import Optional

import typer

from prompt_commons import __version__
from prompt_commons.config import init_cli_logging


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:  # pragma: no cover
        typer.echo(f"prompt-commons version: {__version__}")
        raise typer.Exit()


app = typer.Typer(name="prompt-commons", help="Search and index maintenance for Prompt Commons")


@app.callback()
def app_callback(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """Prompt Commons search tools."""
    # Logs go to file so command output stays clean
    init_cli_logging()
