"""Serve command for prompt-commons CLI."""

import typer

from prompt_commons.cli.app import app


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Interface to bind"),
    port: int = typer.Option(8000, help="Port to listen on"),
    reload: bool = typer.Option(False, help="Reload on code changes"),
):  # pragma: no cover
    """Run the search HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("prompt_commons.api.app:app", host=host, port=port, reload=reload)
