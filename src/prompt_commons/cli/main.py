"""Main CLI entry point for prompt-commons."""  # pragma: no cover

from prompt_commons.cli.app import app  # pragma: no cover

# Register commands
from prompt_commons.cli.commands import (  # noqa: F401  # pragma: no cover
    evaluate,
    index,
    search,
    serve,
    verify,
)

if __name__ == "__main__":  # pragma: no cover
    app()
