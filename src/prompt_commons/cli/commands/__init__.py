"""CLI commands for prompt-commons."""

from prompt_commons.cli.commands import evaluate, index, search, serve, verify

__all__ = ["evaluate", "index", "search", "serve", "verify"]
