"""Utility functions for prompt-commons CLI commands."""

import asyncio
from typing import Any, Coroutine, TypeVar

from prompt_commons import db
from prompt_commons.config import ConfigManager
from prompt_commons.services.initialization import SearchComponents, initialize_app

T = TypeVar("T")


def run_with_cleanup(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine, then dispose the database engine before the loop closes.

    aiosqlite connections must be closed on the loop that opened them.
    """

    async def _with_cleanup() -> T:
        try:
            return await coro
        finally:
            await db.shutdown_db()

    return asyncio.run(_with_cleanup())


async def get_components() -> SearchComponents:
    """Initialize the database and search stack from the user's configuration."""
    return await initialize_app(ConfigManager().config)
