"""API routers."""

from prompt_commons.api.routers import search_router, system_router

__all__ = ["search_router", "system_router"]
