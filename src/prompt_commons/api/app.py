"""FastAPI application for prompt-commons search."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exception_handlers import http_exception_handler
from loguru import logger

from prompt_commons import __version__, db
from prompt_commons.config import ConfigManager, init_api_logging
from prompt_commons.api.routers import search_router, system_router
from prompt_commons.services.initialization import initialize_app


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover
    """Lifecycle manager for the FastAPI app."""
    init_api_logging()
    app_config = ConfigManager().config
    logger.info(f"Starting prompt-commons API {__version__} (env={app_config.env})")

    components = await initialize_app(app_config)
    app.state.embedding_provider = components.embedding_provider
    app.state.generative_provider = components.generative_provider
    app.state.task_queue = components.task_queue

    yield

    logger.info("Shutting down prompt-commons API")
    await db.shutdown_db()


# Initialize FastAPI app
app = FastAPI(
    title="Prompt Commons Search API",
    description="Hybrid keyword and semantic search over prompt experiments",
    version=__version__,
    lifespan=lifespan,
)

# Include routers
app.include_router(search_router.router)
app.include_router(system_router.router)


@app.exception_handler(Exception)
async def exception_handler(request, exc):  # pragma: no cover
    logger.exception(
        "API unhandled exception",
        url=str(request.url),
        method=request.method,
        path=request.url.path,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return await http_exception_handler(request, HTTPException(status_code=500, detail=str(exc)))
