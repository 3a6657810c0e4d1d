"""Repository dependency injection for prompt-commons."""

from typing import Annotated

from fastapi import Depends

from prompt_commons.deps.config import AppConfigDep
from prompt_commons.deps.db import SessionMakerDep
from prompt_commons.repository import (
    ExperimentRepository,
    SearchRepository,
    create_search_repository,
)

# --- Experiment Repository ---


async def get_experiment_repository(session_maker: SessionMakerDep) -> ExperimentRepository:
    """Create an ExperimentRepository over the system of record."""
    return ExperimentRepository(session_maker)


ExperimentRepositoryDep = Annotated[ExperimentRepository, Depends(get_experiment_repository)]


# --- Search Repository ---


async def get_search_repository(
    session_maker: SessionMakerDep, app_config: AppConfigDep
) -> SearchRepository:
    """Create the backend-specific search repository."""
    return create_search_repository(session_maker, app_config=app_config)


SearchRepositoryDep = Annotated[SearchRepository, Depends(get_search_repository)]
