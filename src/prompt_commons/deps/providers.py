"""Provider dependency injection for prompt-commons.

Providers and the embedding queue are process-wide: they are created once in
the application lifespan and read from app.state here.
"""

from typing import Annotated, Optional

from fastapi import Depends, Request

from prompt_commons.deps.config import AppConfigDep
from prompt_commons.providers import EmbeddingProvider, GenerativeProvider
from prompt_commons.services.task_queue import SequentialTaskQueue


async def get_embedding_provider(request: Request) -> Optional[EmbeddingProvider]:
    return getattr(request.app.state, "embedding_provider", None)


EmbeddingProviderDep = Annotated[Optional[EmbeddingProvider], Depends(get_embedding_provider)]


async def get_generative_provider(request: Request) -> Optional[GenerativeProvider]:
    return getattr(request.app.state, "generative_provider", None)


GenerativeProviderDep = Annotated[Optional[GenerativeProvider], Depends(get_generative_provider)]


async def get_task_queue(request: Request, app_config: AppConfigDep) -> SequentialTaskQueue:
    """Shared embedding queue, so the call delay holds across requests."""
    queue = getattr(request.app.state, "task_queue", None)
    if queue is None:
        queue = SequentialTaskQueue(app_config.embedding_call_delay)
        request.app.state.task_queue = queue
    return queue


TaskQueueDep = Annotated[SequentialTaskQueue, Depends(get_task_queue)]
