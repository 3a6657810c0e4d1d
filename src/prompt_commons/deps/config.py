"""Configuration dependency injection for prompt-commons."""

from typing import Annotated

from fastapi import Depends

from prompt_commons.config import ConfigManager, PromptCommonsConfig


def get_app_config() -> PromptCommonsConfig:  # pragma: no cover
    """Get the application configuration."""
    return ConfigManager().config


AppConfigDep = Annotated[PromptCommonsConfig, Depends(get_app_config)]
