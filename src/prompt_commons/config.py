"""Configuration management for prompt-commons."""

import importlib.util
import json
import os
from pathlib import Path
from typing import Literal, Optional

from loguru import logger
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from prompt_commons.utils import DATA_DIR_NAME, setup_logging

DATABASE_NAME = "prompt-commons.db"
CONFIG_FILE_NAME = "config.json"

Environment = Literal["test", "dev", "user"]


def _default_semantic_search_enabled() -> bool:
    """Enable semantic search by default when the sqlite-vec extension is installed."""
    required_modules = ("sqlite_vec",)
    return all(
        importlib.util.find_spec(module_name) is not None for module_name in required_modules
    )


class PromptCommonsConfig(BaseSettings):
    """Pydantic model for prompt-commons search configuration."""

    env: Environment = Field(default="dev", description="Environment name")

    # overridden by ~/.prompt-commons/config.json
    log_level: str = "INFO"

    # Storage
    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy URL for the database. If not set, SQLite uses the default path in the data directory.",
    )
    search_index_name: str = Field(
        default="experiments",
        description="Logical name of the search index, reported in logs and health checks.",
    )

    # Semantic layer
    semantic_search_enabled: bool = Field(
        default_factory=_default_semantic_search_enabled,
        description="Enable vector retrieval over perspective embeddings. Requires sqlite-vec and a Gemini API key.",
    )
    gemini_api_key: Optional[str] = Field(
        default=None,
        description="API key for Gemini embedding and generation calls. Falls back to GEMINI_API_KEY.",
    )
    embedding_model: str = Field(
        default="text-embedding-004",
        description="Embedding model identifier.",
    )
    embedding_dimensions: int = Field(
        default=768,
        description="Dimensionality of every stored perspective vector.",
        gt=0,
    )
    embedding_max_attempts: int = Field(
        default=3,
        description="Attempts per embedding call before raising EmbeddingError.",
        gt=0,
    )
    embedding_retry_base_delay: float = Field(
        default=1.0,
        description="Base delay in seconds for exponential backoff between embedding retries.",
        ge=0.0,
    )
    embedding_call_delay: float = Field(
        default=0.5,
        description="Minimum pause in seconds between sequential embedding calls while indexing.",
        ge=0.0,
    )
    generative_model: str = Field(
        default="gemini-2.0-flash",
        description="Generative model used for query analysis and perspective generation.",
    )
    generative_max_attempts: int = Field(
        default=2,
        description="Attempts per generative call before the caller falls back.",
        gt=0,
    )

    # Query analysis
    natural_language_min_words: int = Field(
        default=3,
        description="Queries with at least this many words are treated as natural language.",
        gt=0,
    )

    # Search policy
    search_min_query_length: int = Field(
        default=2,
        description="Untagged queries shorter than this (after trimming) return no results.",
        ge=0,
    )
    search_floor_keyword: float = Field(
        default=0.68,
        description="Minimum normalized score for keyword-mode results.",
        ge=0.0,
        le=1.0,
    )
    search_floor_natural_language: float = Field(
        default=0.55,
        description="Minimum normalized score for natural-language results, including the lexical fallback.",
        ge=0.0,
        le=1.0,
    )
    search_floor_tag: float = Field(
        default=0.0,
        description="Minimum normalized score for tag browsing. 0.0 disables filtering.",
        ge=0.0,
        le=1.0,
    )
    search_candidate_window: int = Field(
        default=100,
        description="Hits fetched from the store per search call before floor filtering and pagination.",
        gt=0,
    )
    search_nl_knn_k: int = Field(
        default=50,
        description="Nearest neighbours kept per perspective vector for natural-language queries.",
        gt=0,
    )
    search_nl_num_candidates: int = Field(
        default=200,
        description="Candidate pool per perspective vector for natural-language queries.",
        gt=0,
    )
    search_keyword_knn_k: int = Field(
        default=30,
        description="Nearest neighbours kept for the auxiliary vector signal of keyword queries.",
        gt=0,
    )
    search_keyword_num_candidates: int = Field(
        default=100,
        description="Candidate pool for the auxiliary vector signal of keyword queries.",
        gt=0,
    )

    # Indexing
    reindex_batch_size: int = Field(
        default=50,
        description="Experiments read and upserted per batch during a bulk reindex.",
        gt=0,
    )
    perspective_prompt_max_chars: int = Field(
        default=2000,
        description="Prompt text is truncated to this many characters before perspective generation.",
        gt=0,
    )

    # Consistency checks
    consistency_sample_size: int = Field(
        default=5,
        description="Number of random experiments compared field by field during verification.",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="PROMPT_COMMONS_",
        extra="ignore",
    )

    @property
    def is_test_env(self) -> bool:
        """Check if running in a test environment."""
        return (
            self.env == "test"
            or os.getenv("PROMPT_COMMONS_ENV", "").lower() == "test"
            or os.getenv("PYTEST_CURRENT_TEST") is not None
        )

    @property
    def resolved_gemini_api_key(self) -> Optional[str]:
        """API key from config, falling back to the conventional GEMINI_API_KEY variable."""
        return self.gemini_api_key or os.getenv("GEMINI_API_KEY")

    @property
    def data_dir_path(self) -> Path:
        """Get app state directory for config and default SQLite database."""
        if config_dir := os.getenv("PROMPT_COMMONS_CONFIG_DIR"):
            return Path(config_dir)

        home = os.getenv("HOME", Path.home())
        return Path(home) / DATA_DIR_NAME

    @property
    def database_path(self) -> Path:
        """Get the SQLite database path, creating the parent directory on demand."""
        database_path = self.data_dir_path / DATABASE_NAME
        if not database_path.parent.exists():  # pragma: no cover
            database_path.parent.mkdir(parents=True, exist_ok=True)
        return database_path


# Module-level cache shared by all ConfigManager instances
_CONFIG_CACHE: Optional[PromptCommonsConfig] = None


class ConfigManager:
    """Manages prompt-commons configuration."""

    def __init__(self) -> None:
        """Initialize the configuration manager."""
        home = os.getenv("HOME", Path.home())
        if isinstance(home, str):
            home = Path(home)

        # Allow override via environment variable
        if config_dir := os.getenv("PROMPT_COMMONS_CONFIG_DIR"):
            self.config_dir = Path(config_dir)
        else:
            self.config_dir = home / DATA_DIR_NAME

        self.config_file = self.config_dir / CONFIG_FILE_NAME
        self.config_dir.mkdir(parents=True, exist_ok=True)

    @property
    def config(self) -> PromptCommonsConfig:
        """Get configuration, loading it lazily if needed."""
        return self.load_config()

    def load_config(self) -> PromptCommonsConfig:
        """Load configuration from file or create default.

        Environment variables take precedence over file config values.
        """
        global _CONFIG_CACHE

        if _CONFIG_CACHE is not None:
            return _CONFIG_CACHE

        if not self.config_file.exists():
            config = PromptCommonsConfig()
            self.save_config(config)
            return config

        try:
            file_data = json.loads(self.config_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:  # pragma: no cover
            logger.error(f"Invalid JSON in config file {self.config_file}: {e}")
            raise SystemExit(
                f"Error: config file is not valid JSON: {self.config_file}\n"
                f"  {e}\n"
                f"Fix or delete the file and re-run."
            )

        # File values form the base; fields set through env vars win
        env_dict = PromptCommonsConfig().model_dump()
        merged_data = file_data.copy()
        for field_name in PromptCommonsConfig.model_fields.keys():
            if f"PROMPT_COMMONS_{field_name.upper()}" in os.environ:
                merged_data[field_name] = env_dict[field_name]

        _CONFIG_CACHE = PromptCommonsConfig(**merged_data)
        return _CONFIG_CACHE

    def save_config(self, config: PromptCommonsConfig) -> None:
        """Save configuration to file and invalidate cache."""
        global _CONFIG_CACHE
        save_prompt_commons_config(self.config_file, config)
        _CONFIG_CACHE = None


def save_prompt_commons_config(file_path: Path, config: PromptCommonsConfig) -> None:
    """Save configuration to file, never persisting the API key."""
    try:
        config_dict = config.model_dump(mode="json", exclude={"gemini_api_key"})
        file_path.write_text(json.dumps(config_dict, indent=2))
    except Exception as e:  # pragma: no cover
        logger.error(f"Failed to save config: {e}")


# Logging initialization functions for different entry points


def init_cli_logging() -> None:  # pragma: no cover
    """Initialize logging for CLI commands - file only.

    CLI commands should not log to stdout to avoid interfering with
    command output.
    """
    log_level = os.getenv("PROMPT_COMMONS_LOG_LEVEL", "INFO")
    setup_logging(log_level=log_level, log_to_file=True)


def init_api_logging() -> None:  # pragma: no cover
    """Initialize logging for the API server.

    Container mode (PROMPT_COMMONS_LOG_STDOUT=1): stderr only
    Local mode: file only
    """
    log_level = os.getenv("PROMPT_COMMONS_LOG_LEVEL", "INFO")
    to_stdout = os.getenv("PROMPT_COMMONS_LOG_STDOUT", "").lower() in ("1", "true")
    if to_stdout:
        setup_logging(log_level=log_level, log_to_stdout=True)
    else:
        setup_logging(log_level=log_level, log_to_file=True)
