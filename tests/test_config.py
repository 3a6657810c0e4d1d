"""Test configuration management."""

import json

import pytest
from pydantic import ValidationError

from prompt_commons import config as config_module
from prompt_commons.config import ConfigManager, PromptCommonsConfig


@pytest.fixture(autouse=True)
def reset_config_cache():
    config_module._CONFIG_CACHE = None
    yield
    config_module._CONFIG_CACHE = None


class TestPromptCommonsConfig:
    def test_search_policy_defaults(self, config_home):
        config = PromptCommonsConfig()

        assert config.search_floor_keyword == 0.68
        assert config.search_floor_natural_language == 0.55
        assert config.search_floor_tag == 0.0
        assert config.search_candidate_window == 100
        assert config.search_min_query_length == 2
        assert config.natural_language_min_words == 3
        assert config.reindex_batch_size == 50
        assert config.embedding_max_attempts == 3

    def test_env_prefix_overrides(self, config_home, monkeypatch):
        monkeypatch.setenv("PROMPT_COMMONS_SEARCH_FLOOR_KEYWORD", "0.72")
        monkeypatch.setenv("PROMPT_COMMONS_REINDEX_BATCH_SIZE", "25")

        config = PromptCommonsConfig()

        assert config.search_floor_keyword == 0.72
        assert config.reindex_batch_size == 25

    def test_floor_must_be_within_unit_interval(self, config_home):
        with pytest.raises(ValidationError):
            PromptCommonsConfig(search_floor_keyword=1.5)

    def test_gemini_key_falls_back_to_conventional_variable(self, config_home, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")

        assert PromptCommonsConfig().resolved_gemini_api_key == "from-env"
        assert PromptCommonsConfig(gemini_api_key="explicit").resolved_gemini_api_key == "explicit"

    def test_data_dir_respects_config_dir_variable(self, config_home):
        config = PromptCommonsConfig()

        assert config.data_dir_path == config_home / ".prompt-commons"
        assert config.database_path.name == "prompt-commons.db"

    def test_is_test_env(self, config_home):
        assert PromptCommonsConfig(env="test").is_test_env


class TestConfigManager:
    def test_creates_default_config_file(self, config_home):
        manager = ConfigManager()

        config = manager.config

        assert manager.config_file.exists()
        assert config.env == "dev"

    def test_api_key_is_never_written(self, config_home):
        manager = ConfigManager()
        manager.save_config(PromptCommonsConfig(gemini_api_key="secret"))

        saved = json.loads(manager.config_file.read_text())

        assert "gemini_api_key" not in saved
        assert "secret" not in manager.config_file.read_text()

    def test_environment_wins_over_file(self, config_home, monkeypatch):
        manager = ConfigManager()
        manager.save_config(PromptCommonsConfig(search_candidate_window=250))
        monkeypatch.setenv("PROMPT_COMMONS_SEARCH_FLOOR_NATURAL_LANGUAGE", "0.6")

        config = manager.load_config()

        assert config.search_candidate_window == 250
        assert config.search_floor_natural_language == 0.6

    def test_load_is_cached_until_saved(self, config_home):
        manager = ConfigManager()
        manager.save_config(PromptCommonsConfig(consistency_sample_size=9))

        first = manager.load_config()
        assert manager.load_config() is first

        manager.save_config(PromptCommonsConfig(consistency_sample_size=3))
        assert manager.load_config().consistency_sample_size == 3
