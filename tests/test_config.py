"""Tests for the configuration loading and parsing logic."""

import unittest
from pathlib import Path
from unittest.mock import mock_open, patch

import pytest
import yaml

from vocabweave.config import (
    DEFAULT_MAX_REPLACEMENTS,
    INTENSITY_MAX_REPLACEMENTS,
    SchedulerSettings,
    VocabConfig,
    load_config,
)
from vocabweave.templates import DEFAULT_CONFIG_YAML


class TestConfigLoading(unittest.TestCase):
    """Test suite for loading and parsing the VocabWeave configuration."""

    def test_load_config_success(self) -> None:
        """1. Success: Correctly loads a valid YAML configuration file."""
        yaml_content = """
provider: 'gemini'
providers:
  gemini:
    api_key: 'key'
    model: 'gemini-pro'
native_language: 'zh-CN'
target_language: 'en'
difficulty_level: 'b2'
intensity: 'high'
learned_words:
  - original: 'Apple'
    word: '苹果'
memorize_list:
  - word: 'photosynthesis'
"""
        with patch("pathlib.Path.open", mock_open(read_data=yaml_content)), patch("pathlib.Path.is_file", return_value=True):
            config = load_config("dummy_path.yaml")

        assert isinstance(config, VocabConfig)
        assert config.provider_settings is not None
        assert config.provider_settings.model == "gemini-pro"
        assert config.difficulty_level == "B2"
        assert config.max_replacements == INTENSITY_MAX_REPLACEMENTS["high"]
        assert config.learned_set == {"apple"}
        assert config.memorize_words == ["photosynthesis"]

    def test_load_config_file_not_found(self) -> None:
        """2. Failure: Raises FileNotFoundError for a non-existent file."""
        with patch("pathlib.Path.is_file", return_value=False), pytest.raises(FileNotFoundError):
            load_config("non_existent_file.yaml")

    def test_load_config_invalid_values(self) -> None:
        """3. Failure: Raises ValueError for values the models reject."""
        invalid_yaml_content = "intensity: 'extreme'"
        with patch("pathlib.Path.open", mock_open(read_data=invalid_yaml_content)), patch("pathlib.Path.is_file", return_value=True), pytest.raises(ValueError, match="Invalid or missing configuration"):
            load_config("invalid.yaml")

    def test_load_config_rejects_unknown_difficulty(self) -> None:
        """4. Failure: Raises ValueError for a difficulty outside the CEFR scale."""
        with patch("pathlib.Path.open", mock_open(read_data="difficulty_level: 'D1'")), patch("pathlib.Path.is_file", return_value=True), pytest.raises(ValueError, match="difficulty_level"):
            load_config("invalid.yaml")

    def test_load_config_rejects_double_quotes(self) -> None:
        """5. Failure: Raises YAMLError for double-quoted strings."""
        with patch("pathlib.Path.open", mock_open(read_data='provider: "openai"')), patch("pathlib.Path.is_file", return_value=True), pytest.raises(yaml.YAMLError, match="single quotes"):
            load_config("quoted.yaml")

    def test_load_config_rejects_non_mapping(self) -> None:
        """6. Failure: Raises ValueError when the document is not a mapping."""
        with patch("pathlib.Path.open", mock_open(read_data="- 'a'\n- 'b'")), patch("pathlib.Path.is_file", return_value=True), pytest.raises(ValueError, match="mapping"):
            load_config("list.yaml")

    def test_load_config_empty_file_uses_defaults(self) -> None:
        """7. Defaults: An empty file yields the default configuration."""
        with patch("pathlib.Path.open", mock_open(read_data="")), patch("pathlib.Path.is_file", return_value=True):
            config = load_config("empty.yaml")

        assert config == VocabConfig()
        assert config.max_replacements == DEFAULT_MAX_REPLACEMENTS
        assert config.cache_max_size == 2000  # noqa: PLR2004
        assert config.scheduler == SchedulerSettings()

    def test_default_template_is_loadable(self) -> None:
        """8. Template: The file written by 'init' loads cleanly with the strict loader."""
        with patch("pathlib.Path.open", mock_open(read_data=DEFAULT_CONFIG_YAML)), patch("pathlib.Path.is_file", return_value=True):
            config = load_config(Path("main.yaml"))

        assert config.provider == "openai"
        assert config.scheduler.batch_size == 20  # noqa: PLR2004
        assert config.scheduler.concurrency == 3  # noqa: PLR2004


class TestVocabConfig(unittest.TestCase):
    """Test suite for derived configuration values."""

    def test_intensity_maps_to_max_replacements(self) -> None:
        """1. Intensity: low, medium and high map to 4, 8 and 14 replacements per region."""
        assert [VocabConfig(intensity=level).max_replacements for level in ("low", "medium", "high")] == [4, 8, 14]

    def test_provider_settings_absent(self) -> None:
        """2. Provider: An unconfigured or unselected provider yields no settings."""
        assert VocabConfig(provider="gemini").provider_settings is None
        assert VocabConfig(provider=None).provider_settings is None

    def test_site_rules_all_mode(self) -> None:
        """3. Sites: In 'all' mode every host is allowed except excluded ones."""
        config = VocabConfig(site_mode="all", excluded_sites=["example.com"])

        assert not config.is_site_allowed("docs.example.com")
        assert config.is_site_allowed("other.org")
        assert config.is_site_allowed(None)

    def test_site_rules_selected_mode(self) -> None:
        """4. Sites: In 'selected' mode only allowed hosts are processed."""
        config = VocabConfig(site_mode="selected", allowed_sites=["news.org"])

        assert config.is_site_allowed("world.news.org")
        assert not config.is_site_allowed("example.com")

    def test_memorize_words_skips_blank_entries(self) -> None:
        """5. Memorize list: Blank words are dropped and others stripped."""
        config = VocabConfig.from_dict({"memorize_list": [{"word": "  lucid "}, {"word": "   "}]})

        assert config.memorize_words == ["lucid"]
