"""Handles the parsing and validation of the VocabWeave configuration file."""

import logging
from pathlib import Path
from typing import Any, Final, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .types import CEFR_LEVELS, DEFAULT_DIFFICULTY

logger = logging.getLogger(__name__)

INTENSITY_MAX_REPLACEMENTS: Final[dict[str, int]] = {
    "low": 4,
    "medium": 8,
    "high": 14,
}
DEFAULT_MAX_REPLACEMENTS: Final[int] = 8
DEFAULT_CACHE_MAX_SIZE: Final[int] = 2000


class ProviderSettings(BaseModel):
    """Settings for a specific translation provider."""

    api_key: str | None = None
    model: str | None = None
    base_url: str | None = None
    temperature: float = 0.3
    max_tokens: int = 2000
    extra: dict[str, Any] | None = None


class SchedulerSettings(BaseModel):
    """Tuning knobs for visibility-driven batch processing."""

    batch_size: int = Field(default=20, ge=1, description="Containers claimed per drain cycle.")
    concurrency: int = Field(default=3, ge=1, description="Segments resolved together in one request batch.")
    inter_batch_delay: float = Field(default=0.05, ge=0, description="Seconds to wait between request batches.")
    debounce: float = Field(default=0.1, ge=0, description="Seconds to wait before draining pending containers.")
    viewport_margin: float = Field(default=500.0, ge=0)
    min_direct_text: int = Field(default=10, ge=0)
    min_segment_length: int = Field(default=50, ge=0)
    max_segment_length: int = Field(default=2000, ge=1)
    min_masked_length: int = Field(default=30, ge=0)
    min_provider_text_length: int = Field(default=20, ge=0, description="Shortest reduced text worth a provider request.")


class LearnedWord(BaseModel):
    """A word the reader already knows; never translated again."""

    original: str
    word: str = ""
    difficulty: str = DEFAULT_DIFFICULTY
    added_at: int | None = None


class MemorizeEntry(BaseModel):
    """A word the reader explicitly wants to see translated."""

    word: str
    added_at: int | None = None


class VocabConfig(BaseModel):
    """The root configuration for VocabWeave."""

    model_config = ConfigDict(validate_assignment=True)

    provider: str | None = "openai"
    providers: dict[str, ProviderSettings] = Field(default_factory=dict)
    native_language: str = "zh-CN"
    target_language: str = "en"
    difficulty_level: str = DEFAULT_DIFFICULTY
    intensity: Literal["low", "medium", "high"] = "medium"
    process_mode: Literal["native-only", "target-only", "both"] = "both"
    cache_max_size: int = Field(default=DEFAULT_CACHE_MAX_SIZE, ge=1)
    translation_style: Literal["translation-original", "original-translation", "translation-only"] = "translation-original"
    enabled: bool = True
    site_mode: Literal["all", "selected"] = "all"
    excluded_sites: list[str] = Field(default_factory=list)
    allowed_sites: list[str] = Field(default_factory=list)
    learned_words: list[LearnedWord] = Field(default_factory=list)
    memorize_list: list[MemorizeEntry] = Field(default_factory=list)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)

    @field_validator("difficulty_level")
    @classmethod
    def _validate_difficulty(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in CEFR_LEVELS:
            msg = f"difficulty_level must be one of {', '.join(CEFR_LEVELS)}, got '{value}'."
            raise ValueError(msg)
        return normalized

    @property
    def max_replacements(self) -> int:
        """Maximum substitutions per region implied by the intensity setting."""
        return INTENSITY_MAX_REPLACEMENTS.get(self.intensity, DEFAULT_MAX_REPLACEMENTS)

    @property
    def learned_set(self) -> set[str]:
        """Lower-cased originals of every learned word."""
        return {w.original.lower() for w in self.learned_words if w.original}

    @property
    def memorize_words(self) -> list[str]:
        """Non-empty, stripped words of the memorize list."""
        return [entry.word.strip() for entry in self.memorize_list if entry.word and entry.word.strip()]

    @property
    def provider_settings(self) -> ProviderSettings | None:
        """Settings of the selected provider, if one is selected and configured."""
        if not self.provider:
            return None
        return self.providers.get(self.provider)

    def is_site_allowed(self, hostname: str | None) -> bool:
        """Apply the site rules to a hostname. Documents without a host are always allowed."""
        if not hostname:
            return True
        if self.site_mode == "all":
            return not any(domain and domain in hostname for domain in self.excluded_sites)
        return any(domain and domain in hostname for domain in self.allowed_sites)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VocabConfig":
        """Create a VocabConfig from a plain mapping, e.g. a parsed YAML document."""
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            msg = f"Invalid or missing configuration: {e}"
            raise ValueError(msg) from e


class StrictSingleQuoteLoader(yaml.SafeLoader):
    """
    A custom YAML loader that enforces the use of single quotes for all strings.

    It raises an error if any double-quoted strings are found.
    """


def _construct_scalar(loader: StrictSingleQuoteLoader, node: yaml.ScalarNode) -> Any:  # noqa: ANN401
    """Construct a scalar node, but first check its style."""
    if node.style == '"':
        line = node.start_mark.line + 1
        col = node.start_mark.column + 1
        msg = f"Double-quoted string found at line {line}, column {col}. Please use single quotes (') instead."
        raise yaml.YAMLError(msg)
    return loader.construct_scalar(node)


StrictSingleQuoteLoader.add_constructor("tag:yaml.org,2002:str", _construct_scalar)


def load_config(config_path: str | Path) -> VocabConfig:
    """
    Load, parse, and validate the YAML configuration file.

    Args:
        config_path: The path to the main.yaml file.

    Returns:
        A VocabConfig object representing the validated configuration.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If there is a syntax error in the YAML file.
        ValueError: If the configuration is invalid.

    """
    path = Path(config_path)
    if not path.is_file():
        msg = f"Configuration file not found at: {config_path}"
        raise FileNotFoundError(msg)

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.load(f, Loader=StrictSingleQuoteLoader)  # noqa: S506
    except yaml.YAMLError as e:
        msg = f"Error parsing YAML config file: {e}"
        raise yaml.YAMLError(msg) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = "Invalid or missing configuration: config file must be a YAML mapping (dictionary)."
        raise ValueError(msg)

    config = VocabConfig.from_dict(data)
    logger.debug("Loaded configuration from %s (provider=%s).", path, config.provider)
    return config
