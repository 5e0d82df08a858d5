"""Configuration management for searchable."""

import json
import os
import re
from pathlib import Path
from typing import Optional

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from searchable.utils import setup_logging

DATA_DIR_NAME = ".searchable"
CONFIG_FILE_NAME = "config.json"
DEFAULT_FUZZY_MAX_DISTANCE = 5

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SearchableConfig(BaseSettings):
    """Pydantic model for searchable configuration."""

    log_level: str = Field(
        default="INFO",
        description="Minimum loguru level used by init_logging().",
    )

    # Search defaults
    case_insensitive: bool = Field(
        default=False,
        description="Default case handling for substring and keyword search when the caller does not choose.",
    )
    fuzzy_max_distance: int = Field(
        default=DEFAULT_FUZZY_MAX_DISTANCE,
        description="Maximum edit distance for fuzzy search when the caller does not pass one.",
        ge=0,
    )
    escape_character: str = Field(
        default="\\",
        description="Escape character used for LIKE patterns (ESCAPE clause).",
        min_length=1,
        max_length=1,
    )

    # Dialect functions
    distance_function: str = Field(
        default="levenshtein",
        description="Two-argument edit distance function probed for on Postgres (fuzzystrmatch).",
    )
    phonetic_function: str = Field(
        default="soundex",
        description="Phonetic encoding function used by the fuzzy fallback on dialects without a distance function.",
    )

    # Ranked search output
    relevance_column: str = Field(
        default="relevance",
        description="Label of the total relevance column added by ranked search.",
    )
    relevance_suffix: str = Field(
        default="_relevance",
        description="Suffix appended to per-field relevance column labels.",
    )

    model_config = SettingsConfigDict(
        env_prefix="SEARCHABLE_",
        extra="ignore",
    )

    @field_validator("distance_function", "phonetic_function", "relevance_column")
    @classmethod
    def validate_identifier(cls, value: str) -> str:
        """SQL function and column names are interpolated, so they must be plain identifiers."""
        if not _IDENTIFIER_PATTERN.match(value):
            raise ValueError(f"'{value}' is not a valid SQL identifier")
        return value

    @field_validator("relevance_suffix")
    @classmethod
    def validate_suffix(cls, value: str) -> str:
        if value and not re.match(r"^[A-Za-z0-9_]+$", value):
            raise ValueError(f"'{value}' is not a valid column suffix")
        return value

    @property
    def data_dir_path(self) -> Path:
        """Get the directory holding config.json and the log file."""
        if config_dir := os.getenv("SEARCHABLE_CONFIG_DIR"):
            return Path(config_dir)

        home = os.getenv("HOME", Path.home())
        return Path(home) / DATA_DIR_NAME


# Module-level cache for configuration
_CONFIG_CACHE: Optional[SearchableConfig] = None


class ConfigManager:
    """Manages searchable configuration."""

    def __init__(self) -> None:
        home = os.getenv("HOME", Path.home())
        if isinstance(home, str):
            home = Path(home)

        # Allow override via environment variable
        if config_dir := os.getenv("SEARCHABLE_CONFIG_DIR"):
            self.config_dir = Path(config_dir)
        else:
            self.config_dir = home / DATA_DIR_NAME

        self.config_file = self.config_dir / CONFIG_FILE_NAME

    @property
    def config(self) -> SearchableConfig:
        """Get configuration, loading it lazily if needed."""
        return self.load_config()

    def load_config(self) -> SearchableConfig:
        """Load configuration from file or fall back to defaults.

        Environment variables take precedence over file config values.
        Uses the module-level cache across ConfigManager instances.
        """
        global _CONFIG_CACHE

        if _CONFIG_CACHE is not None:
            return _CONFIG_CACHE

        if not self.config_file.exists():
            _CONFIG_CACHE = SearchableConfig()
            return _CONFIG_CACHE

        try:
            file_data = json.loads(self.config_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in config file {self.config_file}: {e}")
            raise

        # File data is the base; fields set through SEARCHABLE_* env vars win
        env_dict = SearchableConfig().model_dump()
        merged_data = file_data.copy()
        for field_name in SearchableConfig.model_fields.keys():
            if f"SEARCHABLE_{field_name.upper()}" in os.environ:
                merged_data[field_name] = env_dict[field_name]

        _CONFIG_CACHE = SearchableConfig(**merged_data)
        logger.debug(f"Loaded searchable config from {self.config_file}")
        return _CONFIG_CACHE

    def save_config(self, config: SearchableConfig) -> None:
        """Save configuration to file and invalidate cache."""
        global _CONFIG_CACHE
        self.config_dir.mkdir(parents=True, exist_ok=True)
        save_searchable_config(self.config_file, config)
        _CONFIG_CACHE = None


def save_searchable_config(file_path: Path, config: SearchableConfig) -> None:
    """Save configuration to file."""
    config_dict = config.model_dump(mode="json")
    file_path.write_text(json.dumps(config_dict, indent=2))


def init_logging(
    log_to_file: bool = False, app_config: Optional[SearchableConfig] = None
) -> None:
    """Initialize logging for a host application from the loaded configuration.

    The level comes from log_level (SEARCHABLE_LOG_LEVEL). A log file, when
    requested, is written under data_dir_path.
    """
    config = app_config or ConfigManager().config
    setup_logging(
        log_level=config.log_level,
        log_to_file=log_to_file,
        log_dir=config.data_dir_path,
    )
