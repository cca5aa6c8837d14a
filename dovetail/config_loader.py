"""Configuration Loader for the journaling core.

Settings live in ``config/config.yaml`` and are validated with pydantic.
Connection and API credentials can be overridden from the environment
(``.env`` is loaded with python-dotenv), so the YAML file never needs to
carry secrets.
"""

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from dovetail.errors import ConfigError
from dovetail.models import Sentiment

load_dotenv()

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Relationship types the graph layout already uses
RESERVED_LABELS = {"AUTHOR", "SIMILAR", "ACTIVITY"}


# =============================================================================
# PYDANTIC MODELS FOR CONFIGURATION VALIDATION
# =============================================================================

class DatabaseConfig(BaseModel):
    """FalkorDB connection target."""
    host: str = "localhost"
    port: int = 6379
    password: Optional[str] = None
    graph_name: str = "dovetail"


class SentimentLabels(BaseModel):
    """Relationship type labels for the three sentiment kinds.

    Labels are schema tokens (they name the edges between JournalEntry and
    Topic nodes), so they must be plain identifiers and pairwise distinct.
    Application code works with :class:`Sentiment` and resolves a label only
    when it builds a query.
    """
    positive: str = "POSITIVE"
    negative: str = "NEGATIVE"
    neutral: str = "NEUTRAL"

    @field_validator("positive", "negative", "neutral")
    @classmethod
    def _must_be_identifier(cls, value: str) -> str:
        if not _IDENTIFIER.match(value):
            raise ValueError(f"sentiment label {value!r} is not a valid relationship type")
        if value.upper() in RESERVED_LABELS:
            raise ValueError(f"sentiment label {value!r} collides with a structural relationship type")
        return value

    @model_validator(mode="after")
    def _must_be_distinct(self) -> "SentimentLabels":
        if len({self.positive, self.negative, self.neutral}) != 3:
            raise ValueError("sentiment labels must be distinct")
        return self

    def label_for(self, sentiment: Sentiment) -> str:
        """Relationship type label for a sentiment."""
        return getattr(self, Sentiment(sentiment).value)

    def all_labels(self) -> list[str]:
        return [self.label_for(s) for s in Sentiment]


class AnalysisConfig(BaseModel):
    """Sentiment analysis API (MeaningCloud) settings."""
    api_url: str = "https://api.meaningcloud.com/sentiment-2.1"
    api_key: str = ""
    language: str = "en"
    timeout: float = 30


class AppConfig(BaseModel):
    """Complete configuration container."""
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    sentiment: SentimentLabels = Field(default_factory=SentimentLabels)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)


# =============================================================================
# CONFIGURATION LOADER
# =============================================================================

_PACKAGE_DIR = Path(__file__).parent
DEFAULT_CONFIG_PATH = _PACKAGE_DIR / "config" / "config.yaml"

# Environment variable -> (section, key)
_ENV_OVERRIDES = {
    "FALKORDB_HOST": ("database", "host"),
    "FALKORDB_PORT": ("database", "port"),
    "FALKORDB_PASSWORD": ("database", "password"),
    "FALKORDB_GRAPH": ("database", "graph_name"),
    "MEANINGCLOUD_API_URL": ("analysis", "api_url"),
    "MEANINGCLOUD_API_KEY": ("analysis", "api_key"),
}


def _apply_env_overrides(raw: dict) -> dict:
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if not value:
            continue
        # An empty "database:" section loads as None
        section_values = raw.get(section) or {}
        if not isinstance(section_values, dict):
            raise ConfigError(f"Config section '{section}' must be a mapping")
        section_values[key] = value
        raw[section] = section_values
    return raw


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load and validate configuration from a YAML file.

    Args:
        config_path: Path to config file. Defaults to config/config.yaml.

    Returns:
        Validated AppConfig object.

    Raises:
        ConfigError: If the file is unreadable or fails validation.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    raw: dict = {}
    if Path(config_path).exists():
        with open(config_path, 'r', encoding='utf-8') as f:
            raw = yaml.safe_load(f) or {}
    elif config_path != DEFAULT_CONFIG_PATH:
        raise ConfigError(f"Config file not found: {config_path}")

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")
    raw = {section: values for section, values in raw.items() if values is not None}

    try:
        return AppConfig(**_apply_env_overrides(raw))
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e


# =============================================================================
# CONFIG SINGLETON
# =============================================================================

_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the loaded configuration (loaded once, read-only afterwards)."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(config_path: Optional[str] = None) -> AppConfig:
    """Force reload of configuration."""
    global _config
    _config = load_config(config_path)
    return _config
