"""
Configuration system for PlanLens.

Environment variables are the primary source; a JSON or YAML file named by
PLANLENS_CONFIG_FILE replaces them when set.

Usage:
    from planlens.config import get_config
    
    config = get_config()
    result = parse_explain(text, config=config.parser)

Environment variables:
- PLANLENS_ENVIRONMENT=production
- PLANLENS_MAX_INPUT_BYTES=2000000
- PLANLENS_MAX_NODES=10000
- PLANLENS_LOG_LEVEL=DEBUG
- PLANLENS_CONFIG_FILE=/etc/planlens.yaml
"""

from __future__ import annotations

import json
import logging
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from planlens.exceptions import ConfigurationError
from planlens.parser.config import ParserConfig

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Environment(str, Enum):
    """Environment profiles."""
    
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    
    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """Parse environment from string, defaulting to development."""
        try:
            return cls(value.lower())
        except ValueError:
            return cls.DEVELOPMENT


class Config(BaseModel):
    """PlanLens configuration."""
    
    model_config = ConfigDict(frozen=True)
    
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Current environment (development/staging/production)",
    )
    
    parser: ParserConfig = Field(
        default_factory=ParserConfig,
        description="Resource limits applied to every parse",
    )
    
    log_level: str = Field(
        default="WARNING",
        description="Default log level for the CLI",
    )
    
    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level


def _parse_env_int(value: str | None, default: int) -> int:
    """Parse integer from environment variable."""
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Could not parse integer setting %r, using %d", value, default)
        return default


def _parse_env_log_level(value: str | None) -> str:
    if value is None:
        return "WARNING"
    level = value.strip().upper()
    if level not in _LOG_LEVELS:
        logger.warning("Unknown log level %r, using WARNING", value)
        return "WARNING"
    return level


def load_config_from_env() -> Config:
    """Load configuration from PLANLENS_* environment variables."""
    defaults = ParserConfig()
    environment = Environment.from_string(
        os.environ.get("PLANLENS_ENVIRONMENT", "development")
    )
    
    try:
        parser = ParserConfig(
            max_input_bytes=_parse_env_int(
                os.environ.get("PLANLENS_MAX_INPUT_BYTES"), defaults.max_input_bytes
            ),
            max_nodes=_parse_env_int(
                os.environ.get("PLANLENS_MAX_NODES"), defaults.max_nodes
            ),
        )
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid parser limits in environment: {e.errors()[0]['msg']}",
            config_key="parser",
        ) from e
    
    return Config(
        environment=environment,
        parser=parser,
        log_level=_parse_env_log_level(os.environ.get("PLANLENS_LOG_LEVEL")),
    )


def load_config_from_file(path: Path) -> Config:
    """
    Load configuration from a JSON or YAML file.
    
    A missing file falls back to environment variables. A file that exists
    but cannot be read or validated raises ConfigurationError.
    """
    if not path.exists():
        logger.warning("Config file not found: %s, using environment", path)
        return load_config_from_env()
    
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix in (".yaml", ".yml"):
            data: Any = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot load config file {path}: {e}") from e
    
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {path} must contain a mapping, got {type(data).__name__}"
        )
    
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(x) for x in first["loc"])
        raise ConfigurationError(
            f"Invalid config file {path}: {key}: {first['msg']}",
            config_key=key,
        ) from e


@lru_cache(maxsize=1)
def get_config() -> Config:
    """
    Get the global configuration instance.
    
    Loads from PLANLENS_CONFIG_FILE if set, otherwise from the environment.
    Result is cached for the lifetime of the process.
    """
    config_file = os.environ.get("PLANLENS_CONFIG_FILE")
    
    if config_file:
        return load_config_from_file(Path(config_file))
    
    return load_config_from_env()


def reset_config() -> None:
    """Reset the cached configuration (mainly for testing)."""
    get_config.cache_clear()
