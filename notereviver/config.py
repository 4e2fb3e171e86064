"""Configuration file loading for notereviver."""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "NOTEREVIVER_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/notereviver/config.yaml")

# Fixed install locations searched after the command lookup
DEFAULT_SEVENZIP_CANDIDATES = [
    "/usr/bin/7z",
    "/usr/local/bin/7z",
    "/usr/local/bin/7zz",
    "/opt/homebrew/bin/7zz",
    "/opt/homebrew/bin/7z",
    "C:\\Program Files\\7-Zip\\7z.exe",
    "C:\\Program Files (x86)\\7-Zip\\7z.exe",
]


class ReviverConfig(BaseModel):
    """User-tunable defaults."""

    suffixes: list[str] = Field(
        default_factory=lambda: [".md"], description="Document file suffixes"
    )
    default_output_dir: str = Field(
        default="revived", description="Output folder used when no root is inferred"
    )
    staging_suffix: str = Field(
        default="_revived_staging",
        description="Appended to the archive stem to name the staging directory",
    )
    sevenzip_candidates: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SEVENZIP_CANDIDATES),
        description="Fixed 7-Zip install locations",
    )
    delete_source: bool = Field(
        default=True, description="Delete staging dir and archive after auto runs"
    )
    exclude_patterns: list[str] = Field(
        default_factory=list,
        description="Glob patterns of files or folders skipped when scanning notes",
    )

    @field_validator("suffixes")
    @classmethod
    def validate_suffixes(cls, v: list[str]) -> list[str]:
        """Ensure suffixes are non-empty and start with a dot."""
        if not v:
            raise ValueError("At least one document suffix is required")
        return [s if s.startswith(".") else f".{s}" for s in v]

    @field_validator("default_output_dir", "staging_suffix")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Value must not be blank")
        return v


def resolve_config_path(path: Optional[Path] = None) -> tuple[Path, bool]:
    """
    Decide which config file to read.

    Returns:
        Tuple of (path, explicit); explicit paths must exist
    """
    if path is not None:
        return Path(path).expanduser(), True

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser(), True

    return DEFAULT_CONFIG_PATH.expanduser(), False


def load_config(path: Optional[Path] = None) -> ReviverConfig:
    """
    Load configuration from YAML.

    Args:
        path: Explicit config file (overrides env var and default location)

    Returns:
        Validated ReviverConfig (defaults when no file is present)

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid
    """
    config_path, explicit = resolve_config_path(path)

    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        logger.debug("No config file at %s, using defaults", config_path)
        return ReviverConfig()

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_path}")

    try:
        config = ReviverConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {config_path}:\n{e}") from e

    logger.debug("Loaded config from %s", config_path)
    return config
