"""
Settings loader — reads the optional myrpi config file.

The catalog ships with sensible defaults for a Raspberry Pi; the
config file only overrides them (install prefix, version pins,
pinned checksums, the apt package list).  It reads YAML, validates
against a Pydantic model, and returns typed settings.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("/etc/myrpi/config.yml")
CONFIG_ENV_VAR = "MYRPI_CONFIG"


class ConfigError(Exception):
    """Raised when the settings file is unreadable or invalid."""


class Settings(BaseModel):
    """User-tunable knobs applied on top of the built-in catalog."""

    install_prefix: str = "/usr/local"
    rc_file: str = ".bashrc"              # home-relative
    config_dir: str = ".config/myrpi"     # home-relative
    versions: dict[str, str] = Field(default_factory=dict)
    checksums: dict[str, str] = Field(default_factory=dict)
    apt_packages: list[str] | None = None

    @field_validator("rc_file", "config_dir")
    @classmethod
    def validate_home_relative(cls, v: str) -> str:
        """Keep home-relative paths inside the home directory."""
        rel = v[2:] if v.startswith("~/") else v
        path = PurePosixPath(rel)
        if path.is_absolute() or not path.parts or ".." in path.parts:
            raise ValueError(f"must be a path inside the home directory, got {v!r}")
        return rel

    @property
    def prefix(self) -> Path:
        return Path(self.install_prefix)


def find_config_file(explicit: Path | None = None) -> Path | None:
    """Locate the settings file.

    Order: explicit path, ``MYRPI_CONFIG``, ``/etc/myrpi/config.yml``.
    An explicit or env-provided path is returned even if it is
    missing so the caller can report it; the default path is only
    returned when it exists.
    """
    if explicit is not None:
        return explicit
    from_env = os.environ.get(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env)
    if DEFAULT_CONFIG_PATH.is_file():
        return DEFAULT_CONFIG_PATH
    return None


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit settings file. If None, searches the default locations.

    Returns:
        Validated Settings (defaults when no file is found).

    Raises:
        ConfigError: If a named file is missing or invalid.
    """
    path = find_config_file(path)
    if path is None:
        logger.debug("No settings file, using defaults")
        return Settings()

    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e

    logger.info("Loaded settings from %s (prefix=%s)", path, settings.install_prefix)
    return settings
