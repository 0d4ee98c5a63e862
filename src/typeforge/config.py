"""TOML-based configuration for typeforge.

Settings come from a ``typeforge.toml`` file, or from the ``[tool.typeforge]``
table of a ``pyproject.toml``, found by searching up from a directory.

Usage:
    from typeforge.config import find_config_file, load_config

    path = find_config_file(Path.cwd())
    config = load_config(path) if path else ForgeConfig()

Example typeforge.toml:
    default_on_missing = "fail"
    allow_hidden_access = false

    [logging]
    level = "debug"
    format = "json"
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .adapter import MissingMemberPolicy
from .errors import ConfigError
from .logging import LogFormat, configure_logging

# Config file names to search for (in order of preference)
CONFIG_FILE_NAMES = ["typeforge.toml", "pyproject.toml"]

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass
class ForgeConfig:
    """Engine settings.

    Attributes:
        default_on_missing: Policy adapters use when none is given
        allow_hidden_access: Let adapters reach hidden target members
        log_level: Level for every typeforge logger
        log_format: TEXT or JSON log output
    """

    default_on_missing: MissingMemberPolicy = MissingMemberPolicy.DEFAULT
    allow_hidden_access: bool = True
    log_level: int = logging.WARNING
    log_format: LogFormat = LogFormat.TEXT

    @classmethod
    def from_dict(cls, data: dict[str, Any], file: str | None = None) -> ForgeConfig:
        """Build a config from a settings table.

        Raises:
            ConfigError: On unknown keys or invalid values
        """
        config = cls()
        known = {"default_on_missing", "allow_hidden_access", "logging"}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown setting(s): {', '.join(unknown)}", file=file)

        if "default_on_missing" in data:
            value = data["default_on_missing"]
            try:
                config.default_on_missing = MissingMemberPolicy(str(value).lower())
            except ValueError as e:
                raise ConfigError(
                    f"default_on_missing must be 'fail' or 'default', got {value!r}", file=file
                ) from e

        if "allow_hidden_access" in data:
            value = data["allow_hidden_access"]
            if not isinstance(value, bool):
                raise ConfigError(f"allow_hidden_access must be a boolean, got {value!r}", file=file)
            config.allow_hidden_access = value

        log_settings = data.get("logging", {})
        if not isinstance(log_settings, dict):
            raise ConfigError("[logging] must be a table", file=file)
        if "level" in log_settings:
            level = str(log_settings["level"]).lower()
            if level not in _LEVELS:
                raise ConfigError(f"Unknown log level: {log_settings['level']!r}", file=file)
            config.log_level = _LEVELS[level]
        if "format" in log_settings:
            try:
                config.log_format = LogFormat(str(log_settings["format"]).lower())
            except ValueError as e:
                raise ConfigError(f"Unknown log format: {log_settings['format']!r}", file=file) from e

        return config


def find_config_file(
    start_dir: Path,
    config_names: list[str] | None = None,
) -> Path | None:
    """Find a config file by searching up the directory hierarchy.

    Args:
        start_dir: Directory to start searching from
        config_names: File names to look for (default: CONFIG_FILE_NAMES)

    Returns:
        Path to the config file, or None if not found
    """
    config_names = config_names or CONFIG_FILE_NAMES
    current = start_dir.resolve()

    while True:
        for name in config_names:
            config_path = current / name
            if not config_path.exists():
                continue
            # pyproject.toml only counts with a [tool.typeforge] table
            if name != "pyproject.toml" or _has_forge_section(config_path):
                return config_path

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def _has_forge_section(pyproject_path: Path) -> bool:
    try:
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        return False
    return "typeforge" in data.get("tool", {})


def load_config(path: Path) -> ForgeConfig:
    """Load a ForgeConfig from a TOML file.

    Raises:
        ConfigError: If the file is missing, unreadable, or invalid
    """
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}", file=str(path))

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}", file=str(path)) from e

    if path.name == "pyproject.toml":
        if "typeforge" not in data.get("tool", {}):
            raise ConfigError(f"No [tool.typeforge] section in {path}", file=str(path))
        data = data["tool"]["typeforge"]

    return ForgeConfig.from_dict(data, file=str(path))


def configure(config: ForgeConfig) -> None:
    """Apply the logging settings of a config."""
    configure_logging(level=config.log_level, log_format=config.log_format)
