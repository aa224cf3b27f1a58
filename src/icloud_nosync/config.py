"""Configuration management for the nosync tool."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

DEFAULT_ATTRIBUTE_KEY = "com.apple.fileprovider.ignore#P"
DEFAULT_ATTRIBUTE_VALUE = "1"

_VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


class ConfigError(ValueError):
    """Raised when the configuration file cannot be used."""


def parse_bool(value: Any, default: bool) -> bool:
    """Interpret a YAML value as a boolean.

    Args:
        value: Raw value from the config file.
        default: Value returned when ``value`` is None.

    Returns:
        Parsed boolean.

    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    return str(value).strip().lower() in {"true", "yes", "on", "1"}


@dataclass
class NosyncConfig:
    """Settings for the nosync tool."""

    # Extended attribute honoured by the File Provider (iCloud Drive)
    attribute_key: str = DEFAULT_ATTRIBUTE_KEY
    attribute_value: str = DEFAULT_ATTRIBUTE_VALUE

    # Attribute primitive
    xattr_command: str = "/usr/bin/xattr"
    timeout: float = 5.0  # seconds per attribute call

    # Spinner shown during recursive runs
    spinner_enabled: bool = True
    spinner_interval: float = 0.1

    # Logging
    log_level: str = "WARNING"
    log_file: Path | None = None

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the default configuration file path."""
        return Path.home() / "Library/Application Support/nosync/config.yaml"

    @classmethod
    def load(cls, config_path: Path | None = None) -> NosyncConfig:
        """Load configuration from YAML file.

        Args:
            config_path: Path to config file. Uses default if None.

        Returns:
            Loaded configuration.

        Raises:
            ConfigError: If the file cannot be read, is not valid YAML or
                holds invalid values.

        """
        if config_path is None:
            config_path = cls.get_config_path()

        if not config_path.exists():
            return cls()

        try:
            with config_path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"Cannot read config file {config_path}: {e.strerror or e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid config file {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Invalid config file {config_path}: expected a mapping")

        try:
            return cls._from_dict(data)
        except ConfigError:
            raise
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid config file {config_path}: {e}") from e

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> NosyncConfig:
        """Create config from dictionary."""
        config = cls()

        if "attribute" in data:
            attribute = data["attribute"] or {}
            if "key" in attribute:
                config.attribute_key = str(attribute["key"])
            if "value" in attribute:
                config.attribute_value = str(attribute["value"])

        if "xattr_command" in data:
            config.xattr_command = os.path.expanduser(str(data["xattr_command"]))
        if "timeout" in data:
            config.timeout = float(data["timeout"])

        if "spinner" in data:
            spinner = data["spinner"] or {}
            config.spinner_enabled = parse_bool(spinner.get("enabled"), config.spinner_enabled)
            if "interval" in spinner:
                config.spinner_interval = float(spinner["interval"])

        if "logging" in data:
            logging_cfg = data["logging"] or {}
            if logging_cfg.get("file"):
                config.log_file = Path(os.path.expanduser(logging_cfg["file"]))
            if "level" in logging_cfg:
                config.log_level = str(logging_cfg["level"]).upper()

        config.validate()
        return config

    def validate(self) -> None:
        """Check that values are usable.

        Raises:
            ConfigError: On the first invalid value.

        """
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")
        if self.spinner_interval <= 0:
            raise ConfigError(f"spinner interval must be positive, got {self.spinner_interval}")
        if self.log_level not in _VALID_LOG_LEVELS:
            raise ConfigError(f"Invalid log_level: {self.log_level}")
        if not self.attribute_key:
            raise ConfigError("attribute key must not be empty")

    @property
    def log_level_number(self) -> int:
        """Numeric logging level for ``log_level``."""
        return getattr(logging, self.log_level)

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path to save config. Uses default if None.

        """
        if config_path is None:
            config_path = self.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "attribute": {
                "key": self.attribute_key,
                "value": self.attribute_value,
            },
            "xattr_command": self.xattr_command,
            "timeout": self.timeout,
            "spinner": {
                "enabled": self.spinner_enabled,
                "interval": self.spinner_interval,
            },
            "logging": {
                "level": self.log_level,
                "file": str(self.log_file) if self.log_file else None,
            },
        }

        with config_path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
