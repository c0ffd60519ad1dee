"""
Harness configuration for Scabbard.

Settings come from an optional scabbard.yaml next to the working directory,
overridden by environment variables.

Environment Variables:
    SCABBARD_LOG_LEVEL: Minimum log level (default: INFO)
    SCABBARD_JSON_LOGS: Emit JSON logs instead of console output (default: false)
    SCABBARD_ONLY: Comma-separated task names to run (default: all tasks)

scabbard.yaml:
    log_level: DEBUG
    json_logs: true
    only:
      - tests
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from scabbard.errors import ConfigurationError

DEFAULT_CONFIG_FILE = "scabbard.yaml"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})
_KNOWN_KEYS = frozenset({"log_level", "json_logs", "only"})


@dataclass(frozen=True)
class ScabbardConfig:
    """Settings for a harness instance.

    Attributes:
        log_level: Minimum log level name
        json_logs: Render logs as JSON lines instead of console output
        only: Task names to run; empty means every enqueued task
    """

    log_level: str = "INFO"
    json_logs: bool = False
    only: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        level = self.log_level.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ConfigurationError(f"Invalid log level: {self.log_level!r}")
        object.__setattr__(self, "log_level", level)
        object.__setattr__(self, "only", tuple(self.only))

    @classmethod
    def from_env(cls, base: ScabbardConfig | None = None) -> ScabbardConfig:
        """Load configuration from environment variables.

        Args:
            base: Values to fall back on for unset variables. Defaults apply if None.

        Returns:
            ScabbardConfig with environment overrides applied
        """
        config = base or cls()
        overrides: dict[str, Any] = {}

        if "SCABBARD_LOG_LEVEL" in os.environ:
            overrides["log_level"] = os.environ["SCABBARD_LOG_LEVEL"]
        if "SCABBARD_JSON_LOGS" in os.environ:
            overrides["json_logs"] = _parse_bool("SCABBARD_JSON_LOGS", os.environ["SCABBARD_JSON_LOGS"])
        if "SCABBARD_ONLY" in os.environ:
            overrides["only"] = _parse_names(os.environ["SCABBARD_ONLY"])

        return replace(config, **overrides) if overrides else config

    @classmethod
    def from_file(cls, path: str | Path) -> ScabbardConfig:
        """Load configuration from a YAML file.

        Args:
            path: Path to a scabbard.yaml file

        Returns:
            ScabbardConfig with the file's values

        Raises:
            ConfigurationError: If the file is unreadable, not a mapping,
                or contains unknown keys
        """
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read config file {path}", cause=e) from e

        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Config file {path} must contain a mapping")

        return cls.from_mapping(data)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ScabbardConfig:
        """Build configuration from a plain mapping."""
        unknown = set(data) - _KNOWN_KEYS
        if unknown:
            raise ConfigurationError(f"Unknown config keys: {sorted(unknown)}")

        kwargs: dict[str, Any] = {}
        if "log_level" in data:
            kwargs["log_level"] = str(data["log_level"])
        if "json_logs" in data:
            value = data["json_logs"]
            kwargs["json_logs"] = value if isinstance(value, bool) else _parse_bool("json_logs", str(value))
        if "only" in data:
            only = data["only"]
            if isinstance(only, str):
                kwargs["only"] = _parse_names(only)
            elif isinstance(only, list) and all(isinstance(name, str) for name in only):
                kwargs["only"] = tuple(only)
            else:
                raise ConfigurationError("'only' must be a list of task names")

        return cls(**kwargs)

    @classmethod
    def load(cls, path: str | Path | None = None) -> ScabbardConfig:
        """Load configuration from file (if present) then environment.

        Args:
            path: Explicit config file. If None, ./scabbard.yaml is used when it exists.

        Returns:
            The merged configuration
        """
        if path is not None:
            base = cls.from_file(path)
        elif Path(DEFAULT_CONFIG_FILE).is_file():
            base = cls.from_file(DEFAULT_CONFIG_FILE)
        else:
            base = cls()
        return cls.from_env(base)


def _parse_bool(name: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid boolean for {name}: {value!r}")


def _parse_names(value: str) -> tuple[str, ...]:
    return tuple(name.strip() for name in value.split(",") if name.strip())
