"""Configuration management and validation for the bundle downloader.

Settings are plain dataclasses validated in ``__post_init__``. They can be
loaded from a YAML file and overridden through ``CREDBUNDLE_*`` environment
variables.
"""
from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Type

import yaml

from .exceptions import ConfigurationError

log = logging.getLogger(__name__)

DEFAULT_FILTERS: tuple[str, ...] = (".exe", ".dll", ".config")
VALID_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class RetrySettings:
    """Fixed-interval retry for the download and for file cleanup."""
    interval: float = 3.0
    max_attempts: int = 3
    cleanup_interval: float = 0.2

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ConfigurationError("max_attempts must be at least 1", config_key="retry.max_attempts")
        if self.interval < 0:
            raise ConfigurationError("interval must be non-negative", config_key="retry.interval")
        if self.cleanup_interval < 0:
            raise ConfigurationError(
                "cleanup_interval must be non-negative", config_key="retry.cleanup_interval"
            )


@dataclass
class HttpSettings:
    """Transport settings for the probe and the download."""
    timeout: float = 60.0
    chunk_size: int = 8192
    user_agent: str = "credbundle/1.0 (requests)"
    verify_ssl: bool = True
    adapter_retries: int = 0

    def __post_init__(self):
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive", config_key="http.timeout")
        if self.chunk_size < 1:
            raise ConfigurationError("chunk_size must be at least 1", config_key="http.chunk_size")
        if self.adapter_retries < 0:
            raise ConfigurationError(
                "adapter_retries must be non-negative", config_key="http.adapter_retries"
            )


@dataclass
class ExtractionSettings:
    """Which archive entries to unpack and how to clean up on failure."""
    filters: List[str] = field(default_factory=lambda: list(DEFAULT_FILTERS))
    cleanup_workers: int = 4

    def __post_init__(self):
        if not self.filters:
            raise ConfigurationError("filters must not be empty", config_key="extraction.filters")
        if self.cleanup_workers < 1:
            raise ConfigurationError(
                "cleanup_workers must be at least 1", config_key="extraction.cleanup_workers"
            )


@dataclass
class PathsSettings:
    """Where the downloaded archive is staged."""
    staging_dir: str = field(default_factory=tempfile.gettempdir)

    @property
    def staging(self) -> Path:
        return Path(self.staging_dir)


@dataclass
class LoggingSettings:
    """Configuration for logging settings."""
    level: str = "INFO"
    console_level: str = "INFO"
    log_dir: Optional[str] = "logs"  # None or "" logs to the console only

    def __post_init__(self):
        if self.level.upper() not in VALID_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.level}. Must be one of {VALID_LEVELS}")
        if self.console_level.upper() not in VALID_LEVELS:
            raise ConfigurationError(
                f"Invalid console log level: {self.console_level}. Must be one of {VALID_LEVELS}"
            )


@dataclass
class DownloaderConfig:
    """Top-level settings for one download-and-extract run."""
    source_url: Optional[str] = None
    retry: RetrySettings = field(default_factory=RetrySettings)
    http: HttpSettings = field(default_factory=HttpSettings)
    extraction: ExtractionSettings = field(default_factory=ExtractionSettings)
    paths: PathsSettings = field(default_factory=PathsSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


_SECTIONS: Dict[str, Type] = {
    "retry": RetrySettings,
    "http": HttpSettings,
    "extraction": ExtractionSettings,
    "paths": PathsSettings,
    "logging": LoggingSettings,
}

ENV_MAPPINGS: Dict[str, tuple] = {
    "CREDBUNDLE_SOURCE_URL": ("source_url",),
    "CREDBUNDLE_STAGING_DIR": ("paths", "staging_dir"),
    "CREDBUNDLE_RETRY_INTERVAL": ("retry", "interval"),
    "CREDBUNDLE_MAX_ATTEMPTS": ("retry", "max_attempts"),
    "CREDBUNDLE_TIMEOUT": ("http", "timeout"),
    "CREDBUNDLE_LOG_LEVEL": ("logging", "level"),
}

_FLOAT_KEYS = {"interval", "cleanup_interval", "timeout"}
_INT_KEYS = {"max_attempts", "chunk_size", "adapter_retries", "cleanup_workers"}


class ConfigManager:
    """Loads a :class:`DownloaderConfig` from YAML plus environment overrides."""

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        self.environ = os.environ if environ is None else environ

    def load(self, config_path: Optional[Path] = None) -> DownloaderConfig:
        """Load and validate configuration; a missing path means defaults."""
        config_dict: Dict[str, Any] = {}
        if config_path is not None:
            config_dict = self._load_yaml_file(Path(config_path))

        config_dict = self._apply_environment_variables(config_dict)

        try:
            return self._create_config(config_dict)
        except ConfigurationError:
            raise
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid configuration: {e}",
                config_file=str(config_path) if config_path else None,
            ) from e

    def _load_yaml_file(self, path: Path) -> Dict[str, Any]:
        """Load YAML file with error handling."""
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}", config_file=str(path))

        try:
            with path.open("r", encoding="utf-8") as f:
                content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}", config_file=str(path)) from e

        if content is None:
            return {}

        if not isinstance(content, dict):
            raise ConfigurationError(
                f"Configuration file must contain a YAML dictionary: {path}", config_file=str(path)
            )

        log.debug("Loaded configuration from %s", path)
        return content

    def _apply_environment_variables(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides."""
        result = {k: (dict(v) if isinstance(v, dict) else v) for k, v in config_dict.items()}

        for env_var, config_path in ENV_MAPPINGS.items():
            env_value = self.environ.get(env_var)
            if env_value is None:
                continue

            current = result
            for key in config_path[:-1]:
                current = current.setdefault(key, {})

            key = config_path[-1]
            try:
                if key in _FLOAT_KEYS:
                    current[key] = float(env_value)
                elif key in _INT_KEYS:
                    current[key] = int(env_value)
                else:
                    current[key] = env_value
            except ValueError as e:
                raise ConfigurationError(
                    f"Environment variable {env_var} has an invalid value: {env_value!r}",
                    config_key=".".join(config_path),
                ) from e

        return result

    def _create_config(self, config_dict: Dict[str, Any]) -> DownloaderConfig:
        unknown = set(config_dict) - set(_SECTIONS) - {"source_url"}
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")

        sections: Dict[str, Any] = {}
        for name, cls in _SECTIONS.items():
            if name in config_dict:
                sections[name] = self._create_dataclass_from_dict(cls, config_dict[name] or {}, name)

        source_url = config_dict.get("source_url")
        return DownloaderConfig(source_url=source_url or None, **sections)

    def _create_dataclass_from_dict(self, cls: Type, data: Dict[str, Any], section: str):
        """Create dataclass instance from dictionary, splitting comma lists."""
        if not isinstance(data, dict):
            raise ConfigurationError(f"Section '{section}' must be a mapping", config_key=section)

        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown keys in section '{section}': {sorted(unknown)}", config_key=section
            )

        kwargs = dict(data)
        if "filters" in kwargs and isinstance(kwargs["filters"], str):
            kwargs["filters"] = [item.strip() for item in kwargs["filters"].split(",") if item.strip()]
        return cls(**kwargs)


def load_config(config_path: Optional[Path] = None) -> DownloaderConfig:
    """Convenience wrapper around :class:`ConfigManager`."""
    return ConfigManager().load(config_path)
