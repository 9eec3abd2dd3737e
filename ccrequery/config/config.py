"""Configuration management for ccrequery.

Provides centralized configuration with TOML support and validation, loaded
hierarchically from defaults -> config file -> environment.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import toml
from pydantic import ValidationError as PydanticValidationError

from ccrequery.models import Config, ObservabilityConfig, RequeryConfig
from ccrequery.utils.exceptions import ConfigurationError
from ccrequery.utils.logging_config import setup_logging

CONFIG_FILE_NAME = "ccrequery.toml"

# Global configuration instance
_config_manager: ConfigManager | None = None

ENV_MAPPINGS: dict[str, str] = {
    # Requery
    "CCRQ_REQUERY_ENABLED": "requery.enabled",
    "CCRQ_REQUERY_COOLDOWN": "requery.cooldown_seconds",
    "CCRQ_CONNECT_RETRY_DELAY": "requery.connect_retry_delay",
    "CCRQ_MIN_STABLE_CONNECTIONS": "requery.min_stable_connections",
    "CCRQ_MIN_MESSAGES_PER_CONNECTION": "requery.min_messages_per_connection",
    "CCRQ_MIN_TOTAL_MESSAGES": "requery.min_total_messages",
    "CCRQ_DHT_LOOKUP_TIMEOUT": "requery.dht_lookup_timeout",
    "CCRQ_DHT_MAX_PEERS": "requery.dht_max_peers",
    # Observability
    "CCRQ_LOG_LEVEL": "observability.log_level",
    "CCRQ_LOG_FILE": "observability.log_file",
    "CCRQ_STRUCTURED_LOGGING": "observability.structured_logging",
    "CCRQ_LOG_CORRELATION_ID": "observability.log_correlation_id",
    "CCRQ_ENABLE_METRICS": "observability.enable_metrics",
}


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_file: str | Path | None = None):
        """Initialize configuration manager.

        Args:
            config_file: Path to TOML config file. If None, searches for ccrequery.toml

        """
        self.config_file = self._find_config_file(config_file)
        self.config = self._load_config()
        self._setup_logging()

    def _find_config_file(
        self,
        config_file: str | Path | None,
    ) -> Path | None:
        """Find configuration file in standard locations."""
        if config_file:
            return Path(config_file)

        search_paths = [
            Path.cwd() / CONFIG_FILE_NAME,
            Path.home() / ".config" / "ccrequery" / CONFIG_FILE_NAME,
            Path.home() / f".{CONFIG_FILE_NAME}",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    def _load_config(self) -> Config:
        """Load configuration from file and environment."""
        config_data: dict[str, Any] = {}

        if self.config_file and self.config_file.exists():
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    config_data.update(toml.load(f))
            except (OSError, toml.TomlDecodeError) as e:
                msg = f"Failed to load config file {self.config_file}: {e}"
                raise ConfigurationError(
                    msg, details={"config_file": str(self.config_file)}
                ) from e

        config_data = self._merge_config(config_data, self._get_env_config())

        try:
            return Config(**config_data)
        except PydanticValidationError as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigurationError(msg) from e

    def _get_env_config(self) -> dict[str, Any]:
        """Get configuration from environment variables."""
        env_config: dict[str, Any] = {}

        def _parse_env_value(raw: str) -> bool | int | float | str:
            low = raw.lower()
            if low in {"true", "yes", "on"}:
                return True
            if low in {"false", "no", "off"}:
                return False
            try:
                if "." in raw:
                    return float(raw)
                return int(raw)
            except ValueError:
                return raw

        def _set_nested(d: dict[str, Any], path: str, value: Any) -> None:
            parts = path.split(".")
            cur = d
            for p in parts[:-1]:
                cur = cur.setdefault(p, {})
            cur[parts[-1]] = value

        for env_name, cfg_path in ENV_MAPPINGS.items():
            raw = os.getenv(env_name)
            if raw is None:
                continue
            _set_nested(env_config, cfg_path, _parse_env_value(raw))

        return env_config

    def _merge_config(
        self,
        base: dict[str, Any],
        override: dict[str, Any],
    ) -> dict[str, Any]:
        """Merge configuration dictionaries recursively."""
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value

        return result

    def export(self, fmt: str = "toml") -> str:
        """Export current configuration as a string in the given format.

        Args:
            fmt: one of "toml" or "json"

        """
        data = self.config.model_dump(mode="json", exclude_none=True)
        fmt = (fmt or "toml").lower()
        if fmt == "toml":
            return toml.dumps(data)
        if fmt == "json":
            return json.dumps(data, indent=2)
        msg = f"Unsupported export format: {fmt}"
        raise ConfigurationError(msg)

    def _setup_logging(self) -> None:
        """Set up logging configuration."""
        setup_logging(self.config.observability)


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager.config


def init_config(config_file: str | Path | None = None) -> ConfigManager:
    """Initialize the global configuration manager."""
    global _config_manager
    _config_manager = ConfigManager(config_file)
    return _config_manager


def reload_config() -> Config:
    """Reload configuration from file."""
    if _config_manager is None:
        msg = "Configuration not initialized"
        raise ConfigurationError(msg)

    _config_manager.config = _config_manager._load_config()  # noqa: SLF001
    _config_manager._setup_logging()  # noqa: SLF001
    return _config_manager.config


def set_config(new_config: Config) -> None:
    """Replace the global configuration at runtime.

    Reconfigures logging based on the new config. Supervisors snapshot their
    timings when built, so only supervisors created afterwards see the change.
    """
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager(None)
    _config_manager.config = new_config
    _config_manager._setup_logging()  # noqa: SLF001


def reset_config() -> None:
    """Drop the global configuration so the next access reloads it."""
    global _config_manager
    _config_manager = None
    logging.getLogger(__name__).debug("Global configuration reset")


def get_requery_config() -> RequeryConfig:
    """Get requery configuration."""
    return get_config().requery


def get_observability_config() -> ObservabilityConfig:
    """Get observability configuration."""
    return get_config().observability
