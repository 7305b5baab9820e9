"""
Configuration Management System

This module provides centralized configuration management using YAML files,
with environment variable overrides for the real-time service settings.
Supports dot-notation access and reloading.
"""

import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional

from trafficview.logger import get_logger

logger = get_logger(__name__)


class ConfigManager:
    """
    Manage application configuration from YAML files

    Provides:
    - Load all config files on startup
    - Dot notation access: config.get('realtime.broadcastInterval')
    - Reload capability
    - Default values for missing keys
    """

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize configuration manager

        Args:
            config_dir: Path to config directory (default: backend/config)
        """
        if config_dir:
            self.config_dir = Path(config_dir)
        else:
            self.config_dir = Path(__file__).parent.parent / "config"

        self.configs: Dict[str, Any] = {}
        self._load_all_configs()

    def _load_all_configs(self):
        """Load all YAML files from the config directory"""
        if not self.config_dir.exists():
            logger.warning("[CONFIG] Config directory missing: %s", self.config_dir)
            return

        for yaml_file in sorted(self.config_dir.glob("*.yaml")):
            try:
                with open(yaml_file, 'r') as f:
                    self.configs[yaml_file.stem] = yaml.safe_load(f) or {}
                logger.info("[CONFIG] Loaded: %s", yaml_file.name)
            except (OSError, yaml.YAMLError) as e:
                logger.warning("[CONFIG] Failed to load %s: %s", yaml_file.name, e)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot notation key

        Examples:
            config.get('realtime.broadcastInterval')
            config.get('realtime.snapshot.maxLimit')

        Args:
            key: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.configs
        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def get_realtime_config(self) -> Dict[str, Any]:
        """Get real-time service configuration section"""
        return self.configs.get('realtime', {})

    def reload(self):
        """Reload all configuration files"""
        logger.info("[CONFIG] Reloading configuration...")
        self.configs.clear()
        self._load_all_configs()

    def set(self, key: str, value: Any):
        """
        Set a configuration value (runtime only, not persisted)

        Args:
            key: Dot-separated key path
            value: Value to set
        """
        keys = key.split('.')
        config = self.configs

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value


@dataclass(frozen=True)
class RealtimeSettings:
    """Settings for the broadcast and subscription service"""
    broadcast_interval: float = 5.0       # seconds between ticks
    default_limit: int = 100              # points per snapshot
    max_limit: int = 500                  # hard ceiling for requested limits
    metrics_window: float = 3600.0        # trailing window for metrics (seconds)
    query_timeout: float = 5.0            # per store query (seconds)

    def __post_init__(self):
        if self.broadcast_interval <= 0:
            raise ValueError("broadcast_interval must be positive")
        if self.default_limit < 1 or self.max_limit < self.default_limit:
            raise ValueError("limits must satisfy 1 <= default_limit <= max_limit")
        if self.query_timeout <= 0:
            raise ValueError("query_timeout must be positive")


def _env(name: str, cast, fallback):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return fallback
    try:
        return cast(raw)
    except ValueError:
        logger.warning("[CONFIG] Ignoring invalid %s=%r", name, raw)
        return fallback


def load_realtime_settings(cfg: Optional[ConfigManager] = None) -> RealtimeSettings:
    """
    Build RealtimeSettings from YAML config, overridden by environment

    Environment variables:
        BROADCAST_INTERVAL, SNAPSHOT_DEFAULT_LIMIT, SNAPSHOT_MAX_LIMIT,
        METRICS_WINDOW_SECONDS, STORE_QUERY_TIMEOUT
    """
    defaults = RealtimeSettings()
    section = cfg.get_realtime_config() if cfg else {}
    snapshot = section.get('snapshot', {}) or {}

    return RealtimeSettings(
        broadcast_interval=_env(
            "BROADCAST_INTERVAL", float,
            float(section.get('broadcastInterval', defaults.broadcast_interval))
        ),
        default_limit=_env(
            "SNAPSHOT_DEFAULT_LIMIT", int,
            int(snapshot.get('defaultLimit', defaults.default_limit))
        ),
        max_limit=_env(
            "SNAPSHOT_MAX_LIMIT", int,
            int(snapshot.get('maxLimit', defaults.max_limit))
        ),
        metrics_window=_env(
            "METRICS_WINDOW_SECONDS", float,
            float(section.get('metricsWindow', defaults.metrics_window))
        ),
        query_timeout=_env(
            "STORE_QUERY_TIMEOUT", float,
            float(section.get('queryTimeout', defaults.query_timeout))
        ),
    )


# Global configuration instance
config: Optional[ConfigManager] = None


def get_config() -> ConfigManager:
    """Get the global configuration instance"""
    global config
    if config is None:
        config = ConfigManager()
    return config
