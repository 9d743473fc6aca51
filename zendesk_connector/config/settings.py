"""
Configuration management: connector plugin config and environment-specific settings.
"""
import os
import re
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from pathlib import Path
import yaml

from zendesk_connector.utils.errors import ConfigError


KEY_DOMAIN = "domain"
KEY_USERNAME = "username"
KEY_API_TOKEN = "apiToken"
KEY_POLLING_PERIOD = "pollingPeriod"
KEY_BUFFER_SIZE = "bufferSize"
KEY_MAX_RETRIES = "maxRetries"

DEFAULT_POLLING_PERIOD = "2m"
DEFAULT_MAX_RETRIES = 3
MAX_BUFFER_SIZE = 100  # upper bound of the create_many endpoint

_DURATION_PART = re.compile(r'(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)')
_DURATION_UNITS = {
    'ns': 1e-9,
    'us': 1e-6,
    'µs': 1e-6,
    'ms': 1e-3,
    's': 1.0,
    'm': 60.0,
    'h': 3600.0,
}


def parse_duration(value: str) -> float:
    """Parse a duration string such as ``2m``, ``1h30m`` or ``500ms`` into seconds."""
    text = value.strip()
    if text == "0":
        return 0.0

    position = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()

    if position == 0 or position != len(text):
        raise ValueError(f"invalid duration {value!r}")
    return total


def _required(cfg: Dict[str, str], key: str) -> str:
    value = cfg.get(key)
    if value is None:
        raise ConfigError(f"{key!r} config value must be set")
    return value


def _parse_uint(cfg: Dict[str, str], key: str, default: int) -> int:
    raw = cfg.get(key) or str(default)
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{key!r} config value should be a positive integer") from None
    if value < 0:
        raise ConfigError(f"{key!r} config value should be a positive integer")
    return value


@dataclass
class ZendeskConfig:
    """Connection settings shared by the source and the destination."""
    domain: str
    username: str
    api_token: str

    @classmethod
    def parse(cls, cfg: Dict[str, str]) -> 'ZendeskConfig':
        return cls(**cls._common(cfg))

    @staticmethod
    def _common(cfg: Dict[str, str]) -> Dict[str, Any]:
        return {
            'domain': _required(cfg, KEY_DOMAIN),
            'username': _required(cfg, KEY_USERNAME),
            'api_token': _required(cfg, KEY_API_TOKEN),
        }


@dataclass
class SourceConfig(ZendeskConfig):
    """Source settings; ``polling_period`` is in seconds."""
    polling_period: float = 120.0

    @classmethod
    def parse(cls, cfg: Dict[str, str]) -> 'SourceConfig':
        common = cls._common(cfg)

        raw_period = cfg.get(KEY_POLLING_PERIOD) or DEFAULT_POLLING_PERIOD
        try:
            polling_period = parse_duration(raw_period)
        except ValueError as e:
            raise ConfigError(f"{raw_period!r} can't parse time interval: {e}") from e

        return cls(polling_period=polling_period, **common)


@dataclass
class DestinationConfig(ZendeskConfig):
    """Destination settings."""
    buffer_size: int = MAX_BUFFER_SIZE
    max_retries: int = DEFAULT_MAX_RETRIES

    @classmethod
    def parse(cls, cfg: Dict[str, str]) -> 'DestinationConfig':
        common = cls._common(cfg)

        buffer_size = _parse_uint(cfg, KEY_BUFFER_SIZE, MAX_BUFFER_SIZE)
        if buffer_size == 0:
            raise ConfigError(f"{KEY_BUFFER_SIZE!r} config value should be a positive integer")
        if buffer_size > MAX_BUFFER_SIZE:
            raise ConfigError(
                f"{KEY_BUFFER_SIZE!r} config value should not be bigger than "
                f"{MAX_BUFFER_SIZE}, got {buffer_size}"
            )

        max_retries = _parse_uint(cfg, KEY_MAX_RETRIES, DEFAULT_MAX_RETRIES)

        return cls(buffer_size=buffer_size, max_retries=max_retries, **common)


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "json"
    file_path: Optional[str] = None
    max_file_size: str = "10MB"
    backup_count: int = 5

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LoggingConfig':
        return cls(**data)


@dataclass
class ConnectorSettings:
    """Process-level settings for running the connector."""
    environment: str
    debug: bool = False
    http_timeout: float = 5.0
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    zendesk: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ConnectorSettings':
        """Create settings from dictionary."""
        if 'logging' in data and data['logging']:
            data['logging'] = LoggingConfig.from_dict(data['logging'])

        if 'zendesk' in data and data['zendesk']:
            data['zendesk'] = {key: str(value) for key, value in data['zendesk'].items()}

        return cls(**data)

    def plugin_config(self, **overrides: str) -> Dict[str, str]:
        """Flat plugin config seeded from the ``zendesk`` section."""
        return {**self.zendesk, **overrides}


class ConfigManager:
    """Manages configuration loading and environment-specific settings."""

    def __init__(self, config_dir: str = "config"):
        self.config_dir = Path(config_dir)
        self._settings: Optional[ConnectorSettings] = None
        self._environment = os.getenv("CONNECTOR_ENV", "development")

    def load_config(self, environment: Optional[str] = None) -> ConnectorSettings:
        """Load configuration for specified environment."""
        env = environment or self._environment

        base_config = self._load_config_file("base.yaml")
        env_config = self._load_config_file(f"{env}.yaml")

        # Environment file overrides base, env vars override both
        merged_config = self._merge_configs(base_config, env_config)
        merged_config = self._apply_env_overrides(merged_config)
        merged_config['environment'] = env

        self._settings = ConnectorSettings.from_dict(merged_config)
        return self._settings

    def get_settings(self) -> ConnectorSettings:
        """Get current settings, loading if necessary."""
        if self._settings is None:
            return self.load_config()
        return self._settings

    def _load_config_file(self, filename: str) -> Dict[str, Any]:
        config_path = self.config_dir / filename

        if not config_path.exists():
            return {}

        with open(config_path, 'r') as f:
            return yaml.safe_load(f) or {}

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge configuration dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides."""
        env_mappings = {
            'ZENDESK_DOMAIN': ['zendesk', KEY_DOMAIN],
            'ZENDESK_USERNAME': ['zendesk', KEY_USERNAME],
            'ZENDESK_API_TOKEN': ['zendesk', KEY_API_TOKEN],
            'LOG_LEVEL': ['logging', 'level'],
            'DEBUG': ['debug'],
        }

        for env_var, config_path in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                current = config
                for key in config_path[:-1]:
                    if not isinstance(current.get(key), dict):
                        current[key] = {}
                    current = current[key]

                final_key = config_path[-1]
                if value.lower() in ('true', 'false'):
                    current[final_key] = value.lower() == 'true'
                else:
                    current[final_key] = value

        return config


# Global configuration manager instance
config_manager = ConfigManager()


def get_settings() -> ConnectorSettings:
    """Get current connector settings."""
    return config_manager.get_settings()
