"""
load the config from config.yaml and environment variables
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.yaml"


class Config:
    """Configuration loader that reads from config.yaml and environment variables."""

    # Environment variable mapping
    ENV_MAPPINGS = {
        'HTTPBRIDGE_TIMEOUT': ('request', 'timeout'),
        'HTTPBRIDGE_USER_AGENT': ('request', 'user_agent'),
        'HTTPBRIDGE_DEFAULT_CONTENT_TYPE': ('request', 'default_content_type'),
        'HTTPBRIDGE_FOLLOW_REDIRECTS': ('transport', 'follow_redirects'),
        'HTTPBRIDGE_MAX_REDIRECTS': ('transport', 'max_redirects'),
        'HTTPBRIDGE_COMPLETION_GRACE': ('transport', 'completion_grace'),
        'LOG_LEVEL': ('logging', 'level'),
        'LOG_RENDERER': ('logging', 'renderer'),
    }

    def __init__(self, config_path: str = None, environ: Dict[str, str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to config.yaml file. If None, uses the
                        config.yaml shipped inside this package.
            environ: Environment to read overrides from. Defaults to os.environ.
        """
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        self.config_path = Path(config_path)
        self._environ = os.environ if environ is None else environ
        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file and override with environment variables."""
        try:
            with open(self.config_path, 'r') as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if not isinstance(config, dict):
            raise ValueError(f"Configuration root must be a mapping: {self.config_path}")

        return self._apply_env_overrides(config)

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        for env_var, config_path in self.ENV_MAPPINGS.items():
            env_value = self._environ.get(env_var)
            if env_value is not None:
                # Navigate to the nested config location
                current = config
                for key in config_path[:-1]:
                    if not isinstance(current.get(key), dict):
                        current[key] = {}
                    current = current[key]

                final_key = config_path[-1]
                current[final_key] = self._convert_env_value(env_value)

        return config

    def _convert_env_value(self, value: str):
        """Convert environment variable string to appropriate Python type."""
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def get(self, *keys, default=None):
        """Get a nested configuration value, e.g. get('request', 'timeout')."""
        current = self._config
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current

    @property
    def request(self) -> Dict[str, Any]:
        """Get request builder configuration."""
        return self.get('request', default={})

    @property
    def transport(self) -> Dict[str, Any]:
        """Get transport configuration."""
        return self.get('transport', default={})

    @property
    def logging(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self.get('logging', default={})
