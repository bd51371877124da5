"""Configuration loader with multi-source support."""

import logging
import os
import toml
from pathlib import Path
from typing import Dict, Any, Generic, Optional, Type, TypeVar
import platformdirs
from pydantic import BaseModel

logger = logging.getLogger(__name__)

T = TypeVar('T', bound=BaseModel)


class ConfigLoader(Generic[T]):
    """Loads configuration from multiple sources with priority.

    Later sources win: defaults file, system config, user config,
    then environment variables.
    """

    def __init__(self, config_class: Type[T], app_name: str = "zip-extract") -> None:
        self.app_name = app_name
        self.config_class = config_class
        self._config: Optional[T] = None

    @property
    def env_prefix(self) -> str:
        return f"{self.app_name.upper().replace('-', '_')}_"

    def load(self, defaults_path: Optional[Path] = None) -> T:
        """Load configuration from all sources.

        Args:
            defaults_path: Optional path to a defaults TOML file

        Returns:
            Validated configuration object
        """
        config_dict = self._load_defaults(defaults_path)

        for source in (self._system_config_path(), self._user_config_path()):
            if source.exists():
                logger.debug(f"Merging config from {source}")
                config_dict = self._deep_merge(config_dict, toml.load(source))

        config_dict = self._apply_env_overrides(config_dict)

        self._config = self.config_class(**config_dict)
        return self._config

    def _load_defaults(self, defaults_path: Optional[Path]) -> Dict[str, Any]:
        if defaults_path is None:
            return {}
        if not defaults_path.exists():
            raise FileNotFoundError(f"Config file not found: {defaults_path}")
        return toml.load(defaults_path)

    def _system_config_path(self) -> Path:
        return Path(f"/etc/{self.app_name}/config.toml")

    def _user_config_path(self) -> Path:
        user_config_dir = platformdirs.user_config_dir(appname=self.app_name, appauthor=False)
        return Path(user_config_dir) / "config.toml"

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Override config with environment variables.

        ZIP_EXTRACT_EXTRACTION_DEFAULT_FILE_MODE -> extraction.default_file_mode
        (the first segment names the section, the rest is the key).
        """
        prefix = self.env_prefix

        for env_key, env_value in os.environ.items():
            if not env_key.startswith(prefix):
                continue

            section, _, key = env_key[len(prefix):].lower().partition("_")
            if not key:
                logger.warning(f"Ignoring malformed config variable {env_key}")
                continue

            config.setdefault(section, {})[key] = self._convert_env_value(env_value)

        return config

    def _convert_env_value(self, value: str) -> Any:
        """Convert string environment variable to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False
        # Numbers stay strings so pydantic can apply field-specific parsing
        # (e.g. octal permission modes).
        return value

    @property
    def config(self) -> T:
        """Get loaded configuration."""
        if self._config is None:
            self._config = self.load()
        return self._config
