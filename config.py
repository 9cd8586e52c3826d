"""Configuration management for the pipeline bot.

Provides a ConfigManager class that handles loading, updating, and persisting
bot configuration from YAML files with sensible defaults.
"""
import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict

from storage.file_store import YAMLFileStore

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "pipeline": {
        "data_dir": "data",
        "customizations_file": "middlewares.json",
    },
    "license": {
        # empty list: every platform allowed
        "platforms": [],
    },
    "admin": {
        "enabled": True,
        "operators": [],
    },
    "console": {
        "echo": True,
    },
    "logging": {
        "level": "INFO",
    },
}


@dataclass
class ConfigManager:
    """Manages bot configuration with YAML file persistence.

    Attributes:
        path: Path to the YAML configuration file
    """
    path: str
    _store: YAMLFileStore = field(init=False)
    _config: Dict[str, Any] = field(init=False, default_factory=dict)

    def __post_init__(self) -> None:
        self._store = YAMLFileStore(self.path)

    def load(self) -> Dict[str, Any]:
        """Load configuration from file, creating defaults if needed."""
        if not self._store.exists():
            logger.info("Config file %s not found, creating default config", self.path)
            self._store.write(DEFAULT_CONFIG)
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            return self._config

        data = self._store.read()
        if not isinstance(data, dict):
            logger.warning("Config file malformed, resetting to defaults")
            self._store.write(DEFAULT_CONFIG)
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            return self._config

        # Merge defaults per section; unknown sections are kept as-is
        merged = copy.deepcopy(DEFAULT_CONFIG)
        for k, v in data.items():
            if isinstance(v, dict) and isinstance(merged.get(k), dict):
                merged[k].update(v)
            else:
                merged[k] = v
        self._config = merged
        return self._config

    def get(self) -> Dict[str, Any]:
        """Get the current configuration dictionary."""
        return self._config

    def section(self, name: str) -> Dict[str, Any]:
        """Get one section of the configuration, or an empty dict."""
        value = self._config.get(name)
        return value if isinstance(value, dict) else {}

    def update(self, new_config: Dict[str, Any]) -> None:
        """Update and persist the configuration.

        Args:
            new_config: New configuration dictionary to save
        """
        self._config = new_config
        self._store.write(self._config)
        logger.info("Config updated and saved to %s", self.path)
