"""File-based storage utilities for persisting bot data.

Provides YAML and JSON file stores. Both rewrite the whole file on every
write through a temporary file and an atomic rename.
"""
import json
import logging
import os
from typing import Any, Dict, TextIO

import yaml

logger = logging.getLogger(__name__)


class FileStore:
    """Base class for whole-file stores with atomic writes.

    Attributes:
        path: Path to the backing file
    """
    def __init__(self, path: str) -> None:
        self.path = path

    def exists(self) -> bool:
        """Check if the backing file exists."""
        return os.path.exists(self.path)

    def _load(self, f: TextIO) -> Any:
        raise NotImplementedError

    def _dump(self, data: Dict[str, Any], f: TextIO) -> None:
        raise NotImplementedError

    def read(self) -> Dict[str, Any]:
        """Read and parse the backing file.

        Returns:
            Parsed data as dictionary, or empty dict on error
        """
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return self._load(f) or {}
        except FileNotFoundError:
            return {}
        except Exception:  # pylint: disable=broad-exception-caught
            # Corrupt files read as empty; callers fall back to defaults
            logger.exception("Failed to read %s", self.path)
            return {}

    def write(self, data: Dict[str, Any]) -> None:
        """Write data to the backing file atomically.

        Args:
            data: Dictionary to persist
        """
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = self.path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            self._dump(data, f)
        os.replace(tmp_path, self.path)


class YAMLFileStore(FileStore):
    """Handles reading and writing YAML files."""

    def _load(self, f: TextIO) -> Any:
        return yaml.safe_load(f)

    def _dump(self, data: Dict[str, Any], f: TextIO) -> None:
        yaml.safe_dump(data, f, sort_keys=False)


class JSONFileStore(FileStore):
    """Handles reading and writing JSON files."""

    def _load(self, f: TextIO) -> Any:
        return json.load(f)

    def _dump(self, data: Dict[str, Any], f: TextIO) -> None:
        json.dump(data, f, indent=2)
