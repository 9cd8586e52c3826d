"""Persisted per-middleware overrides of order and enabled flag.

The mapping lives in a JSON file (``name -> {"order": int, "enabled": bool}``)
that is created empty on first use and rewritten in full on every change.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from storage.file_store import JSONFileStore

logger = logging.getLogger(__name__)


def _field(entry: Any, key: str) -> Any:
    if isinstance(entry, dict):
        return entry.get(key)
    return getattr(entry, key, None)


def valid_order(value: Any) -> bool:
    """An order is an int (bools excluded)."""
    return isinstance(value, int) and not isinstance(value, bool)


def _invalid_fields(value: Dict[str, Any]) -> List[str]:
    bad = []
    if value.get("order") is not None and not valid_order(value["order"]):
        bad.append("order")
    if value.get("enabled") is not None and not isinstance(value["enabled"], bool):
        bad.append("enabled")
    return bad


class CustomizationStore:
    """Loads, updates, and persists middleware customizations.

    Attributes:
        path: Path to the JSON file
    """
    def __init__(self, path: str) -> None:
        self.path = path
        self._store = JSONFileStore(path)
        self._customizations: Dict[str, Dict[str, Any]] = self._read()

    def _read(self) -> Dict[str, Dict[str, Any]]:
        if not self._store.exists():
            logger.info("Customization file %s not found, creating it", self.path)
            self._store.write({})
        data = self._store.read()
        if not isinstance(data, dict):
            logger.warning("Customization file %s malformed, ignoring it", self.path)
            return {}
        loaded = {}
        for name, value in data.items():
            if not isinstance(value, dict):
                logger.warning("Ignoring malformed customization for %s: %r", name, value)
                continue
            bad = _invalid_fields(value)
            if bad:
                logger.warning(
                    "Ignoring invalid %s in customization for %s: %r",
                    ", ".join(bad), name, value,
                )
            loaded[name] = {
                key: None if key in bad else value.get(key) for key in ("order", "enabled")
            }
        return loaded

    def _write(self) -> None:
        self._store.write(self._customizations)

    def get(self, name: str) -> Optional[Dict[str, Any]]:
        """Return the customization for a middleware, if one is set."""
        return self._customizations.get(name)

    def as_dict(self) -> Dict[str, Dict[str, Any]]:
        """Return a copy of the whole mapping."""
        return {name: dict(value) for name, value in self._customizations.items()}

    def set_customizations(self, entries: Iterable[Any]) -> None:
        """Upsert customizations and persist the full mapping.

        Args:
            entries: Dicts (or objects) carrying ``name``, ``order``, ``enabled``

        Raises:
            ValueError: If an entry has no name, a non-int order or a non-bool
                enabled flag; nothing is changed in that case
        """
        updates = []
        for entry in entries:
            name = _field(entry, "name")
            if not name:
                raise ValueError(f"Customization entry without a name: {entry!r}")
            value = {"order": _field(entry, "order"), "enabled": _field(entry, "enabled")}
            bad = _invalid_fields(value)
            if bad:
                raise ValueError(
                    f"Invalid {', '.join(bad)} in customization for {name}: "
                    "order must be an integer, enabled a boolean"
                )
            updates.append((name, value))

        for name, value in updates:
            self._customizations[name] = value
        self._write()
        logger.info("Saved %d middleware customization(s) to %s", len(updates), self.path)

    def reset_customizations(self) -> None:
        """Drop every customization and persist the empty mapping."""
        self._customizations = {}
        self._write()
        logger.info("Middleware customizations reset")
