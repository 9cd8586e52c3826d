"""Registry of declared middlewares.

Keeps every middleware the bot knows about, independent of the dispatchers
currently in use, and resolves the effective ordering by layering the
persisted customizations over the declared defaults.
"""
import dataclasses
import logging
from typing import Any, Callable, Dict, List, Optional

from core.customizations import CustomizationStore, valid_order
from core.models import ChannelType, HandlerKind, Middleware

logger = logging.getLogger(__name__)


class MiddlewareRegistry:
    """Catalogue of middlewares in registration order."""

    def __init__(self, customizations: CustomizationStore) -> None:
        self._customizations = customizations
        self._middlewares: List[Middleware] = []

    def __len__(self) -> int:
        return len(self._middlewares)

    def __contains__(self, name: object) -> bool:
        return any(m.name == name for m in self._middlewares)

    def register(self, middleware: Dict[str, Any]) -> bool:
        """Register a middleware declaration.

        Args:
            middleware: Dict with ``name``, ``type`` ("incoming" or "outgoing"),
                ``handler`` and optional ``order``, ``enabled``, ``kind``

        Returns:
            True if registered, False if the declaration was rejected
        """
        if not middleware or not middleware.get("name"):
            logger.error("A unique middleware name is mandatory")
            return False

        handler = middleware.get("handler")
        if not callable(handler):
            logger.error("A middleware handler is mandatory (%s)", middleware["name"])
            return False

        try:
            channel = ChannelType(middleware.get("type"))
        except ValueError:
            logger.error(
                "A middleware type (incoming or outgoing) is required (%s)",
                middleware["name"],
            )
            return False

        try:
            kind = HandlerKind(middleware.get("kind") or HandlerKind.MAIN)
        except ValueError:
            logger.error(
                "A middleware kind must be main or recovery (%s)", middleware["name"]
            )
            return False

        if middleware["name"] in self:
            logger.error(
                "Another middleware with the same name has already been registered (%s)",
                middleware["name"],
            )
            return False

        order = middleware.get("order")
        if order is None:
            order = 0
        elif not valid_order(order):
            logger.error("A middleware order must be an integer (%s)", middleware["name"])
            return False

        enabled = middleware.get("enabled")
        self._middlewares.append(
            Middleware(
                name=middleware["name"],
                type=channel,
                handler=handler,
                order=order,
                enabled=True if enabled is None else bool(enabled),
                kind=kind,
            )
        )
        logger.debug("Registered middleware %s (%s)", middleware["name"], channel.value)
        return True

    def middleware(
        self,
        name: str,
        type: str,  # pylint: disable=redefined-builtin
        order: int = 0,
        enabled: bool = True,
        kind: str = HandlerKind.MAIN.value,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator registering the decorated function as a middleware."""
        def decorator(handler: Callable[..., Any]) -> Callable[..., Any]:
            self.register(
                {
                    "name": name,
                    "type": type,
                    "handler": handler,
                    "order": order,
                    "enabled": enabled,
                    "kind": kind,
                }
            )
            return handler
        return decorator

    def get(self, name: str) -> Optional[Middleware]:
        """Return the middleware as registered (no customization applied)."""
        for m in self._middlewares:
            if m.name == name:
                return m
        return None

    def names(self) -> List[str]:
        return [m.name for m in self._middlewares]

    def effective_list(self) -> List[Middleware]:
        """Return middlewares with customizations applied, sorted by order.

        Ties keep registration order.
        """
        resolved = []
        for m in self._middlewares:
            custom = self._customizations.get(m.name)
            if custom:
                overrides: Dict[str, Any] = {}
                if valid_order(custom.get("order")):
                    overrides["order"] = custom["order"]
                if isinstance(custom.get("enabled"), bool):
                    overrides["enabled"] = custom["enabled"]
                m = dataclasses.replace(m, **overrides)
            resolved.append(m)
        return sorted(resolved, key=lambda m: m.order)
