"""Pipeline manager owning the registry, customizations and dispatchers.

Usage::

    pipeline = Pipeline(data_dir="data")
    pipeline.register_middleware({"name": "m1", "type": "incoming", "handler": m1})
    pipeline.register_middleware({"name": "m2", "type": "incoming", "handler": m2})
    pipeline.load_middlewares()
    await pipeline.incoming.dispatch(event)

Registrations and customization changes only take effect on the next
``load_middlewares()`` call.
"""
import logging
import os
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from core.customizations import CustomizationStore
from core.dispatcher import Dispatcher, UnloadedDispatcher
from core.models import ChannelType, Middleware
from core.registry import MiddlewareRegistry

logger = logging.getLogger(__name__)

ChannelDispatcher = Union[Dispatcher, UnloadedDispatcher]
# Called with the pipeline; returns the operation that installs the license middleware
LicenseFactory = Callable[["Pipeline"], Callable[[], None]]


class Pipeline:
    """Entry point the host uses for middleware registration and dispatch.

    Attributes:
        incoming: Dispatcher for events coming into the bot
        outgoing: Dispatcher for events the bot sends out
        registry: Declared middlewares
        customizations: Persisted order/enabled overrides
    """
    def __init__(
        self,
        data_dir: str,
        context: Any = None,
        license_middleware: Optional[LicenseFactory] = None,
        customizations_file: str = "middlewares.json",
    ) -> None:
        self._context = self if context is None else context
        self._license_middleware = license_middleware
        self.customizations = CustomizationStore(os.path.join(data_dir, customizations_file))
        self.registry = MiddlewareRegistry(self.customizations)
        self.incoming: ChannelDispatcher = UnloadedDispatcher(ChannelType.INCOMING.value)
        self.outgoing: ChannelDispatcher = UnloadedDispatcher(ChannelType.OUTGOING.value)

    def channel(self, name: Union[str, ChannelType]) -> ChannelDispatcher:
        """Return the current dispatcher of a channel."""
        if ChannelType(name) == ChannelType.INCOMING:
            return self.incoming
        return self.outgoing

    @property
    def loaded(self) -> bool:
        return isinstance(self.incoming, Dispatcher)

    def register_middleware(self, middleware: Dict[str, Any]) -> bool:
        """Declare a middleware; see ``MiddlewareRegistry.register``."""
        return self.registry.register(middleware)

    def middleware(self, name: str, type: str, **kwargs: Any) -> Callable[..., Any]:  # pylint: disable=redefined-builtin
        """Decorator form of ``register_middleware``."""
        return self.registry.middleware(name, type, **kwargs)

    def get_middlewares(self) -> List[Middleware]:
        """Return the effective, customization-merged middleware list."""
        return self.registry.effective_list()

    def set_customizations(self, entries: Iterable[Any]) -> None:
        self.customizations.set_customizations(entries)

    def reset_customizations(self) -> None:
        self.customizations.reset_customizations()

    def load_middlewares(self) -> None:
        """Rebuild both dispatchers from the registry.

        The license middleware is installed first, then every enabled
        middleware in effective order. Nothing is awaited while rebuilding,
        so no dispatch ever sees a half-built chain.
        """
        dispatchers = {
            channel: Dispatcher(channel.value, self._context) for channel in ChannelType
        }

        # The license factory registers through pipeline.incoming/outgoing
        previous = (self.incoming, self.outgoing)
        self.incoming = dispatchers[ChannelType.INCOMING]
        self.outgoing = dispatchers[ChannelType.OUTGOING]
        try:
            if self._license_middleware is not None:
                self._license_middleware(self)()

            for m in self.get_middlewares():
                if not m.enabled:
                    logger.debug("SKIPPING middleware: %s [Reason=disabled]", m.name)
                    continue
                logger.debug("Loading middleware: %s", m.name)
                dispatchers[m.type].add(m)
        except Exception:
            self.incoming, self.outgoing = previous
            raise

        logger.info(
            "Loaded middlewares: %d incoming, %d outgoing",
            len(dispatchers[ChannelType.INCOMING].main_chain),
            len(dispatchers[ChannelType.OUTGOING].main_chain),
        )
