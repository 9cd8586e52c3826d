"""Middleware chain runtime.

One Dispatcher exists per channel. It keeps a main chain and a recovery
chain and runs events through them in registration order.

Main middlewares are called as ``handler(event)``. They may be plain
callables or coroutine functions. Raising stops the main chain and hands
the exception to the recovery chain; returning ``Flow.HALT`` stops the
main chain without an error.

Recovery middlewares are called as ``handler(error, event)``. A truthy
return value resolves the error. When nobody resolves it, the error is
logged and dropped, so ``dispatch`` never raises for middleware failures.
"""
import inspect
import json
import logging
from typing import Any, Callable, Dict, List, Sequence

from core.models import (
    EVENT_CONTEXT_KEY,
    Flow,
    HandlerKind,
    Middleware,
    validate_event,
)

logger = logging.getLogger(__name__)

MainHandler = Callable[[Dict[str, Any]], Any]
RecoveryHandler = Callable[[Exception, Dict[str, Any]], Any]


async def _call(handler: Callable[..., Any], *args: Any) -> Any:
    result = handler(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def _check_callables(handlers: Sequence[Any]) -> None:
    if not handlers:
        raise TypeError("Expected at least one middleware callable")
    for handler in handlers:
        if not callable(handler):
            raise TypeError(
                "Expected all middleware arguments to be callables "
                f"but got {type(handler).__name__}"
            )


class Dispatcher:
    """Runs events through the middleware chains of one channel.

    Registration is append-only and order matters: register everything
    before dispatching.

    Attributes:
        channel: Channel name, used in log lines
    """
    def __init__(self, channel: str, context: Any = None) -> None:
        self.channel = channel
        self._context = context
        self._main: List[MainHandler] = []
        self._recovery: List[RecoveryHandler] = []

    def use(self, *handlers: MainHandler) -> None:
        """Append handlers to the main chain.

        Raises:
            TypeError: If no handler is given or one is not callable
        """
        _check_callables(handlers)
        self._main.extend(handlers)

    def use_recovery(self, *handlers: RecoveryHandler) -> None:
        """Append handlers to the recovery chain.

        Raises:
            TypeError: If no handler is given or one is not callable
        """
        _check_callables(handlers)
        self._recovery.extend(handlers)

    def add(self, middleware: Middleware) -> None:
        """Place a registered middleware according to its kind."""
        if middleware.kind == HandlerKind.RECOVERY:
            self.use_recovery(middleware.handler)
        else:
            self.use(middleware.handler)

    @property
    def main_chain(self) -> List[MainHandler]:
        return list(self._main)

    @property
    def recovery_chain(self) -> List[RecoveryHandler]:
        return list(self._recovery)

    async def dispatch(self, *events: Dict[str, Any]) -> None:
        """Dispatch events one after the other.

        Each event is validated right before it runs, so an invalid event
        raises only after the events ahead of it have been processed.

        Raises:
            TypeError: If called without events
            EventShapeError: If an event is malformed
        """
        if not events:
            raise TypeError("Expected at least one event to dispatch")

        for event in events:
            validate_event(event)
            event[EVENT_CONTEXT_KEY] = self._context
            await self._run(event)

    async def _run(self, event: Dict[str, Any]) -> None:
        # Snapshot so registrations made while awaiting don't affect this event
        main = tuple(self._main)
        recovery = tuple(self._recovery)

        for handler in main:
            try:
                result = await _call(handler, event)
            except Exception as exc:  # pylint: disable=broad-exception-caught
                await self._recover(exc, event, recovery)
                return
            if result is Flow.HALT:
                logger.debug("Middleware chain (%s) halted by %r", self.channel, handler)
                return

    async def _recover(
        self,
        error: Exception,
        event: Dict[str, Any],
        recovery: Sequence[RecoveryHandler],
    ) -> None:
        for handler in recovery:
            try:
                if await _call(handler, error, event):
                    return
            except Exception as exc:  # pylint: disable=broad-exception-caught
                error = exc
                break

        logger.error(
            "Unhandled error in middleware (%s), error: %s", self.channel, error
        )


class UnloadedDispatcher:
    """Placeholder for a channel whose middlewares have not been loaded.

    Every call is a no-op that logs a warning.
    """
    def __init__(self, channel: str) -> None:
        self.channel = channel

    def _warn(self, args: Sequence[Any]) -> None:
        message = (
            "Middleware called before middlewares have been loaded. This is a no-op."
            " Have you forgotten to call `load_middlewares()` in your bot?"
        )
        if args and isinstance(args[0], dict):
            message += "\nCalled with: " + json.dumps(args[0], indent=2, default=str)
        logger.warning(message)

    def use(self, *handlers: MainHandler) -> None:
        self._warn(handlers)

    def use_recovery(self, *handlers: RecoveryHandler) -> None:
        self._warn(handlers)

    def add(self, middleware: Middleware) -> None:
        self._warn([middleware])

    async def dispatch(self, *events: Dict[str, Any]) -> None:
        self._warn(events)
