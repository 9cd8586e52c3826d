"""Data models for the middleware pipeline.

Defines the channel and handler tags, the Middleware record kept by the
registry, and helpers for building and validating event dictionaries.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional


# Key under which the dispatcher stores the host context on each event
EVENT_CONTEXT_KEY = "pipeline"


class ChannelType(str, Enum):
    """Direction of event flow a middleware is attached to."""

    INCOMING = "incoming"
    OUTGOING = "outgoing"


class HandlerKind(str, Enum):
    """Which chain of a channel a middleware is placed in."""

    MAIN = "main"  # handler(event)
    RECOVERY = "recovery"  # handler(error, event) -> resolved?


class Flow(Enum):
    """Completion signal a main-chain middleware may return."""

    CONTINUE = "continue"
    HALT = "halt"  # event consumed, later middlewares are skipped


class EventShapeError(TypeError):
    """Raised when a dispatched event does not have the expected shape."""


@dataclass(frozen=True)
class Middleware:
    """A registered unit of processing.

    Attributes:
        name: Unique middleware name
        type: Channel the middleware is attached to
        handler: Callable run by the dispatcher
        order: Priority, lower runs first
        enabled: Disabled middlewares are skipped on reload
        kind: Main chain or recovery chain placement
    """
    name: str
    type: ChannelType
    handler: Callable[..., Any]
    order: int = 0
    enabled: bool = True
    kind: HandlerKind = HandlerKind.MAIN

    def describe(self) -> Dict[str, Any]:
        """Return a serializable summary (the handler is left out)."""
        return {
            "name": self.name,
            "type": self.type.value,
            "kind": self.kind.value,
            "order": self.order,
            "enabled": self.enabled,
        }


_EVENT_FIELDS = ("type", "platform", "text")


def make_event(type: str, platform: str, text: str, raw: Any = None) -> Dict[str, Any]:  # pylint: disable=redefined-builtin
    """Build an event dictionary ready for dispatch."""
    return {"type": type, "platform": platform, "text": text, "raw": raw}


def validate_event(event: Any) -> Dict[str, Any]:
    """Check that an event is a dict with string type/platform/text.

    ``raw`` may be absent or hold any value.

    Args:
        event: Candidate event

    Returns:
        The event unchanged

    Raises:
        EventShapeError: If the event is not a dict or a field has the wrong type
    """
    if not isinstance(event, dict):
        raise EventShapeError(
            "Expected all dispatch arguments to be event dicts "
            f"but got {type(event).__name__}"
        )
    for field_name in _EVENT_FIELDS:
        if not isinstance(event.get(field_name), str):
            raise EventShapeError(
                "Expected event to contain (type: str), (platform: str), "
                "(text: str), (raw: any)"
            )
    return event


def event_sender(event: Dict[str, Any]) -> Optional[str]:
    """Return the sender id carried in ``raw``, if any."""
    raw = event.get("raw")
    if isinstance(raw, dict) and raw.get("sender") is not None:
        return str(raw["sender"])
    return None
