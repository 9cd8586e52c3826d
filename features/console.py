"""Console transport for running the bot in a terminal.

Each stdin line becomes an incoming event; outgoing events are printed to
stdout.
"""
import json
import logging
import sys
from typing import Any, AsyncIterator, Dict, Optional, TextIO

import trio

from core.models import EVENT_CONTEXT_KEY, Flow, make_event

logger = logging.getLogger(__name__)

PLATFORM = "console"


def parse_line(line: str, sender: str = "console") -> Optional[Dict[str, Any]]:
    """Turn one input line into an event.

    JSON object lines are used as events, with missing fields filled in.
    Any other non-empty line becomes a text event.

    Args:
        line: Raw input line
        sender: Sender id recorded in ``raw``

    Returns:
        The event, or None for blank lines
    """
    line = line.strip()
    if not line:
        return None

    if line.startswith("{"):
        try:
            data = json.loads(line)
        except json.JSONDecodeError:
            logger.debug("Line is not JSON, treating it as text")
        else:
            if isinstance(data, dict):
                data.setdefault("type", "text")
                data.setdefault("platform", PLATFORM)
                data.setdefault("text", "")
                data.setdefault("raw", {"sender": sender})
                return data

    return make_event("text", PLATFORM, line, raw={"sender": sender})


async def read_events(stream: Optional[TextIO] = None) -> AsyncIterator[Dict[str, Any]]:
    """Async generator yielding events read from a text stream (stdin by default)."""
    async_stream = trio.wrap_file(stream or sys.stdin)
    async for line in async_stream:
        event = parse_line(line)
        if event is not None:
            yield event


class ConsoleOutput:
    """Outgoing middleware printing event text to a stream."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream

    def __call__(self, event: Dict[str, Any]) -> Flow:
        print(
            f"[{event['platform']}] {event['text']}",
            file=self.stream or sys.stdout,
            flush=True,
        )
        return Flow.CONTINUE


async def echo(event: Dict[str, Any]) -> None:
    """Incoming middleware replying with the received text."""
    if event["type"] != "text" or not event["text"]:
        return
    pipeline = event[EVENT_CONTEXT_KEY]
    await pipeline.outgoing.dispatch(
        make_event("text", event["platform"], event["text"], raw={"in_reply_to": event.get("raw")})
    )


async def report_failure(error: Exception, event: Dict[str, Any]) -> bool:
    """Incoming recovery middleware apologising for a failed event."""
    logger.warning("Failed to process %s event: %s", event["type"], error)
    pipeline = event[EVENT_CONTEXT_KEY]
    await pipeline.outgoing.dispatch(
        make_event("text", event["platform"], "Sorry, something went wrong.")
    )
    return True
