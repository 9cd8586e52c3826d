"""Admin controls for the middleware pipeline.

Lets bot operators inspect and change middleware ordering at runtime by
sending ``!middleware`` commands. Changes are persisted and applied with a
reload.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List

import yaml

from core.models import EVENT_CONTEXT_KEY, Flow, event_sender, make_event

logger = logging.getLogger(__name__)

USAGE = (
    "Usage:\n"
    "`!middleware list` - Show middlewares in effective order\n"
    "`!middleware set` + YAML list of {name, order, enabled} - Customize and reload\n"
    "`!middleware reset` - Drop all customizations and reload\n"
    "`!middleware reload` - Reload middlewares"
)


@dataclass
class AdminControlsFeature:
    """Operator commands for runtime middleware configuration.

    Attributes:
        operators: Sender ids allowed to run commands; empty allows everyone
    """
    operators: FrozenSet[str] = field(default_factory=frozenset)

    def is_operator(self, event: Dict[str, Any]) -> bool:
        if not self.operators:
            return True
        return event_sender(event) in self.operators

    async def __call__(self, event: Dict[str, Any]) -> Flow:
        lines = event["text"].strip().splitlines()
        if not lines or not lines[0].strip().startswith("!middleware"):
            return Flow.CONTINUE
        if not self.is_operator(event):
            logger.warning("Ignoring admin command from non-operator %s", event_sender(event))
            return Flow.CONTINUE

        pipeline = event[EVENT_CONTEXT_KEY]
        parts = lines[0].split()
        body = "\n".join(lines[1:]).strip()
        action = parts[1] if len(parts) == 2 else ""

        if action == "list":
            reply = self._list(pipeline)
        elif action == "set":
            reply = self._set(pipeline, body)
        elif action == "reset":
            pipeline.reset_customizations()
            pipeline.load_middlewares()
            reply = "Middleware customizations reset and middlewares reloaded."
        elif action == "reload":
            pipeline.load_middlewares()
            reply = "Middlewares reloaded."
        else:
            reply = USAGE

        await pipeline.outgoing.dispatch(
            make_event("text", event["platform"], reply, raw={"in_reply_to": event.get("raw")})
        )
        return Flow.HALT

    def _list(self, pipeline: Any) -> str:
        described = [m.describe() for m in pipeline.get_middlewares()]
        if not described:
            return "No middlewares registered."
        text = yaml.safe_dump(described, sort_keys=False)
        return f"Middlewares:\n```yaml\n{text}```"

    def _set(self, pipeline: Any, body: str) -> str:
        if not body:
            return "Please provide a YAML body for !middleware set."
        try:
            data = yaml.safe_load(body)
        except yaml.YAMLError as e:
            return f"Failed to parse YAML: {e}"

        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list) or not all(isinstance(d, dict) for d in data):
            return "Body must be a YAML mapping or a list of mappings."

        known = pipeline.registry.names()
        entries: List[Dict[str, Any]] = []
        unknown = []
        for d in data:
            if d.get("name") not in known:
                unknown.append(str(d.get("name")))
                continue
            entries.append(
                {"name": d["name"], "order": d.get("order"), "enabled": d.get("enabled")}
            )
        if unknown:
            return f"Unknown middleware(s): {', '.join(unknown)}."

        try:
            pipeline.set_customizations(entries)
        except ValueError as e:
            return f"Rejected: {e}"
        pipeline.load_middlewares()
        logger.info("Admin updated %d middleware customization(s)", len(entries))
        return f"Middleware customizations updated: {', '.join(e['name'] for e in entries)}."
