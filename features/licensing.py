"""License gate installed ahead of every user middleware.

The gate restricts which platforms the bot may send to. Denied events fail
on the outgoing channel and go through its recovery chain like any other
middleware error.
"""
import logging
from typing import Any, Callable, Dict, Iterable, Optional

from core.models import Flow

logger = logging.getLogger(__name__)


class LicenseError(RuntimeError):
    """Raised when the license does not cover an outgoing event."""


class LicenseGate:
    """
    Checks outgoing events against the platforms the license allows.
    An empty platform list allows every platform.
    """

    def __init__(self, allowed_platforms: Optional[Iterable[str]] = None) -> None:
        self.allowed_platforms = frozenset(allowed_platforms or ())

    def allows(self, platform: str) -> bool:
        return not self.allowed_platforms or platform in self.allowed_platforms

    def check_outgoing(self, event: Dict[str, Any]) -> Flow:
        if not self.allows(event["platform"]):
            raise LicenseError(
                f"Platform {event['platform']!r} is not covered by the license"
            )
        return Flow.CONTINUE


def license_factory(gate: LicenseGate) -> Callable[[Any], Callable[[], None]]:
    """Build the license factory a Pipeline expects.

    Args:
        gate: License gate to install

    Returns:
        Callable taking the pipeline and returning its ``apply`` operation
    """
    def bind(pipeline: Any) -> Callable[[], None]:
        def apply() -> None:
            pipeline.outgoing.use(gate.check_outgoing)
            logger.debug(
                "License middleware applied (platforms=%s)",
                sorted(gate.allowed_platforms) or "any",
            )
        return apply
    return bind
