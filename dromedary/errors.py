"""Error taxonomy for the Dromedary routing engine.

Only ``ConfigurationError`` is allowed to abort startup.  The other three
are raised inside the engine and handled there: a bad address aborts the
setup of a single route, an unresolved scheme skips a route or target, and
an event handling failure drops a single event.
"""

from __future__ import annotations

from typing import Any


class AddressParseError(ValueError):
    """Raised when an endpoint string is not ``scheme:path[?query]``."""

    def __init__(self, uri: str, reason: str) -> None:
        super().__init__(f"Invalid endpoint URI {uri!r}: {reason}")
        self.uri = uri
        self.reason = reason


class UnresolvedSchemeError(LookupError):
    """Raised when no component (or no required capability) exists for a scheme."""

    def __init__(self, scheme: str, capability: str) -> None:
        super().__init__(f"no {capability} available for scheme {scheme!r}")
        self.scheme = scheme
        self.capability = capability


class EventHandlingError(RuntimeError):
    """Wraps a failure raised by a filter, processor, or producer for one event."""

    def __init__(
        self,
        route: str,
        source: str,
        stage: str,
        cause: BaseException,
        event: Any = None,
    ) -> None:
        super().__init__(f"route {route!r} ({source}) failed at {stage}: {cause}")
        self.route = route
        self.source = source
        self.stage = stage
        self.cause = cause
        self.event = event


class ConfigurationError(ValueError):
    """Raised when the top-level runtime configuration has an invalid shape."""
