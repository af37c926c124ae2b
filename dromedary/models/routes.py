"""Route definition model — source, filters, processors and targets."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

EventPredicate = Callable[[Any], bool]
PayloadTransform = Callable[[Any], Any]  # may return an awaitable


class RouteDefinition(BaseModel):
    """An immutable, declarative route.

    Filters and processors run in declaration order.  Every target receives
    every outgoing item; targets are fan-out destinations, not alternatives.

    Built with ``dromedary.core.routes.route_from`` rather than directly.
    """

    model_config = ConfigDict(frozen=True)

    source: str
    filters: tuple[EventPredicate, ...] = ()
    processors: tuple[PayloadTransform, ...] = ()
    targets: tuple[str, ...] = ()
    name: str | None = Field(default=None, min_length=1)

    @property
    def label(self) -> str:
        """Human readable identity used in log lines."""
        if self.name:
            return self.name
        if not self.targets:
            return self.source
        return f"{self.source} -> {', '.join(self.targets)}"
