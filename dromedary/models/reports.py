"""Per-event delivery reports produced by the route engine."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class EventStatus(str, Enum):
    """What happened to one event on one route."""

    DROPPED = "dropped"  # filtered out or short-circuited by a processor
    DELIVERED = "delivered"  # every send succeeded
    PARTIAL = "partial"  # some sends failed
    FAILED = "failed"  # every send failed, or the pipeline raised


class DeliveryOutcome(BaseModel):
    """The settled result of one ``send`` to one target."""

    model_config = ConfigDict(frozen=True)

    target: str
    ok: bool
    error: str = ""


class EventReport(BaseModel):
    """Summary of handling a single event on a single route."""

    model_config = ConfigDict(frozen=True)

    route: str
    source: str
    status: EventStatus
    items: int = 0
    outcomes: list[DeliveryOutcome] = []
    error: str = ""

    @property
    def failed_targets(self) -> list[str]:
        return [o.target for o in self.outcomes if not o.ok]
