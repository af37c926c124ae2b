"""Dromedary data models — all Pydantic v2, all frozen (immutable).

``dromedary.models.config`` depends on the core registry and is imported
directly rather than re-exported here.
"""

from dromedary.models.context import ComponentContext
from dromedary.models.endpoints import EndpointAddress
from dromedary.models.payload import Payload, to_payload
from dromedary.models.reports import DeliveryOutcome, EventReport, EventStatus
from dromedary.models.routes import EventPredicate, PayloadTransform, RouteDefinition

__all__ = [
    # endpoints
    "EndpointAddress",
    # payload
    "Payload",
    "to_payload",
    # routes
    "EventPredicate",
    "PayloadTransform",
    "RouteDefinition",
    # reports
    "DeliveryOutcome",
    "EventReport",
    "EventStatus",
    # context
    "ComponentContext",
]
