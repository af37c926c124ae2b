"""Dromedary: declarative event routing between pluggable components.

Routes read events from a source endpoint, filter and transform them, and
fan the results out to one or more target endpoints:

    route_from("cron:0 * * * *").process(status_intent).to("email:ops")

Routes sharing a source share one underlying subscription.  A failing
event, filter, processor or sink never stops the route or its siblings.
"""

__version__ = "0.2.0"
__description__ = "Declarative event routing engine with shared subscriptions"

from dromedary.core.components import Component, Consumer, FunctionComponent, Producer
from dromedary.core.endpoint import parse_endpoint
from dromedary.core.engine import RouteEngine
from dromedary.core.registry import ComponentRegistry
from dromedary.core.routes import from_, kind, route_from, tag
from dromedary.errors import (
    AddressParseError,
    ConfigurationError,
    EventHandlingError,
    UnresolvedSchemeError,
)
from dromedary.models.config import Contribution, PluginContext, RuntimeConfig, define_config
from dromedary.models.context import ComponentContext
from dromedary.models.endpoints import EndpointAddress
from dromedary.models.routes import RouteDefinition

__all__ = [
    "AddressParseError",
    "Component",
    "ComponentContext",
    "ComponentRegistry",
    "ConfigurationError",
    "Consumer",
    "Contribution",
    "EndpointAddress",
    "EventHandlingError",
    "FunctionComponent",
    "PluginContext",
    "Producer",
    "RouteDefinition",
    "RouteEngine",
    "RuntimeConfig",
    "UnresolvedSchemeError",
    "__version__",
    "define_config",
    "from_",
    "kind",
    "parse_endpoint",
    "route_from",
    "tag",
]
