"""Runtime configuration — components, routes and plugin contributions.

A configuration file builds one of these with ``define_config``::

    config = define_config(
        components={"cron": CronComponent(timezone="UTC"), "email": EmailComponent()},
        routes=[route_from("cron:* * * * *").process(status_intent).to("email:ops")],
        plugins=[audit_plugin],
    )

Plugins are either a ``Contribution`` (or plain mapping) or a callable
receiving a ``PluginContext`` and returning one.  Component contributions
are merged over the base registry, later plugins winning on scheme
collision; route contributions are appended after the base routes in plugin
order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, InstanceOf, ValidationError, field_validator

from dromedary.core.components import Component
from dromedary.core.registry import ComponentRegistry
from dromedary.core.routes import RouteBuilder, as_definition, kind, route_from, tag
from dromedary.errors import ConfigurationError
from dromedary.models.routes import RouteDefinition

logger = logging.getLogger(__name__)


def _coerce_routes(value: Any) -> Any:
    if value is None:
        return ()
    if isinstance(value, (RouteDefinition, RouteBuilder, str, bytes)) or not hasattr(value, "__iter__"):
        raise ValueError("routes must be a list of route definitions")
    return tuple(as_definition(r) if isinstance(r, RouteBuilder) else r for r in value)


class Contribution(BaseModel):
    """Components and routes contributed by a plugin."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    components: dict[str, Component] = {}
    routes: tuple[RouteDefinition, ...] = ()

    @field_validator("components", mode="before")
    @classmethod
    def _components(cls, value: Any) -> Any:
        return {} if value is None else dict(value)

    @field_validator("routes", mode="before")
    @classmethod
    def _routes(cls, value: Any) -> Any:
        return _coerce_routes(value)


Plugin = Union[Contribution, Mapping[str, Any], Callable[["PluginContext"], Any]]


class RuntimeConfig(BaseModel):
    """A fully described routing setup: registry, routes and plugins."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    components: InstanceOf[ComponentRegistry] = ComponentRegistry()
    routes: tuple[RouteDefinition, ...] = ()
    plugins: tuple[Any, ...] = ()

    @field_validator("components", mode="before")
    @classmethod
    def _components(cls, value: Any) -> Any:
        if value is None:
            return ComponentRegistry()
        if isinstance(value, ComponentRegistry):
            return value
        if not isinstance(value, Mapping):
            raise ValueError("components must be a mapping of scheme to component")
        return ComponentRegistry(value)

    @field_validator("routes", mode="before")
    @classmethod
    def _routes(cls, value: Any) -> Any:
        return _coerce_routes(value)

    @field_validator("plugins", mode="before")
    @classmethod
    def _plugins(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, (Mapping, Contribution)) or callable(value):
            raise ValueError("plugins must be a list")
        return tuple(value)

    def resolve(self) -> RuntimeConfig:
        """Apply every plugin and return a config with ``plugins`` cleared."""
        if not self.plugins:
            return self
        context = PluginContext(self)
        registry = self.components
        routes = list(self.routes)
        for index, plugin in enumerate(self.plugins):
            contribution = _contribution_from(plugin, context, index)
            if contribution.components:
                registry = registry.merged(contribution.components)
            routes.extend(contribution.routes)
            logger.debug(
                "Plugin %d contributed %d component(s), %d route(s)",
                index,
                len(contribution.components),
                len(contribution.routes),
            )
        return self.model_copy(
            update={"components": registry, "routes": tuple(routes), "plugins": ()}
        )


class PluginContext:
    """What a plugin callable receives: route helpers and the base config."""

    route_from = staticmethod(route_from)
    from_ = staticmethod(route_from)
    kind = staticmethod(kind)
    tag = staticmethod(tag)

    def __init__(self, config: RuntimeConfig) -> None:
        self.config = config


def _contribution_from(plugin: Any, context: PluginContext, index: int) -> Contribution:
    value = plugin(context) if callable(plugin) and not isinstance(plugin, BaseModel) else plugin
    if value is None:
        return Contribution()
    if isinstance(value, Contribution):
        return value
    if not isinstance(value, Mapping):
        raise ConfigurationError(
            f"Plugin {index} returned {type(value).__name__}; expected a Contribution or mapping"
        )
    try:
        return Contribution.model_validate(dict(value))
    except ValidationError as exc:
        raise ConfigurationError(f"Plugin {index} returned an invalid contribution: {exc}") from exc


def coerce_config(value: Any) -> RuntimeConfig:
    """Validate *value* (a ``RuntimeConfig`` or mapping) into a ``RuntimeConfig``.

    Raises
    ------
    ConfigurationError
        If the shape is not ``{components, routes, plugins?}``.
    """
    if isinstance(value, RuntimeConfig):
        return value
    if not isinstance(value, Mapping):
        raise ConfigurationError(
            f"Expected a RuntimeConfig or mapping with components and routes, "
            f"got {type(value).__name__}"
        )
    unknown = set(value) - set(RuntimeConfig.model_fields)
    if unknown:
        raise ConfigurationError(f"Unknown configuration key(s): {', '.join(sorted(unknown))}")
    try:
        return RuntimeConfig.model_validate(dict(value))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def define_config(
    components: Mapping[str, Component] | None = None,
    routes: list[RouteDefinition | RouteBuilder] | None = None,
    plugins: list[Plugin] | None = None,
) -> RuntimeConfig:
    """Build a ``RuntimeConfig`` and apply its plugins."""
    return coerce_config(
        {"components": components, "routes": routes, "plugins": plugins}
    ).resolve()
