"""Component registry — an immutable mapping from scheme to component.

The registry is built once from configuration and only read afterwards.
Lookups that miss return ``None`` so the engine can log and skip a route
instead of aborting the whole process.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping

from dromedary.core.components import Component, ConsumerFactory, ProducerFactory
from dromedary.errors import ConfigurationError, UnresolvedSchemeError

logger = logging.getLogger(__name__)


class ComponentRegistry(Mapping[str, Component]):
    """Read-only ``scheme -> Component`` mapping.

    Examples
    --------
    >>> registry = ComponentRegistry({"email": EmailComponent()})
    >>> registry.lookup("ghost") is None
    True
    """

    def __init__(self, components: Mapping[str, Component] | None = None) -> None:
        entries = dict(components or {})
        for scheme, component in entries.items():
            if not isinstance(scheme, str) or not scheme or ":" in scheme:
                raise ConfigurationError(f"Invalid component scheme: {scheme!r}")
            if not isinstance(component, Component):
                raise ConfigurationError(
                    f"Component for scheme {scheme!r} must be a Component, "
                    f"got {type(component).__name__}"
                )
        self._components: dict[str, Component] = entries

    # -- Mapping protocol ---------------------------------------------------

    def __getitem__(self, scheme: str) -> Component:
        return self._components[scheme]

    def __iter__(self) -> Iterator[str]:
        return iter(self._components)

    def __len__(self) -> int:
        return len(self._components)

    def __repr__(self) -> str:
        return f"ComponentRegistry({sorted(self._components)!r})"

    # -- Lookup -------------------------------------------------------------

    def lookup(self, scheme: str) -> Component | None:
        """Return the component for *scheme*, or ``None`` if not registered."""
        return self._components.get(scheme)

    def require_consumer(self, scheme: str) -> ConsumerFactory:
        """Return the consumer factory for *scheme*.

        Raises
        ------
        UnresolvedSchemeError
            If the scheme is unknown or its component cannot consume.
        """
        component = self.lookup(scheme)
        factory = component.as_consumer_factory() if component else None
        if factory is None:
            raise UnresolvedSchemeError(scheme, "consumer")
        return factory

    def require_producer(self, scheme: str) -> ProducerFactory:
        """Return the producer factory for *scheme*.

        Raises
        ------
        UnresolvedSchemeError
            If the scheme is unknown or its component cannot produce.
        """
        component = self.lookup(scheme)
        factory = component.as_producer_factory() if component else None
        if factory is None:
            raise UnresolvedSchemeError(scheme, "producer")
        return factory

    # -- Composition --------------------------------------------------------

    def merged(self, other: Mapping[str, Component]) -> ComponentRegistry:
        """Return a new registry where entries from *other* win on collision."""
        combined = dict(self._components)
        for scheme, component in other.items():
            if scheme in combined and combined[scheme] is not component:
                logger.debug("Component for scheme %r overridden", scheme)
            combined[scheme] = component
        return ComponentRegistry(combined)
