"""Component capability contract.

A component is a pluggable adapter registered under a scheme.  It may be
able to create consumers (event sources), producers (sinks), both, or
neither.  Capabilities are exposed through two accessors that return the
factory or ``None``, so the engine never probes for methods.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from dromedary.models.context import ComponentContext
from dromedary.models.endpoints import EndpointAddress

EventHandler = Callable[[Any], None]
StopFn = Callable[[], None]


@runtime_checkable
class Consumer(Protocol):
    """A subscription yielding events until stopped."""

    def start(self, handler: EventHandler) -> StopFn:
        """Begin delivering events to *handler*.

        Returns a function that permanently tears the subscription down.
        A later ``start`` call may open fresh underlying resources.
        """
        ...


@runtime_checkable
class Producer(Protocol):
    """A sink accepting individual payload sends.

    ``send`` may be awaited concurrently from several routes and events.
    Failures are raised; the engine records them per target.
    """

    async def send(self, payload: Any) -> None:
        ...


ConsumerFactory = Callable[[EndpointAddress, ComponentContext], Consumer]
ProducerFactory = Callable[[EndpointAddress, ComponentContext], Producer]


class Component:
    """Base class for components.

    Subclasses override ``create_consumer`` and/or ``create_producer``; the
    capability accessors report which of the two were provided.
    """

    def create_consumer(
        self, endpoint: EndpointAddress, context: ComponentContext
    ) -> Consumer:
        raise NotImplementedError

    def create_producer(
        self, endpoint: EndpointAddress, context: ComponentContext
    ) -> Producer:
        raise NotImplementedError

    def as_consumer_factory(self) -> ConsumerFactory | None:
        """Return the consumer factory, or ``None`` if this component cannot consume."""
        if type(self).create_consumer is Component.create_consumer:
            return None
        return self.create_consumer

    def as_producer_factory(self) -> ProducerFactory | None:
        """Return the producer factory, or ``None`` if this component cannot produce."""
        if type(self).create_producer is Component.create_producer:
            return None
        return self.create_producer

    @property
    def capabilities(self) -> tuple[str, ...]:
        caps = []
        if self.as_consumer_factory() is not None:
            caps.append("consumer")
        if self.as_producer_factory() is not None:
            caps.append("producer")
        return tuple(caps)


class FunctionComponent(Component):
    """A component assembled from plain factory callables.

    Examples
    --------
    >>> component = FunctionComponent(create_producer=lambda ep, ctx: MySink(ep))
    >>> component.as_consumer_factory() is None
    True
    """

    def __init__(
        self,
        create_consumer: ConsumerFactory | None = None,
        create_producer: ProducerFactory | None = None,
    ) -> None:
        self._consumer_factory = create_consumer
        self._producer_factory = create_producer

    def as_consumer_factory(self) -> ConsumerFactory | None:
        return self._consumer_factory

    def as_producer_factory(self) -> ProducerFactory | None:
        return self._producer_factory

    def create_consumer(
        self, endpoint: EndpointAddress, context: ComponentContext
    ) -> Consumer:
        if self._consumer_factory is None:
            raise NotImplementedError("component has no consumer factory")
        return self._consumer_factory(endpoint, context)

    def create_producer(
        self, endpoint: EndpointAddress, context: ComponentContext
    ) -> Producer:
        if self._producer_factory is None:
            raise NotImplementedError("component has no producer factory")
        return self._producer_factory(endpoint, context)
