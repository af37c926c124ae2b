"""Shared test fixtures for Dromedary."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import pytest

from dromedary.core.components import Component, EventHandler, StopFn
from dromedary.core.endpoint import parse_endpoint
from dromedary.core.engine import RouteEngine
from dromedary.models.context import ComponentContext
from dromedary.models.endpoints import EndpointAddress


# ---------------------------------------------------------------------------
# Stub components shared across test modules
# ---------------------------------------------------------------------------


class StubConsumer:
    """Counts start/stop calls and lets a test push events by hand."""

    def __init__(self, endpoint: EndpointAddress) -> None:
        self.endpoint = endpoint
        self.handlers: list[EventHandler] = []
        self.starts = 0
        self.stops = 0

    def start(self, handler: EventHandler) -> StopFn:
        self.starts += 1
        self.handlers.append(handler)

        def stop() -> None:
            self.stops += 1
            self.handlers.remove(handler)

        return stop

    def emit(self, event: Any) -> None:
        for handler in list(self.handlers):
            handler(event)


class StubSource(Component):
    """Consumer-only component recording every consumer it creates."""

    def __init__(self) -> None:
        self.consumers: dict[str, StubConsumer] = {}
        self.created = 0

    def create_consumer(self, endpoint: EndpointAddress, context: ComponentContext) -> StubConsumer:
        self.created += 1
        consumer = StubConsumer(endpoint)
        self.consumers[endpoint.canonical_key] = consumer
        return consumer

    def consumer_for(self, uri: str) -> StubConsumer:
        return self.consumers[parse_endpoint(uri).canonical_key]


class RecordingProducer:
    """Records sends; raises *fail_with* instead when set."""

    def __init__(self, endpoint: EndpointAddress, fail_with: Exception | None = None) -> None:
        self.endpoint = endpoint
        self.fail_with = fail_with
        self.sent: list[Any] = []
        self.attempts = 0

    async def send(self, payload: Any) -> None:
        self.attempts += 1
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(payload)


class StubSink(Component):
    """Producer-only component recording every producer it creates."""

    def __init__(self, fail_with: Exception | None = None) -> None:
        self.fail_with = fail_with
        self.producers: dict[str, RecordingProducer] = {}
        self.created = 0

    def create_producer(self, endpoint: EndpointAddress, context: ComponentContext) -> RecordingProducer:
        self.created += 1
        producer = RecordingProducer(endpoint, self.fail_with)
        self.producers[endpoint.canonical_key] = producer
        return producer

    def producer_for(self, uri: str) -> RecordingProducer:
        return self.producers[parse_endpoint(uri).canonical_key]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def source() -> StubSource:
    return StubSource()


@pytest.fixture
def sink() -> StubSink:
    return StubSink()


@pytest.fixture
def failing_sink() -> StubSink:
    return StubSink(fail_with=RuntimeError("sink exploded"))


@pytest.fixture
def context() -> ComponentContext:
    return ComponentContext()


@pytest.fixture
def make_engine(
    source: StubSource, sink: StubSink, context: ComponentContext
) -> Callable[..., RouteEngine]:
    """Factory fixture: an engine with ``source`` and ``sink`` schemes registered."""

    def _factory(routes: list[Any], **extra: Any) -> RouteEngine:
        options = {k: extra.pop(k) for k in ("mailbox_size", "max_in_flight") if k in extra}
        components = {"source": source, "sink": sink, **extra}
        return RouteEngine(components, routes, context, **options)

    return _factory


@pytest.fixture
def settle() -> Callable[[RouteEngine], Awaitable[None]]:
    """Let scheduled tasks run, then wait for every mailbox to drain."""

    async def _settle(engine: RouteEngine) -> None:
        for _ in range(3):
            await asyncio.sleep(0)
        await engine.drain()

    return _settle
