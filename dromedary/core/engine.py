"""Route engine — turns route definitions into running subscriptions.

For each route the engine:

1. parses the source address and resolves a consumer-capable component;
2. attaches to the shared consumer entry for the canonical source key;
3. resolves every target to a producer, cached per canonical target key and
   shared across routes;
4. installs a per-event pipeline: filters, then processors, then fan-out of
   every resulting item to every producer.

Configuration problems (unknown scheme, missing capability, factory errors)
skip a route or target with a log line.  A malformed address raises
``AddressParseError`` from ``start_route``; ``start_all`` logs it and moves
on.  Per-event failures never leave the per-event boundary.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from typing import Any, NamedTuple

from dromedary.core.components import Component, Producer, StopFn
from dromedary.core.consumer_pool import Mailbox, SharedConsumerPool
from dromedary.core.endpoint import parse_endpoint
from dromedary.core.registry import ComponentRegistry
from dromedary.core.routes import RouteBuilder, as_definition
from dromedary.errors import AddressParseError, EventHandlingError, UnresolvedSchemeError
from dromedary.models.context import ComponentContext
from dromedary.models.payload import is_batch, is_empty
from dromedary.models.reports import DeliveryOutcome, EventReport, EventStatus
from dromedary.models.routes import RouteDefinition

logger = logging.getLogger(__name__)


class ResolvedTarget(NamedTuple):
    key: str
    producer: Producer


def _noop() -> None:
    return None


class RouteEngine:
    """Starts and stops routes against a component registry.

    Parameters
    ----------
    components:
        ``ComponentRegistry`` or plain ``scheme -> Component`` mapping.
    routes:
        Route definitions (or unfinished builders).
    context:
        Context handed to every component factory.
    mailbox_size:
        Pending-event bound per route; ``0`` is unbounded.
    max_in_flight:
        Concurrent handler invocations per route.

    Usage
    -----
    >>> engine = RouteEngine(registry, routes, context)
    >>> stop = engine.start_all()
    >>> ...
    >>> stop()
    """

    def __init__(
        self,
        components: ComponentRegistry | Mapping[str, Component],
        routes: Iterable[RouteDefinition | RouteBuilder],
        context: ComponentContext | None = None,
        *,
        mailbox_size: int = 1000,
        max_in_flight: int = 16,
    ) -> None:
        if isinstance(components, ComponentRegistry):
            self._registry = components
        else:
            self._registry = ComponentRegistry(components)
        self._routes = tuple(as_definition(route) for route in routes)
        self._context = context or ComponentContext()
        self._mailbox_size = mailbox_size
        self._max_in_flight = max_in_flight
        self._pool = SharedConsumerPool()
        self._producers: dict[str, Producer] = {}
        self._mailboxes: list[Mailbox] = []
        self._closing: list[Mailbox] = []
        self._stats: dict[str, Counter[str]] = {}
        self._stop_all: StopFn | None = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def registry(self) -> ComponentRegistry:
        return self._registry

    @property
    def routes(self) -> tuple[RouteDefinition, ...]:
        return self._routes

    @property
    def context(self) -> ComponentContext:
        return self._context

    @property
    def pool(self) -> SharedConsumerPool:
        return self._pool

    @property
    def producers(self) -> dict[str, Producer]:
        """Copy of the producer cache keyed by canonical target address."""
        return dict(self._producers)

    @property
    def active_routes(self) -> tuple[str, ...]:
        """Labels of the routes currently attached to a source."""
        return tuple(mailbox.name for mailbox in self._mailboxes)

    def get_stats(self) -> dict[str, Any]:
        """Per-route counters plus shared consumer and producer cache state."""
        return {
            "routes": {label: dict(counter) for label, counter in self._stats.items()},
            "consumers": self._pool.get_stats(),
            "producers": sorted(self._producers),
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_all(self) -> StopFn:
        """Start every configured route and return one idempotent stop function.

        Routes whose addresses cannot be parsed are logged and skipped.
        """
        if self._stop_all is not None:
            logger.warning("start_all() called twice; returning the existing stop function")
            return self._stop_all

        stops: list[StopFn] = []
        started = 0
        for definition in self._routes:
            attached = len(self._mailboxes)
            try:
                stops.append(self.start_route(definition))
            except AddressParseError as exc:
                logger.error("Route %s skipped: %s", definition.label, exc)
                continue
            started += len(self._mailboxes) - attached

        stopped = False

        def stop_all() -> None:
            nonlocal stopped
            if stopped:
                return
            stopped = True
            failures = 0
            for stop in stops:
                try:
                    stop()
                except Exception:
                    failures += 1
                    logger.exception("Route stop failed; continuing shutdown")
            logger.info("Stopped %d route(s), %d failed", len(stops), failures)

        self._stop_all = stop_all
        logger.info("Started %d of %d route(s)", started, len(self._routes))
        return stop_all

    def start_route(self, definition: RouteDefinition | RouteBuilder) -> StopFn:
        """Start a single route and return its detach function.

        Raises
        ------
        AddressParseError
            If the source or a target address is malformed.
        """
        definition = as_definition(definition)
        label = definition.label
        source = parse_endpoint(definition.source)

        try:
            create_consumer = self._registry.require_consumer(source.scheme)
        except UnresolvedSchemeError as exc:
            logger.warning("Route %s not started: %s", label, exc)
            return _noop

        targets = self._resolve_targets(definition)

        try:
            entry = self._pool.get_or_create(
                source.canonical_key,
                lambda: create_consumer(source, self._context),
            )
        except Exception:
            logger.exception(
                "Route %s not started: consumer for %s could not be created",
                label,
                source.canonical_key,
            )
            return _noop

        mailbox = Mailbox(
            label,
            functools.partial(self._handle, definition, targets),
            maxsize=self._mailbox_size,
            max_in_flight=self._max_in_flight,
        )
        try:
            detach = entry.attach(mailbox)
        except Exception:
            logger.exception("Route %s not started: consumer %s failed to start", label, entry.key)
            return _noop

        self._mailboxes.append(mailbox)
        self._stats.setdefault(label, Counter())
        logger.info(
            "Route %s started (source %s, %d target(s))", label, entry.key, len(targets)
        )

        def stop() -> None:
            try:
                detach()
            finally:
                mailbox.close()
                self._retire(mailbox)

        return stop

    def _retire(self, mailbox: Mailbox) -> None:
        # Closed mailboxes are only kept until their running handlers finish.
        if mailbox not in self._mailboxes:
            return
        self._mailboxes.remove(mailbox)
        if mailbox.in_flight:
            self._closing.append(mailbox)

    async def drain(self) -> None:
        """Wait for every route's queued and in-flight events to finish.

        Includes handlers still running on routes that were already stopped.
        """
        closing, self._closing = self._closing, []
        await asyncio.gather(
            *(mailbox.join() for mailbox in (*self._mailboxes, *closing))
        )

    async def aclose(self) -> None:
        """Stop all routes, then let in-flight handlers finish."""
        if self._stop_all is not None:
            self._stop_all()
        await self.drain()

    # ------------------------------------------------------------------
    # Target resolution
    # ------------------------------------------------------------------

    def _resolve_targets(self, definition: RouteDefinition) -> tuple[ResolvedTarget, ...]:
        resolved: list[ResolvedTarget] = []
        for uri in definition.targets:
            endpoint = parse_endpoint(uri)
            key = endpoint.canonical_key
            producer = self._producers.get(key)
            if producer is None:
                try:
                    create_producer = self._registry.require_producer(endpoint.scheme)
                except UnresolvedSchemeError as exc:
                    logger.warning("Route %s: target %s skipped: %s", definition.label, uri, exc)
                    continue
                try:
                    producer = create_producer(endpoint, self._context)
                except Exception:
                    logger.exception(
                        "Route %s: target %s skipped, producer could not be created",
                        definition.label,
                        uri,
                    )
                    continue
                self._producers[key] = producer
            resolved.append(ResolvedTarget(key, producer))
        return tuple(resolved)

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    async def handle_event(
        self, definition: RouteDefinition | RouteBuilder, event: Any
    ) -> EventReport:
        """Run *event* through *definition* directly, bypassing the consumer.

        Producers come from (and are added to) the engine's cache.
        """
        definition = as_definition(definition)
        return await self._handle(definition, self._resolve_targets(definition), event)

    async def _handle(
        self,
        definition: RouteDefinition,
        targets: tuple[ResolvedTarget, ...],
        event: Any,
    ) -> EventReport:
        try:
            report = await self._run_pipeline(definition, targets, event)
        except Exception as exc:
            if not isinstance(exc, EventHandlingError):
                exc = EventHandlingError(definition.label, definition.source, "dispatch", exc, event)
            logger.error("%s", exc, exc_info=exc.cause)
            report = EventReport(
                route=definition.label,
                source=definition.source,
                status=EventStatus.FAILED,
                error=str(exc),
            )
        counter = self._stats.setdefault(definition.label, Counter())
        counter["received"] += 1
        counter[report.status.value] += 1
        return report

    async def _run_pipeline(
        self,
        definition: RouteDefinition,
        targets: tuple[ResolvedTarget, ...],
        event: Any,
    ) -> EventReport:
        label, source = definition.label, definition.source

        for index, predicate in enumerate(definition.filters):
            try:
                keep = predicate(event)
            except Exception as exc:
                raise EventHandlingError(label, source, f"filter[{index}]", exc, event) from exc
            if not keep:
                return EventReport(route=label, source=source, status=EventStatus.DROPPED)

        payload = event
        for index, processor in enumerate(definition.processors):
            if is_empty(payload):
                break
            try:
                payload = processor(payload)
                if inspect.isawaitable(payload):
                    payload = await payload
            except Exception as exc:
                raise EventHandlingError(label, source, f"processor[{index}]", exc, event) from exc

        if is_empty(payload):
            return EventReport(route=label, source=source, status=EventStatus.DROPPED)

        items = list(payload) if is_batch(payload) else [payload]
        outcomes: list[DeliveryOutcome] = []
        for item in items:
            outcomes.extend(await self._fan_out(definition, targets, item))

        failed = sum(1 for outcome in outcomes if not outcome.ok)
        if not failed:
            status = EventStatus.DELIVERED
        elif failed == len(outcomes):
            status = EventStatus.FAILED
        else:
            status = EventStatus.PARTIAL
        return EventReport(
            route=label, source=source, status=status, items=len(items), outcomes=outcomes
        )

    async def _fan_out(
        self,
        definition: RouteDefinition,
        targets: tuple[ResolvedTarget, ...],
        item: Any,
    ) -> list[DeliveryOutcome]:
        """Send *item* to every target concurrently and settle every outcome."""
        results = await asyncio.gather(
            *(self._send(target.producer, item) for target in targets),
            return_exceptions=True,
        )
        outcomes: list[DeliveryOutcome] = []
        for target, result in zip(targets, results):
            if isinstance(result, BaseException):
                error = EventHandlingError(
                    definition.label, definition.source, f"target {target.key}", result, item
                )
                logger.error("%s", error, exc_info=result)
                outcomes.append(DeliveryOutcome(target=target.key, ok=False, error=str(result)))
            else:
                outcomes.append(DeliveryOutcome(target=target.key, ok=True))
        return outcomes

    @staticmethod
    async def _send(producer: Producer, item: Any) -> None:
        result = producer.send(item)
        if inspect.isawaitable(result):
            await result
