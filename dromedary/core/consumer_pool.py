"""Shared consumer pool — one live subscription per canonical source address.

Any number of routes may read from the same source.  They all attach to a
single ``SharedConsumerEntry`` which owns the underlying ``Consumer``:

* the consumer is started when the first listener attaches;
* every event is fanned out to a snapshot of the listeners registered at
  emit time, so attach/detach during an emit only affects later events;
* the consumer is stopped when the last listener detaches, and a later
  attach starts it again from scratch.

Each route listens through a ``Mailbox``: a bounded queue drained by its own
worker task.  Delivery into a mailbox never waits on the route's handler.
"""

from __future__ import annotations

import asyncio
import functools
import itertools
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from dromedary.core.components import Consumer, EventHandler, StopFn

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Mailbox
# ---------------------------------------------------------------------------


class Mailbox:
    """Per-subscriber channel between a shared entry and one route handler.

    Parameters
    ----------
    name:
        Label used in log lines (normally the route label).
    handler:
        Coroutine function invoked once per delivered event.
    maxsize:
        Maximum number of queued events; ``0`` means unbounded.  When full,
        new events are dropped for this mailbox only.
    max_in_flight:
        Maximum concurrent handler invocations.  ``1`` processes events
        strictly in delivery order.
    """

    def __init__(
        self,
        name: str,
        handler: Callable[[Any], Awaitable[Any]],
        *,
        maxsize: int = 0,
        max_in_flight: int = 16,
    ) -> None:
        if max_in_flight < 1:
            raise ValueError("max_in_flight must be at least 1")
        self.name = name
        self._handler = handler
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize)
        self._semaphore = asyncio.Semaphore(max_in_flight)
        self._worker: asyncio.Task[None] | None = None
        self._in_flight: set[asyncio.Task[None]] = set()
        self._closed = False
        self.delivered = 0
        self.dropped = 0

    def __call__(self, event: Any) -> None:
        self.deliver(event)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Events queued but not yet picked up by the worker."""
        return self._queue.qsize()

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def deliver(self, event: Any) -> bool:
        """Queue *event* for the handler.  Must be called on the event loop.

        Returns ``False`` when the mailbox is closed or full.
        """
        if self._closed:
            return False
        loop = asyncio.get_running_loop()
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Mailbox %s full (%d pending), event dropped",
                self.name,
                self._queue.qsize(),
            )
            return False
        self.delivered += 1
        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(
                self._run(), name=f"dromedary-mailbox:{self.name}"
            )
        return True

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._semaphore.acquire()
            except asyncio.CancelledError:
                self._queue.task_done()
                raise
            task = asyncio.create_task(self._invoke(event))
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

    async def _invoke(self, event: Any) -> None:
        try:
            await self._handler(event)
        except Exception:
            logger.exception("Mailbox %s: handler raised", self.name)
        finally:
            self._semaphore.release()
            self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued and in-flight event has been handled."""
        await self._queue.join()

    def close(self) -> None:
        """Stop accepting events and discard queued ones.

        Handler invocations already in flight are allowed to finish.
        """
        if self._closed:
            return
        self._closed = True
        if self._worker is not None:
            self._worker.cancel()
        discarded = 0
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()
            discarded += 1
        if discarded:
            logger.info("Mailbox %s closed, %d queued event(s) discarded", self.name, discarded)


# ---------------------------------------------------------------------------
# Shared entry
# ---------------------------------------------------------------------------


class SharedConsumerEntry:
    """Reference-counted multiplexer around a single ``Consumer``.

    ``underlying_stop`` is set exactly while at least one listener is
    attached.  An attach made from inside the consumer's own ``start``
    joins the subscription being started rather than starting another.
    """

    def __init__(self, key: str, consumer: Consumer) -> None:
        self.key = key
        self._consumer = consumer
        self._listeners: dict[int, EventHandler] = {}
        self._ids = itertools.count()
        self._underlying_stop: StopFn | None = None
        self._starting = False
        self._generation = 0
        self.start_count = 0
        self.stop_count = 0
        self.events_emitted = 0

    @property
    def consumer(self) -> Consumer:
        return self._consumer

    @property
    def listeners(self) -> tuple[EventHandler, ...]:
        return tuple(self._listeners.values())

    @property
    def is_running(self) -> bool:
        return self._underlying_stop is not None

    def attach(self, listener: EventHandler) -> StopFn:
        """Register *listener* and return an idempotent detach function."""
        token = next(self._ids)
        self._listeners[token] = listener
        if self._underlying_stop is None and not self._starting:
            try:
                self._start()
            except Exception:
                self._listeners.pop(token, None)
                raise

        detached = False

        def detach() -> None:
            nonlocal detached
            if detached:
                return
            detached = True
            self._listeners.pop(token, None)
            if not self._listeners:
                self._stop()

        return detach

    def _start(self) -> None:
        self._generation += 1
        dispatcher = functools.partial(self._emit, self._generation)
        self._starting = True
        try:
            stop = self._consumer.start(dispatcher)
        finally:
            self._starting = False
        self.start_count += 1
        self._underlying_stop = stop
        logger.debug("Started shared consumer %s", self.key)

    def _stop(self) -> None:
        stop, self._underlying_stop = self._underlying_stop, None
        if stop is None:
            return
        self._generation += 1
        self.stop_count += 1
        logger.debug("Stopping shared consumer %s", self.key)
        stop()

    def _emit(self, generation: int, event: Any) -> None:
        if generation != self._generation:
            logger.debug("Ignoring event from stopped subscription %s", self.key)
            return
        self.events_emitted += 1
        for listener in tuple(self._listeners.values()):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener on %s failed to accept event", self.key)


# ---------------------------------------------------------------------------
# Pool
# ---------------------------------------------------------------------------


class SharedConsumerPool:
    """Shared entries keyed by canonical source address."""

    def __init__(self) -> None:
        self._entries: dict[str, SharedConsumerEntry] = {}

    def get_or_create(
        self, key: str, factory: Callable[[], Consumer]
    ) -> SharedConsumerEntry:
        """Return the entry for *key*, calling *factory* only on first reference."""
        entry = self._entries.get(key)
        if entry is None:
            entry = SharedConsumerEntry(key, factory())
            self._entries[key] = entry
            logger.debug("Created shared consumer entry %s", key)
        return entry

    def get(self, key: str) -> SharedConsumerEntry | None:
        return self._entries.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        return list(self._entries)

    def get_stats(self) -> dict[str, dict[str, Any]]:
        return {
            key: {
                "listeners": len(entry.listeners),
                "running": entry.is_running,
                "starts": entry.start_count,
                "stops": entry.stop_count,
                "events": entry.events_emitted,
            }
            for key, entry in self._entries.items()
        }
