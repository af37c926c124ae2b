"""Fluent route construction and common event filters.

>>> route = (
...     route_from("cron:*/5 * * * *")
...     .process(status_intent)
...     .to("email:ops?subject=Status")
...     .build()
... )

Filters and processors are applied in the order they are declared; later
stages may depend on the shape produced by earlier ones.
"""

from __future__ import annotations

from typing import Any

from dromedary.models.routes import EventPredicate, PayloadTransform, RouteDefinition


class RouteBuilder:
    """Accumulates a route definition.

    State is private to the builder; ``build()`` returns an immutable copy,
    so later builder calls never alter a definition already handed out.
    """

    def __init__(self, source: str) -> None:
        self._source = source
        self._filters: list[EventPredicate] = []
        self._processors: list[PayloadTransform] = []
        self._targets: list[str] = []
        self._name: str | None = None

    def filter(self, predicate: EventPredicate) -> RouteBuilder:
        """Append an event predicate; the first ``False`` drops the event."""
        self._filters.append(predicate)
        return self

    def process(self, transform: PayloadTransform) -> RouteBuilder:
        """Append a payload transform (sync or async)."""
        self._processors.append(transform)
        return self

    def to(self, target: str) -> RouteBuilder:
        """Add a fan-out target."""
        self._targets.append(target)
        return self

    def named(self, name: str) -> RouteBuilder:
        self._name = name
        return self

    def build(self) -> RouteDefinition:
        return RouteDefinition(
            source=self._source,
            filters=tuple(self._filters),
            processors=tuple(self._processors),
            targets=tuple(self._targets),
            name=self._name,
        )

    def __repr__(self) -> str:
        return (
            f"RouteBuilder({self._source!r}, filters={len(self._filters)}, "
            f"processors={len(self._processors)}, targets={self._targets!r})"
        )


def route_from(source: str) -> RouteBuilder:
    """Start a route reading from *source*."""
    return RouteBuilder(source)


from_ = route_from


def as_definition(route: RouteDefinition | RouteBuilder) -> RouteDefinition:
    """Accept either a built definition or an unfinished builder."""
    if isinstance(route, RouteBuilder):
        return route.build()
    return route


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def _field(event: Any, name: str) -> Any:
    if isinstance(event, dict):
        return event.get(name)
    return getattr(event, name, None)


def kind(*kinds: int) -> EventPredicate:
    """Match events whose ``kind`` is one of *kinds*."""
    wanted = frozenset(kinds)

    def predicate(event: Any) -> bool:
        return _field(event, "kind") in wanted

    return predicate


def _tag_entries(event: Any) -> list[list[Any]]:
    tags = _field(event, "tags")
    if not isinstance(tags, (list, tuple)):
        return []
    return [list(entry) for entry in tags if isinstance(entry, (list, tuple)) and entry]


class TagMatcher:
    """Filters on ``[key, value, ...]`` entries in an event's ``tags``."""

    def __init__(self, key: str) -> None:
        self._key = key

    def exists(self) -> EventPredicate:
        key = self._key

        def predicate(event: Any) -> bool:
            return any(entry[0] == key for entry in _tag_entries(event))

        return predicate

    def equals(self, value: str) -> EventPredicate:
        key = self._key

        def predicate(event: Any) -> bool:
            return any(
                entry[0] == key and len(entry) > 1 and entry[1] == value
                for entry in _tag_entries(event)
            )

        return predicate


def tag(key: str) -> TagMatcher:
    return TagMatcher(key)
