"""Endpoint address model — the structured form of ``scheme:path?query``."""

from __future__ import annotations

from urllib.parse import quote, urlencode

from pydantic import BaseModel, ConfigDict, Field

QueryValue = str | tuple[str, ...]


class EndpointAddress(BaseModel):
    """A parsed endpoint such as ``email:ops?subject=Status``.

    Repeated query keys are kept as a tuple in first-seen order; a key that
    appears once stays a plain string.

    Examples
    --------
    >>> addr = EndpointAddress(scheme="nostr", path="default", query={"kinds": ("1", "7")})
    >>> addr.canonical_key
    'nostr:default?kinds=1,7'
    """

    model_config = ConfigDict(frozen=True)

    scheme: str = Field(min_length=1, pattern=r"^[^:]+$")
    path: str = ""
    query: dict[str, QueryValue] = Field(default_factory=dict)

    @property
    def canonical_key(self) -> str:
        """Sharing/caching key: sorted query keys, list values joined by ``,``."""
        parts = []
        for key in sorted(self.query):
            value = self.query[key]
            normalized = ",".join(value) if isinstance(value, tuple) else value
            parts.append(f"{key}={normalized}")
        return f"{self.scheme}:{self.path}?{'&'.join(parts)}"

    def get_all(self, key: str) -> list[str]:
        """Return every value for *key* as a list (empty when absent)."""
        value = self.query.get(key)
        if value is None:
            return []
        return list(value) if isinstance(value, tuple) else [value]

    def get_first(self, key: str, default: str | None = None) -> str | None:
        """Return the first value for *key*, or *default*."""
        values = self.get_all(key)
        return values[0] if values else default

    def to_uri(self) -> str:
        """Serialize back to a percent-encoded URI with sorted query keys."""
        uri = f"{quote(self.scheme, safe='')}:{quote(self.path, safe='/*,@:')}"
        pairs: list[tuple[str, str]] = []
        for key in sorted(self.query):
            pairs.extend((key, value) for value in self.get_all(key))
        if pairs:
            uri += "?" + urlencode(pairs, quote_via=quote)
        return uri

    def __str__(self) -> str:
        return self.canonical_key
