"""Endpoint address parser.

Grammar: ``scheme ":" path [ "?" query ]``.  The query string follows the
form-encoding rules (``+`` is a space, blank values are kept) and repeated
keys aggregate into an ordered tuple.
"""

from __future__ import annotations

from urllib.parse import parse_qsl, unquote

from dromedary.errors import AddressParseError
from dromedary.models.endpoints import EndpointAddress, QueryValue


def parse_endpoint(uri: str) -> EndpointAddress:
    """Parse *uri* into an ``EndpointAddress``.

    Raises
    ------
    AddressParseError
        If *uri* has no ``:`` separator or its scheme is empty.

    Examples
    --------
    >>> parse_endpoint("email:ops?to=a@x.io&to=b@x.io").query
    {'to': ('a@x.io', 'b@x.io')}
    >>> parse_endpoint("cron:*/5 * * * *").path
    '*/5 * * * *'
    """
    if not isinstance(uri, str):
        raise AddressParseError(repr(uri), "endpoint must be a string")

    raw_scheme, sep, rest = uri.partition(":")
    if not sep:
        raise AddressParseError(uri, "missing ':' separator")

    scheme = unquote(raw_scheme)
    if not scheme:
        raise AddressParseError(uri, "empty scheme")
    if ":" in scheme:
        raise AddressParseError(uri, "scheme may not contain ':'")

    raw_path, _, raw_query = rest.partition("?")

    query: dict[str, QueryValue] = {}
    for key, value in parse_qsl(raw_query, keep_blank_values=True):
        existing = query.get(key)
        if existing is None:
            query[key] = value
        elif isinstance(existing, tuple):
            query[key] = (*existing, value)
        else:
            query[key] = (existing, value)

    return EndpointAddress(scheme=scheme, path=unquote(raw_path), query=query)


def endpoint_key(uri: str) -> str:
    """Shortcut: the canonical sharing key for *uri*."""
    return parse_endpoint(uri).canonical_key
