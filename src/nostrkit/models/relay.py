"""
Relay URL validation.

A relay is addressed by a WebSocket URL: ``wss://`` (TLS) or ``ws://``
(plain, for local development or overlay networks). The URL string itself
is the relay's identity inside a
[RelayPool][nostrkit.core.pool.RelayPool]; it is validated with RFC 3986
but otherwise kept exactly as the caller wrote it (minus surrounding
whitespace) so that later calls naming the same string find the same
connection.
"""

from __future__ import annotations

from rfc3986 import uri_reference
from rfc3986.exceptions import UnpermittedComponentError, ValidationError
from rfc3986.validators import Validator

from .constants import WEBSOCKET_SCHEMES


_VALIDATOR = (
    Validator()
    .require_presence_of("scheme", "host")
    .allow_schemes(*sorted(WEBSOCKET_SCHEMES))
    .check_validity_of("scheme", "host", "port", "path")
)


def validate_relay_url(url: str) -> str:
    """Validate a relay URL and return it stripped of surrounding whitespace.

    Args:
        url: Candidate URL, e.g. ``"wss://relay.damus.io"``.

    Returns:
        The stripped URL.

    Raises:
        ValueError: If the URL is not a string, contains null bytes, uses a
            scheme other than ``ws``/``wss``, or has no host.
    """
    if not isinstance(url, str):
        raise ValueError(f"Relay URL must be a str, got {type(url).__name__}")
    if "\x00" in url:
        raise ValueError("Relay URL contains null bytes")

    stripped = url.strip()
    uri = uri_reference(stripped)
    try:
        _VALIDATOR.validate(uri)
    except UnpermittedComponentError:
        raise ValueError(f"Invalid scheme in {stripped!r}: must be ws or wss") from None
    except ValidationError as e:
        raise ValueError(f"Invalid relay URL {stripped!r}: {e}") from None

    if uri.scheme is None or uri.scheme.lower() not in WEBSOCKET_SCHEMES:
        raise ValueError(f"Invalid scheme in {stripped!r}: must be ws or wss")
    if not uri.host:
        raise ValueError(f"Relay URL {stripped!r} has no host")
    return stripped


def is_relay_url(url: str) -> bool:
    """Return True if *url* is a syntactically valid ``ws``/``wss`` URL."""
    try:
        validate_relay_url(url)
    except ValueError:
        return False
    return True
