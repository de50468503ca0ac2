"""Shared validation helpers for frozen dataclass models.

Private module, not part of the public API. Used by ``__post_init__`` and
``from_dict`` in sibling model modules to enforce runtime type constraints
on data that usually arrives from untrusted relays.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any


_HEX_RE = re.compile(r"[0-9a-fA-F]*")


def validate_instance(value: Any, expected: type, name: str) -> None:
    """Raise ``TypeError`` if *value* is not an instance of *expected*."""
    if not isinstance(value, expected):
        article = "an" if expected.__name__[0] in "AEIOUaeiou" else "a"
        raise TypeError(f"{name} must be {article} {expected.__name__}, got {type(value).__name__}")


def validate_int(value: Any, name: str) -> None:
    """Raise if *value* is not a non-negative ``int`` (``bool`` excluded)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")


def is_hex(value: str) -> bool:
    """Return True if *value* is an even-length hex string (either case)."""
    return len(value) % 2 == 0 and _HEX_RE.fullmatch(value) is not None


def normalize_tags(value: Any, name: str = "tags") -> tuple[tuple[str, ...], ...]:
    """Convert a sequence of string sequences into nested tuples.

    Order is preserved verbatim at both levels; nothing is sorted or
    deduplicated.

    Raises:
        TypeError: If *value* is not a sequence of sequences of ``str``.
    """
    if isinstance(value, str | bytes) or not isinstance(value, Sequence):
        raise TypeError(f"{name} must be a sequence of string sequences")
    tags: list[tuple[str, ...]] = []
    for tag in value:
        if isinstance(tag, str | bytes) or not isinstance(tag, Sequence):
            raise TypeError(f"{name} entries must be sequences of str")
        for item in tag:
            if not isinstance(item, str):
                raise TypeError(f"{name} values must be str, got {type(item).__name__}")
        tags.append(tuple(tag))
    return tuple(tags)
