"""
Immutable Nostr event (NIP-01 signed record envelope).

An [Event][nostrkit.models.event.Event] is created unsigned (``id`` and
``sig`` are ``None``), signed once by
[sign_event()][nostrkit.nips.nip01.sign_event] which returns a new
instance, and is never mutated afterwards. Inbound events are parsed fresh
from relay JSON with [from_dict()][nostrkit.models.event.Event.from_dict].

See Also:
    [nostrkit.nips.nip01][]: Canonical serialization, id computation,
        signing and verification.
    [nostrkit.models.message][]: Wire messages that carry events.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from nostrkit.exceptions import MalformedMessageError

from ._validation import normalize_tags, validate_instance, validate_int


@dataclass(frozen=True, slots=True)
class Event:
    """Immutable Nostr event.

    Tag order, and value order inside each tag, is preserved verbatim; tags
    passed as lists are stored as tuples.

    Attributes:
        pubkey: Author public key as lowercase hex.
        created_at: Unix timestamp in seconds.
        kind: Integer event kind.
        tags: Ordered tags, each an ordered tuple of strings.
        content: Arbitrary string content.
        id: Lowercase hex SHA-256 of the canonical serialization, or
            ``None`` until signed.
        sig: Lowercase hex Schnorr signature over ``id``, or ``None`` until
            signed.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If ``created_at`` or ``kind`` is negative.

    Examples:
        ```python
        event = Event(pubkey=key.public_key.hex, created_at=1700000000,
                      kind=1, tags=[["t", "nostr"]], content="hello")
        event.is_signed            # False
        signed = sign_event(event, key)
        signed.is_signed           # True
        ```
    """

    pubkey: str
    created_at: int
    kind: int
    tags: tuple[tuple[str, ...], ...] = ()
    content: str = ""
    id: str | None = None
    sig: str | None = None
    _json: str | None = field(default=None, init=False, repr=False, compare=False, hash=False)

    def __post_init__(self) -> None:
        validate_instance(self.pubkey, str, "pubkey")
        validate_int(self.created_at, "created_at")
        validate_int(self.kind, "kind")
        validate_instance(self.content, str, "content")
        object.__setattr__(self, "tags", normalize_tags(self.tags))
        if self.id is not None:
            validate_instance(self.id, str, "id")
        if self.sig is not None:
            validate_instance(self.sig, str, "sig")

    @property
    def is_signed(self) -> bool:
        """Whether both ``id`` and ``sig`` are present."""
        return self.id is not None and self.sig is not None

    def with_signature(self, event_id: str, sig: str) -> Event:
        """Return a copy with ``id`` and ``sig`` replaced."""
        return replace(self, id=event_id, sig=sig)

    def unsigned(self) -> Event:
        """Return a copy with ``id`` and ``sig`` cleared."""
        return replace(self, id=None, sig=None)

    def tag_values(self, name: str) -> list[str]:
        """Return the first value of every tag named *name*, in order."""
        return [tag[1] for tag in self.tags if len(tag) > 1 and tag[0] == name]

    def to_dict(self) -> dict[str, Any]:
        """Return the NIP-01 JSON object for this event.

        ``id`` and ``sig`` are omitted while absent.
        """
        data: dict[str, Any] = {}
        if self.id is not None:
            data["id"] = self.id
        data["pubkey"] = self.pubkey
        data["created_at"] = self.created_at
        data["kind"] = self.kind
        data["tags"] = [list(tag) for tag in self.tags]
        data["content"] = self.content
        if self.sig is not None:
            data["sig"] = self.sig
        return data

    def to_json(self) -> str:
        """Return the compact JSON encoding of [to_dict()][nostrkit.models.event.Event.to_dict]."""
        if self._json is None:
            encoded = json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)
            object.__setattr__(self, "_json", encoded)
        return self._json  # type: ignore[return-value]

    @classmethod
    def from_dict(cls, data: Any) -> Event:
        """Parse an event object received from a relay or an external signer.

        Unknown keys are ignored. ``id`` and ``sig`` may be absent.

        Raises:
            MalformedMessageError: If *data* is not a mapping or any field
                has the wrong type.
        """
        if not isinstance(data, Mapping):
            raise MalformedMessageError(f"event must be an object, got {type(data).__name__}")
        try:
            tags = data.get("tags", [])
            if not isinstance(tags, Sequence):
                raise TypeError("tags must be a list")
            return cls(
                pubkey=data["pubkey"],
                created_at=data["created_at"],
                kind=data["kind"],
                tags=tags,
                content=data.get("content", ""),
                id=data.get("id"),
                sig=data.get("sig"),
            )
        except KeyError as e:
            raise MalformedMessageError(f"event is missing field {e.args[0]!r}") from None
        except (TypeError, ValueError) as e:
            raise MalformedMessageError(f"invalid event: {e}") from None

    @classmethod
    def from_json(cls, raw: str) -> Event:
        """Parse an event from its JSON text.

        Raises:
            MalformedMessageError: If *raw* is not valid JSON or not a valid event.
        """
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise MalformedMessageError(f"invalid event JSON: {e}") from None
        return cls.from_dict(data)
