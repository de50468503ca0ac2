"""NIP-01 event codec: canonical serialization, ids, signing and verification.

The event id is the lowercase hex SHA-256 of the UTF-8 encoding of the
compact JSON array:

```text
[0, <pubkey>, <created_at>, <kind>, <tags>, <content>]
```

Tags are serialized verbatim (no sorting, no deduplication). Signatures are
BIP-340 Schnorr over the 32-byte id digest with fresh auxiliary randomness
per call.

Verification fails closed and never raises: an event without ``id`` or
``sig`` is rejected, and the id is recomputed and compared **before** any
signature work, so a valid signature can never vouch for content that does
not match its stated id.

Examples:
    ```python
    key = PrivateKey.generate()
    event = Event(pubkey=key.public_key.hex, created_at=int(time.time()),
                  kind=1, tags=[], content="hello")
    signed = sign_event(event, key)
    verify_event(signed)                          # True
    verify_event(replace(signed, content="bye"))  # False
    ```
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Mapping
from typing import Any

from nostrkit.exceptions import MalformedMessageError
from nostrkit.models.constants import SERIALIZATION_VERSION
from nostrkit.models.event import Event
from nostrkit.models.keys import PrivateKey, PublicKey, schnorr_sign, schnorr_verify


logger = logging.getLogger(__name__)


def serialize_event(event: Event) -> bytes:
    """Return the canonical byte serialization used to compute the event id.

    Raises:
        MalformedMessageError: If a string field is not encodable as UTF-8
            (a lone surrogate such as ``"\\ud800"`` decoded from JSON).
    """
    payload = [
        SERIALIZATION_VERSION,
        event.pubkey,
        event.created_at,
        event.kind,
        [list(tag) for tag in event.tags],
        event.content,
    ]
    try:
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    except UnicodeEncodeError as e:
        raise MalformedMessageError(f"event is not valid UTF-8: {e.reason}") from None


def _event_digest(event: Event) -> bytes:
    return hashlib.sha256(serialize_event(event)).digest()


def compute_event_id(event: Event) -> str:
    """Return the lowercase hex SHA-256 of the canonical serialization.

    Any ``id``/``sig`` already present on *event* is ignored.
    """
    return _event_digest(event).hex()


def sign_event(event: Event, private_key: PrivateKey | bytes | str) -> Event:
    """Sign an event and return a new instance with ``id`` and ``sig`` set.

    Args:
        event: Event to sign. Existing ``id``/``sig`` are ignored and the
            input is never mutated.
        private_key: A [PrivateKey][nostrkit.models.keys.PrivateKey], raw
            bytes, or hex.

    Returns:
        The signed copy.

    Raises:
        ValueError: If ``event.pubkey`` is not the public key of
            *private_key* (the result could never verify).
        InvalidKeyLengthError: If a raw key is not 32 bytes.
        InvalidKeyEncodingError: If a hex key is malformed.
        MalformedMessageError: If the event cannot be serialized.
    """
    key = private_key if isinstance(private_key, PrivateKey) else PrivateKey(private_key)
    if event.pubkey != key.public_key.hex:
        raise ValueError("event pubkey does not match the signing key")

    digest = _event_digest(event)
    signature = schnorr_sign(digest, key.raw)
    return event.with_signature(digest.hex(), signature.hex())


def verify_event(event: Event | Mapping[str, Any]) -> bool:
    """Verify an event's id and signature.

    Accepts an [Event][nostrkit.models.event.Event] or a raw NIP-01 dict.

    Returns:
        ``True`` only if ``id`` and ``sig`` are present, the recomputed id
        equals the stated id exactly, and the signature is valid for that
        id and ``pubkey``. ``False`` in every other case, including
        malformed input.
    """
    if not isinstance(event, Event):
        try:
            event = Event.from_dict(event)
        except MalformedMessageError:
            return False

    if event.id is None or event.sig is None:
        return False

    try:
        digest = _event_digest(event)
    except MalformedMessageError:
        return False
    if digest.hex() != event.id:
        logger.debug("event_id_mismatch stated=%s", event.id[:16])
        return False

    try:
        signature = bytes.fromhex(event.sig)
        pubkey = bytes.fromhex(event.pubkey)
    except ValueError:
        return False
    return schnorr_verify(digest, signature, pubkey)


def sign_message(message: str, private_key: PrivateKey | bytes | str) -> str:
    """Sign the SHA-256 of an arbitrary UTF-8 message; returns hex.

    Independent of the event envelope; used for simple proof of possession.
    """
    key = private_key if isinstance(private_key, PrivateKey) else PrivateKey(private_key)
    return key.sign_message(message)


def verify_message(message: str, signature: str, public_key: PublicKey | bytes | str) -> bool:
    """Verify a signature produced by [sign_message()][nostrkit.nips.nip01.sign_message].

    Never raises: malformed keys or signatures yield ``False``.
    """
    if not isinstance(public_key, PublicKey):
        try:
            public_key = PublicKey(public_key)
        except (ValueError, TypeError):
            return False
    return public_key.verify_signature(message, signature)
