"""Pure frozen data models with zero I/O for keys, events, filters and wire messages.

The models layer is the foundation of the DAG. It depends only on
[nostrkit.exceptions][nostrkit.exceptions] and on the small crypto/encoding
libraries (``coincurve``, ``bech32``, ``rfc3986``, ``pydantic``). Every
dataclass model is ``@dataclass(frozen=True, slots=True)`` and validates in
``__post_init__`` so invalid instances never escape the constructor.

Attributes:
    PrivateKey: 32-byte secp256k1 secret with hex/nsec encodings and a
        derived [PublicKey][nostrkit.models.keys.PublicKey].
    PublicKey: 32-byte x-only public key with hex/npub encodings.
    Event: Immutable NIP-01 event; ``id``/``sig`` absent until signed.
    Filter: Structured NIP-01 subscription filter (pydantic).
    ConnectionState: Relay connection lifecycle states.
    parse_relay_message: Typed parsing of inbound relay messages.

Note:
    ``PrivateKey.sign_event`` and ``PublicKey.verify_event`` import
    [nostrkit.nips.nip01][nostrkit.nips.nip01] lazily; module-level imports
    never point upward.
"""

from .constants import (
    EVENT_KIND_MAX,
    Bech32Prefix,
    ClientMessageType,
    ConnectionState,
    EventKind,
    RelayMessageType,
)
from .event import Event
from .filter import Filter, FilterLike, serialize_filter
from .keys import (
    PrivateKey,
    PublicKey,
    derive_public_key,
    hex_to_npub,
    hex_to_nsec,
    npub_to_hex,
    nsec_to_hex,
)
from .message import (
    ClosedMessage,
    EoseMessage,
    EventMessage,
    NoticeMessage,
    OkMessage,
    RelayMessage,
    UnknownMessage,
    parse_relay_message,
)
from .relay import is_relay_url, validate_relay_url


__all__ = [
    "EVENT_KIND_MAX",
    "Bech32Prefix",
    "ClientMessageType",
    "ClosedMessage",
    "ConnectionState",
    "EoseMessage",
    "Event",
    "EventKind",
    "EventMessage",
    "Filter",
    "FilterLike",
    "NoticeMessage",
    "OkMessage",
    "PrivateKey",
    "PublicKey",
    "RelayMessage",
    "RelayMessageType",
    "UnknownMessage",
    "derive_public_key",
    "hex_to_npub",
    "hex_to_nsec",
    "is_relay_url",
    "npub_to_hex",
    "nsec_to_hex",
    "parse_relay_message",
    "serialize_filter",
    "validate_relay_url",
]
