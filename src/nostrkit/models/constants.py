"""Shared constants for the models layer.

Defines enumerations and protocol constants used across multiple model
modules and by the relay pool. Placing them here avoids circular
dependencies between the models, nips and core layers.

See Also:
    [nostrkit.models.keys][]: Uses [Bech32Prefix][nostrkit.models.constants.Bech32Prefix]
        for NIP-19 key encoding.
    [nostrkit.models.message][]: Uses [ClientMessageType][nostrkit.models.constants.ClientMessageType]
        and [RelayMessageType][nostrkit.models.constants.RelayMessageType].
    [nostrkit.core.connection][]: Uses [ConnectionState][nostrkit.models.constants.ConnectionState].
"""

from __future__ import annotations

from enum import IntEnum, StrEnum


class Bech32Prefix(StrEnum):
    """NIP-19 human-readable prefixes for 32-byte key material.

    Attributes:
        NSEC: Private key prefix.
        NPUB: Public key prefix.
    """

    NSEC = "nsec"
    NPUB = "npub"


class ConnectionState(StrEnum):
    """Lifecycle state of a single relay connection.

    ```text
    UNCONNECTED -> CONNECTING -> OPEN -> CLOSING -> CLOSED
                        |          |                  ^
                        +----------+------------------+
    ```

    ``OPEN -> CLOSED`` happens on an abrupt transport close, and
    ``CONNECTING -> CLOSED`` on a failed or cancelled connect attempt.
    ``CLOSED`` is terminal.
    """

    UNCONNECTED = "unconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class ClientMessageType(StrEnum):
    """NIP-01 message types sent from client to relay."""

    EVENT = "EVENT"
    REQ = "REQ"
    CLOSE = "CLOSE"
    PING = "PING"


class RelayMessageType(StrEnum):
    """NIP-01 message types sent from relay to client."""

    EVENT = "EVENT"
    NOTICE = "NOTICE"
    EOSE = "EOSE"
    OK = "OK"
    CLOSED = "CLOSED"


class EventKind(IntEnum):
    """Well-known Nostr event kinds.

    Attributes:
        SET_METADATA: Kind 0 -- user profile metadata (NIP-01).
        TEXT_NOTE: Kind 1 -- short text note (NIP-01).
        CONTACTS: Kind 3 -- contact list (NIP-02).
        BOOKMARKS: Kind 10003 -- bookmark list (NIP-51).
    """

    SET_METADATA = 0
    TEXT_NOTE = 1
    CONTACTS = 3
    BOOKMARKS = 10_003


EVENT_KIND_MAX = 65_535

KEY_SIZE = 32
"""Length in bytes of private keys, x-only public keys and event ids."""

SIGNATURE_SIZE = 64
"""Length in bytes of a BIP-340 Schnorr signature."""

SERIALIZATION_VERSION = 0
"""Leading element of the NIP-01 canonical event serialization."""

WEBSOCKET_SCHEMES: frozenset[str] = frozenset({"ws", "wss"})

NORMAL_CLOSURE = 1000
"""WebSocket close code for a graceful, client-initiated close."""
