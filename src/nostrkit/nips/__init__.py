"""Nostr Implementation Possibilities -- protocol-specific codec and signer logic.

The NIPs layer sits above [nostrkit.models][nostrkit.models] and below
[nostrkit.core][nostrkit.core]. It performs no I/O of its own.

Attributes:
    nip01: Canonical event serialization, id computation, Schnorr signing
        and fail-closed verification, plus arbitrary message signatures.
    nip07: [Signer][nostrkit.nips.nip07.Signer] abstraction with local-key
        and external (browser-extension style) variants.
"""

from nostrkit.nips.nip01 import (
    compute_event_id,
    serialize_event,
    sign_event,
    sign_message,
    verify_event,
    verify_message,
)
from nostrkit.nips.nip07 import ExternalSigner, ExternalSignerProtocol, LocalSigner, Signer, sign_with


__all__ = [
    "ExternalSigner",
    "ExternalSignerProtocol",
    "LocalSigner",
    "Signer",
    "compute_event_id",
    "serialize_event",
    "sign_event",
    "sign_message",
    "sign_with",
    "verify_event",
    "verify_message",
]
