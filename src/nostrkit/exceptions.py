"""nostrkit exception hierarchy.

Provides typed exceptions for every error category so callers can tell a
bad key length from a bad encoding from a wrong bech32 prefix, and so the
relay pool can suppress per-relay failures without catching bare
``Exception``.

Exception hierarchy:

```text
NostrKitError (base -- never raised directly)
├── ConfigurationError           -- config validation, missing env keys
├── KeyMaterialError             -- also a ValueError
│   ├── InvalidKeyLengthError    -- decoded key is not 32 bytes
│   ├── InvalidKeyEncodingError  -- bad hex, bad bech32, invalid scalar
│   └── InvalidPrefixError       -- nsec/npub prefix mismatch
├── ProtocolError                -- NIP-01 wire violations
│   └── MalformedMessageError    -- unparsable relay payload (also a ValueError)
├── ConnectivityError            -- relay transport failures
│   └── TransportUnavailableError -- send attempted on a non-open connection
└── SignerError                  -- external signer failures
```

Note:
    Key material errors are raised synchronously at the point of
    construction or decoding. Protocol and connectivity errors raised inside
    [RelayPool][nostrkit.core.pool.RelayPool] are logged and suppressed per
    relay; they never terminate other relays' sessions.
"""

from __future__ import annotations


class NostrKitError(Exception):
    """Base exception for all nostrkit errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(NostrKitError):
    """Invalid or missing configuration (YAML, env vars, CLI flags)."""


# ---------------------------------------------------------------------------
# Key material
# ---------------------------------------------------------------------------


class KeyMaterialError(NostrKitError, ValueError):
    """Base for key derivation and encoding failures.

    Subclasses ``ValueError`` so that generic ``except ValueError`` handlers
    written against plain parsing code keep working.
    """


class InvalidKeyLengthError(KeyMaterialError):
    """Decoded key material is not exactly 32 bytes."""


class InvalidKeyEncodingError(KeyMaterialError):
    """Key material could not be decoded.

    Raised for malformed hex, bech32 strings with a bad checksum or charset,
    and 32-byte values that are not valid secp256k1 secret scalars.
    """


class InvalidPrefixError(KeyMaterialError):
    """A bech32 key carried the wrong human-readable prefix.

    For example an ``npub1...`` string passed where an ``nsec1...`` is
    expected.
    """


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ProtocolError(NostrKitError):
    """NIP-01 wire protocol violation."""


class MalformedMessageError(ProtocolError, ValueError):
    """An inbound relay payload could not be parsed.

    The [RelayPool][nostrkit.core.pool.RelayPool] logs and drops such
    payloads without affecting the connection they arrived on.
    """


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


class ConnectivityError(NostrKitError):
    """Base for relay transport errors."""


class TransportUnavailableError(ConnectivityError):
    """A send was attempted on a connection that is not open."""


# ---------------------------------------------------------------------------
# Signing
# ---------------------------------------------------------------------------


class SignerError(NostrKitError):
    """An external signer failed, timed out, or returned an invalid event."""
