"""
Nostr key material: secp256k1 private keys and BIP-340 x-only public keys.

Keys are held as 32 raw bytes and exposed in three interchangeable forms:
raw ``bytes``, lowercase hex, and NIP-19 bech32 (``nsec1...`` for private
keys, ``npub1...`` for public keys). Every decoding path fails with a
distinct exception so callers can tell the causes apart:

* [InvalidKeyEncodingError][nostrkit.exceptions.InvalidKeyEncodingError] --
  malformed hex or bech32, or a private scalar outside the curve order.
* [InvalidPrefixError][nostrkit.exceptions.InvalidPrefixError] -- the bech32
  prefix is not the one expected (e.g. an npub passed to ``from_nsec``).
* [InvalidKeyLengthError][nostrkit.exceptions.InvalidKeyLengthError] -- the
  decoded payload is not exactly 32 bytes.

Schnorr primitives ([schnorr_sign][nostrkit.models.keys.schnorr_sign],
[schnorr_verify][nostrkit.models.keys.schnorr_verify]) live here as well so
that the NIP-01 codec and the key handles share one implementation.

Examples:
    ```python
    key = PrivateKey.generate()
    key.nsec                  # 'nsec1...'
    key.public_key.npub       # 'npub1...'
    PrivateKey.from_nsec(key.nsec) == key   # True

    sig = key.sign_message("hello")
    key.public_key.verify_signature("hello", sig)   # True
    ```

Warning:
    ``PrivateKey`` instances hold secret material for their whole lifetime.
    Their ``repr()`` only shows the public key; never log ``hex`` or ``nsec``.
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from bech32 import bech32_decode, bech32_encode, convertbits
from coincurve import PrivateKey as Secp256k1PrivateKey
from coincurve import PublicKeyXOnly

from nostrkit.exceptions import InvalidKeyEncodingError, InvalidKeyLengthError, InvalidPrefixError

from ._validation import is_hex
from .constants import KEY_SIZE, SIGNATURE_SIZE, Bech32Prefix


if TYPE_CHECKING:
    from .event import Event


SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


# ---------------------------------------------------------------------------
# Encoding helpers
# ---------------------------------------------------------------------------


def _decode_hex(value: str, name: str) -> bytes:
    if not is_hex(value):
        raise InvalidKeyEncodingError(f"{name} is not valid hex")
    return bytes.fromhex(value)


def _coerce_key_bytes(value: Any, name: str) -> bytes:
    """Return *value* as 32 raw bytes, decoding hex strings first."""
    if isinstance(value, str):
        data = _decode_hex(value, name)
    elif isinstance(value, bytes | bytearray | memoryview):
        data = bytes(value)
    else:
        raise TypeError(f"{name} must be bytes or a hex string, got {type(value).__name__}")
    if len(data) != KEY_SIZE:
        raise InvalidKeyLengthError(f"{name} must be {KEY_SIZE} bytes, got {len(data)}")
    return data


def _check_scalar(secret: bytes) -> bytes:
    if not 0 < int.from_bytes(secret, "big") < SECP256K1_ORDER:
        raise InvalidKeyEncodingError("private key is not a valid secp256k1 scalar")
    return secret


def encode_bech32(prefix: Bech32Prefix | str, data: bytes) -> str:
    """Encode 32 bytes of key material as a NIP-19 bech32 string.

    Raises:
        InvalidKeyLengthError: If *data* is not exactly 32 bytes.
    """
    if len(data) != KEY_SIZE:
        raise InvalidKeyLengthError(f"bech32 payload must be {KEY_SIZE} bytes, got {len(data)}")
    words = convertbits(data, 8, 5, True)
    return bech32_encode(str(prefix), words)


def decode_bech32(value: str, prefix: Bech32Prefix | str) -> bytes:
    """Decode a NIP-19 bech32 string, enforcing *prefix* and a 32-byte payload.

    Checks run in order: checksum and charset, then prefix, then length.

    Raises:
        InvalidKeyEncodingError: If the string is not valid bech32.
        InvalidPrefixError: If the decoded prefix differs from *prefix*.
        InvalidKeyLengthError: If the payload is not exactly 32 bytes.
    """
    if not isinstance(value, str):
        raise TypeError(f"bech32 value must be a str, got {type(value).__name__}")
    hrp, words = bech32_decode(value.strip())
    if hrp is None or words is None:
        raise InvalidKeyEncodingError("invalid bech32 string")
    if hrp != str(prefix):
        raise InvalidPrefixError(f"expected '{prefix}' prefix, got '{hrp}'")
    data = convertbits(words, 5, 8, False)
    if data is None:
        raise InvalidKeyEncodingError("invalid bech32 padding")
    if len(data) != KEY_SIZE:
        raise InvalidKeyLengthError(f"bech32 payload must be {KEY_SIZE} bytes, got {len(data)}")
    return bytes(data)


def nsec_to_hex(nsec: str) -> str:
    """Convert an ``nsec1...`` private key to lowercase hex."""
    return decode_bech32(nsec, Bech32Prefix.NSEC).hex()


def hex_to_nsec(hex_key: str) -> str:
    """Convert a 32-byte hex private key to ``nsec1...``."""
    return encode_bech32(Bech32Prefix.NSEC, _coerce_key_bytes(hex_key, "private key"))


def npub_to_hex(npub: str) -> str:
    """Convert an ``npub1...`` public key to lowercase hex."""
    return decode_bech32(npub, Bech32Prefix.NPUB).hex()


def hex_to_npub(hex_key: str) -> str:
    """Convert a 32-byte hex public key to ``npub1...``."""
    return encode_bech32(Bech32Prefix.NPUB, _coerce_key_bytes(hex_key, "public key"))


# ---------------------------------------------------------------------------
# Schnorr primitives
# ---------------------------------------------------------------------------


def derive_public_key(private_key: bytes | str) -> bytes:
    """Derive the 32-byte BIP-340 x-only public key for a private key.

    Args:
        private_key: 32 raw bytes or 64 hex characters.

    Raises:
        InvalidKeyEncodingError: If the hex is malformed or the scalar is
            zero or not below the curve order.
        InvalidKeyLengthError: If the key is not 32 bytes.
    """
    secret = _check_scalar(_coerce_key_bytes(private_key, "private key"))
    return PublicKeyXOnly.from_secret(secret).format()


def schnorr_sign(digest: bytes, private_key: bytes) -> bytes:
    """Sign a 32-byte digest with BIP-340 Schnorr.

    Fresh auxiliary randomness is drawn from ``secrets`` on every call.
    """
    aux = secrets.token_bytes(32)
    return Secp256k1PrivateKey(private_key).sign_schnorr(digest, aux)


def schnorr_verify(digest: bytes, signature: bytes, public_key: bytes) -> bool:
    """Verify a BIP-340 signature. Returns False instead of raising."""
    if len(digest) != KEY_SIZE or len(signature) != SIGNATURE_SIZE or len(public_key) != KEY_SIZE:
        return False
    try:
        return bool(PublicKeyXOnly(public_key).verify(signature, digest))
    except (ValueError, TypeError):
        return False


def _message_digest(message: str) -> bytes:
    return hashlib.sha256(message.encode("utf-8")).digest()


# ---------------------------------------------------------------------------
# Key handles
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True, repr=False)
class PublicKey:
    """Immutable x-only public key used for verification and addressing.

    Attributes:
        raw: 32 raw bytes. Accepts a hex string on construction.
        hex: Lowercase hex encoding (64 characters).
        npub: NIP-19 bech32 encoding.

    Raises:
        InvalidKeyEncodingError: If a hex string input is malformed.
        InvalidKeyLengthError: If the key is not 32 bytes.
    """

    raw: bytes
    hex: str = field(init=False, compare=False)
    npub: str = field(init=False, compare=False)

    def __post_init__(self) -> None:
        data = _coerce_key_bytes(self.raw, "public key")
        object.__setattr__(self, "raw", data)
        object.__setattr__(self, "hex", data.hex())
        object.__setattr__(self, "npub", encode_bech32(Bech32Prefix.NPUB, data))

    def __bytes__(self) -> bytes:
        return self.raw

    def __repr__(self) -> str:
        return f"PublicKey({self.npub})"

    @classmethod
    def from_hex(cls, hex_key: str) -> PublicKey:
        """Import a public key from 64 hex characters."""
        if not isinstance(hex_key, str):
            raise TypeError(f"hex key must be a str, got {type(hex_key).__name__}")
        return cls(hex_key)

    @classmethod
    def from_bytes(cls, data: bytes) -> PublicKey:
        """Import a public key from 32 raw bytes."""
        return cls(bytes(data))

    @classmethod
    def from_npub(cls, npub: str) -> PublicKey:
        """Import a public key from an ``npub1...`` string."""
        return cls(decode_bech32(npub, Bech32Prefix.NPUB))

    @classmethod
    def parse(cls, value: str) -> PublicKey:
        """Import a public key from either ``npub1...`` or hex."""
        value = value.strip()
        if value.lower().startswith(f"{Bech32Prefix.NPUB}1"):
            return cls.from_npub(value)
        return cls.from_hex(value)

    @classmethod
    def from_private_key(cls, private_key: PrivateKey | bytes | str) -> PublicKey:
        """Derive the public key of a private key handle, raw bytes or hex."""
        if isinstance(private_key, PrivateKey):
            return private_key.public_key
        return cls(derive_public_key(private_key))

    def verify_signature(self, message: str, signature: str) -> bool:
        """Verify a hex signature over the SHA-256 of a UTF-8 message."""
        try:
            sig = bytes.fromhex(signature)
        except (ValueError, TypeError):
            return False
        return schnorr_verify(_message_digest(message), sig, self.raw)

    def verify_event(self, event: Event) -> bool:
        """Verify a signed event (id consistency first, then signature).

        The event's own ``pubkey`` is authoritative; this method additionally
        requires it to be this key.
        """
        from nostrkit.nips.nip01 import verify_event

        return event.pubkey == self.hex and verify_event(event)


@dataclass(frozen=True, slots=True, repr=False)
class PrivateKey:
    """Immutable private key with its derived public key.

    Use [generate()][nostrkit.models.keys.PrivateKey.generate] for a new key,
    or import one with [from_hex()][nostrkit.models.keys.PrivateKey.from_hex],
    [from_bytes()][nostrkit.models.keys.PrivateKey.from_bytes],
    [from_nsec()][nostrkit.models.keys.PrivateKey.from_nsec] or
    [parse()][nostrkit.models.keys.PrivateKey.parse].

    Attributes:
        raw: 32 raw bytes. Accepts a hex string on construction.
        hex: Lowercase hex encoding (64 characters).
        nsec: NIP-19 bech32 encoding.
        public_key: The derived [PublicKey][nostrkit.models.keys.PublicKey].

    Raises:
        InvalidKeyEncodingError: If a hex input is malformed or the scalar
            is not a valid secp256k1 secret.
        InvalidKeyLengthError: If the key is not 32 bytes.
    """

    raw: bytes
    hex: str = field(init=False, compare=False)
    nsec: str = field(init=False, compare=False)
    public_key: PublicKey = field(init=False, compare=False)

    def __post_init__(self) -> None:
        data = _check_scalar(_coerce_key_bytes(self.raw, "private key"))
        object.__setattr__(self, "raw", data)
        object.__setattr__(self, "hex", data.hex())
        object.__setattr__(self, "nsec", encode_bech32(Bech32Prefix.NSEC, data))
        object.__setattr__(self, "public_key", PublicKey(derive_public_key(data)))

    def __repr__(self) -> str:
        return f"PrivateKey(public_key={self.public_key.npub})"

    @classmethod
    def generate(cls) -> PrivateKey:
        """Generate a new key from a cryptographically secure random source."""
        while True:
            candidate = secrets.token_bytes(KEY_SIZE)
            if 0 < int.from_bytes(candidate, "big") < SECP256K1_ORDER:
                return cls(candidate)

    @classmethod
    def from_hex(cls, hex_key: str) -> PrivateKey:
        """Import a private key from 64 hex characters."""
        if not isinstance(hex_key, str):
            raise TypeError(f"hex key must be a str, got {type(hex_key).__name__}")
        return cls(hex_key)

    @classmethod
    def from_bytes(cls, data: bytes) -> PrivateKey:
        """Import a private key from 32 raw bytes."""
        return cls(bytes(data))

    @classmethod
    def from_nsec(cls, nsec: str) -> PrivateKey:
        """Import a private key from an ``nsec1...`` string."""
        return cls(decode_bech32(nsec, Bech32Prefix.NSEC))

    @classmethod
    def parse(cls, value: str) -> PrivateKey:
        """Import a private key from either ``nsec1...`` or hex."""
        value = value.strip()
        if value.lower().startswith(f"{Bech32Prefix.NSEC}1"):
            return cls.from_nsec(value)
        return cls.from_hex(value)

    def sign_message(self, message: str) -> str:
        """Sign the SHA-256 of a UTF-8 message. Returns a hex signature."""
        return schnorr_sign(_message_digest(message), self.raw).hex()

    def sign_event(self, event: Event) -> Event:
        """Return a copy of *event* with ``id`` and ``sig`` populated."""
        from nostrkit.nips.nip01 import sign_event

        return sign_event(event, self)
