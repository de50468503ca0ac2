"""Signer abstraction: local keys and NIP-07 style external signers.

Event signing is expressed against one asynchronous interface,
[Signer][nostrkit.nips.nip07.Signer], with two variants:

* [LocalSigner][nostrkit.nips.nip07.LocalSigner] holds a
  [PrivateKey][nostrkit.models.keys.PrivateKey] and signs synchronously
  behind the async interface.
* [ExternalSigner][nostrkit.nips.nip07.ExternalSigner] delegates to a
  caller-supplied capability object shaped like the NIP-07
  ``window.nostr`` API, so private key material never reaches this
  package. Calls are bounded only by the caller-supplied timeout.

The external object must expose coroutine methods ``get_public_key()`` and
``sign_event(event_dict)``; it may expose ``nip04`` and ``nip44``
namespaces with ``encrypt(pubkey, plaintext)`` / ``decrypt(pubkey,
ciphertext)`` coroutines. nostrkit never calls the encryption methods
itself; [ExternalSigner.encrypt()][nostrkit.nips.nip07.ExternalSigner.encrypt]
and [decrypt()][nostrkit.nips.nip07.ExternalSigner.decrypt] only forward
them so callers can reach the same object through one handle.

Examples:
    ```python
    signer = LocalSigner(PrivateKey.generate())
    signed = await sign_with(signer, unsigned_event)

    signer = ExternalSigner(browser_bridge, timeout=30.0)
    signed = await sign_with(signer, unsigned_event)
    ```
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import replace
from typing import Any, Literal, Protocol, TypeVar

from nostrkit.exceptions import MalformedMessageError, SignerError
from nostrkit.models.event import Event
from nostrkit.models.keys import PrivateKey

from .nip01 import sign_event, verify_event


T = TypeVar("T")

EncryptionScheme = Literal["nip04", "nip44"]


class ExternalSignerProtocol(Protocol):
    """Shape of a NIP-07 capability object (``window.nostr``)."""

    async def get_public_key(self) -> str: ...

    async def sign_event(self, event: dict[str, Any]) -> dict[str, Any]: ...


class Signer(ABC):
    """Asynchronous event signer."""

    @abstractmethod
    async def get_public_key(self) -> str:
        """Return the signer's public key as lowercase hex."""

    @abstractmethod
    async def sign_event(self, event: Event) -> Event:
        """Return a signed copy of *event*."""


class LocalSigner(Signer):
    """Signer backed by a private key held in this process."""

    def __init__(self, private_key: PrivateKey) -> None:
        self._private_key = private_key

    @property
    def private_key(self) -> PrivateKey:
        return self._private_key

    async def get_public_key(self) -> str:
        return self._private_key.public_key.hex

    async def sign_event(self, event: Event) -> Event:
        """Sign synchronously; an empty ``pubkey`` is filled in first."""
        if not event.pubkey:
            event = replace(event, pubkey=self._private_key.public_key.hex)
        return sign_event(event, self._private_key)

    def __repr__(self) -> str:
        return f"LocalSigner({self._private_key.public_key.npub})"


class ExternalSigner(Signer):
    """Signer that delegates to a NIP-07 style capability object.

    Args:
        delegate: Object implementing
            [ExternalSignerProtocol][nostrkit.nips.nip07.ExternalSignerProtocol].
        timeout: Optional per-call timeout in seconds. ``None`` waits
            indefinitely; cancellation is otherwise up to the caller.
        verify: If True (default), events returned by the delegate must pass
            [verify_event()][nostrkit.nips.nip01.verify_event].

    Raises:
        SignerError: From any method, when the delegate fails, times out or
            returns malformed data.
    """

    def __init__(
        self,
        delegate: ExternalSignerProtocol,
        *,
        timeout: float | None = None,
        verify: bool = True,
    ) -> None:
        self._delegate = delegate
        self._timeout = timeout
        self._verify = verify

    async def _call(self, operation: str, invoke: Callable[[], Awaitable[T]]) -> T:
        try:
            return await asyncio.wait_for(invoke(), timeout=self._timeout)
        except TimeoutError:
            raise SignerError(f"external signer timed out during {operation}") from None
        except SignerError:
            raise
        except Exception as e:  # Intentionally broad: delegate is arbitrary caller code
            raise SignerError(f"external signer failed during {operation}: {e}") from e

    async def get_public_key(self) -> str:
        pubkey = await self._call("get_public_key", lambda: self._delegate.get_public_key())
        if not isinstance(pubkey, str):
            raise SignerError(f"external signer returned a {type(pubkey).__name__} public key")
        return pubkey

    async def sign_event(self, event: Event) -> Event:
        """Send the unsigned event (no ``id``/``sig``) to the delegate."""
        payload = event.unsigned().to_dict()
        result = await self._call("sign_event", lambda: self._delegate.sign_event(payload))
        try:
            signed = Event.from_dict(result)
        except MalformedMessageError as e:
            raise SignerError(f"external signer returned an invalid event: {e}") from None
        if self._verify and not verify_event(signed):
            raise SignerError("external signer returned an event that does not verify")
        return signed

    def supports(self, scheme: EncryptionScheme) -> bool:
        """Whether the delegate exposes the *scheme* encryption namespace."""
        return getattr(self._delegate, scheme, None) is not None

    def _cipher(self, scheme: EncryptionScheme) -> Any:
        namespace = getattr(self._delegate, scheme, None)
        if namespace is None:
            raise SignerError(f"external signer does not support {scheme}")
        return namespace

    async def encrypt(self, scheme: EncryptionScheme, pubkey: str, plaintext: str) -> str:
        """Forward to ``delegate.<scheme>.encrypt(pubkey, plaintext)``."""
        cipher = self._cipher(scheme)
        return await self._call(f"{scheme}.encrypt", lambda: cipher.encrypt(pubkey, plaintext))

    async def decrypt(self, scheme: EncryptionScheme, pubkey: str, ciphertext: str) -> str:
        """Forward to ``delegate.<scheme>.decrypt(pubkey, ciphertext)``."""
        cipher = self._cipher(scheme)
        return await self._call(f"{scheme}.decrypt", lambda: cipher.decrypt(pubkey, ciphertext))


async def sign_with(signer: Signer | PrivateKey, event: Event) -> Event:
    """Sign *event* with either signer variant, or directly with a private key."""
    if isinstance(signer, PrivateKey):
        signer = LocalSigner(signer)
    return await signer.sign_event(event)
