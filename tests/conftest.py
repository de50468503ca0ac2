"""
Pytest configuration and shared fixtures for nostrkit tests.

Provides:
- Deterministic key material (a fixed test key and its NIP-19 forms)
- Unsigned and signed sample events
- An in-memory WebSocket double and a connector that hands them out,
  injected into RelayPool through its ``connector`` argument
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp
import pytest

from nostrkit.models.event import Event
from nostrkit.models.keys import PrivateKey
from nostrkit.nips.nip01 import sign_event


# Valid secp256k1 test key (DO NOT USE IN PRODUCTION)
TEST_PRIVATE_HEX = (
    "67dea2ed018072d675f5415ecfaed7d2597555e202d85b3d65ea4e58d2d92ffa"  # pragma: allowlist secret
)
TEST_NSEC = (
    "nsec1vl029mgpspedva04g90vltkh6fvh240zqtv9k0t9af8935ke9laqsnlfe5"  # pragma: allowlist secret
)


# ============================================================================
# Logging Configuration
# ============================================================================


@pytest.fixture(scope="session", autouse=True)
def setup_logging() -> None:
    """Configure logging for tests."""
    logging.basicConfig(level=logging.DEBUG)


# ============================================================================
# Key and Event Fixtures
# ============================================================================


@pytest.fixture
def private_key() -> PrivateKey:
    return PrivateKey.from_hex(TEST_PRIVATE_HEX)


@pytest.fixture
def unsigned_event(private_key: PrivateKey) -> Event:
    return Event(
        pubkey=private_key.public_key.hex,
        created_at=1700000000,
        kind=1,
        tags=[["e", "a" * 64], ["p", "b" * 64, "wss://relay.example"], ["t", "nostr"]],
        content="hello nostr",
    )


@pytest.fixture
def signed_event(unsigned_event: Event, private_key: PrivateKey) -> Event:
    return sign_event(unsigned_event, private_key)


# ============================================================================
# WebSocket Doubles
# ============================================================================


class FakeWebSocket:
    """In-memory stand-in for ``aiohttp.ClientWebSocketResponse``.

    Inbound frames are queued with ``feed()``; outbound frames are recorded
    in ``sent``. ``drop()`` simulates a relay-initiated close and ``fail()``
    a transport error.
    """

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.close_code: int | None = None
        self.close_message: bytes | None = None
        self.closed = False
        self._error: BaseException | None = None
        self._inbox: asyncio.Queue[aiohttp.WSMessage] = asyncio.Queue()

    async def send_str(self, data: str) -> None:
        if self.closed:
            raise ConnectionResetError("socket is closed")
        self.sent.append(data)

    async def receive(self) -> aiohttp.WSMessage:
        return await self._inbox.get()

    async def close(self, *, code: int = 1000, message: bytes = b"") -> bool:
        if self.closed:
            return False
        self.closed = True
        self.close_code = code
        self.close_message = message
        self._inbox.put_nowait(aiohttp.WSMessage(aiohttp.WSMsgType.CLOSED, None, None))
        return True

    def exception(self) -> BaseException | None:
        return self._error

    def feed(self, payload: Any) -> None:
        data = payload if isinstance(payload, str) else json.dumps(payload)
        self._inbox.put_nowait(aiohttp.WSMessage(aiohttp.WSMsgType.TEXT, data, None))

    def drop(self, code: int = 1006, reason: str = "") -> None:
        self.closed = True
        self.close_code = code
        self._inbox.put_nowait(aiohttp.WSMessage(aiohttp.WSMsgType.CLOSE, code, reason))

    def fail(self, error: BaseException) -> None:
        self._error = error
        self._inbox.put_nowait(aiohttp.WSMessage(aiohttp.WSMsgType.ERROR, error, None))

    def sent_messages(self) -> list[list[Any]]:
        return [json.loads(frame) for frame in self.sent]


class FakeConnector:
    """Connector handing out a fresh ``FakeWebSocket`` per URL.

    ``hold(url)`` keeps a URL in CONNECTING until ``release(url)``;
    ``refuse(url, error)`` makes the connect attempt raise.
    """

    def __init__(self) -> None:
        self.sockets: dict[str, FakeWebSocket] = {}
        self.calls: list[str] = []
        self._failures: dict[str, BaseException] = {}
        self._gates: dict[str, asyncio.Event] = {}

    def hold(self, url: str) -> None:
        self._gates[url] = asyncio.Event()

    def release(self, url: str) -> None:
        self._gates.pop(url).set()

    def refuse(self, url: str, error: BaseException) -> None:
        self._failures[url] = error

    async def __call__(self, url: str) -> FakeWebSocket:
        self.calls.append(url)
        gate = self._gates.get(url)
        if gate is not None:
            await gate.wait()
        if url in self._failures:
            raise self._failures[url]
        ws = FakeWebSocket()
        self.sockets[url] = ws
        return ws


async def _spin(cycles: int = 20) -> None:
    for _ in range(cycles):
        await asyncio.sleep(0)


@pytest.fixture
def fake_connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def fake_ws() -> FakeWebSocket:
    return FakeWebSocket()


@pytest.fixture
def fake_ws_class() -> type[FakeWebSocket]:
    """The WebSocket double class, for tests that need a variant."""
    return FakeWebSocket


@pytest.fixture
def spin() -> Callable[..., Awaitable[None]]:
    """Let pending reader/writer tasks run for a few loop iterations."""
    return _spin
