"""
Per-relay connection state owned by [RelayPool][nostrkit.core.pool.RelayPool].

A [RelayConnection][nostrkit.core.connection.RelayConnection] holds the
WebSocket of one relay, its lifecycle state, an outbound queue drained by a
writer task, and at most one keepalive task. It never dispatches inbound
messages itself; the pool's reader task does that.

Lifecycle:

```text
UNCONNECTED -> CONNECTING -> OPEN -> CLOSING -> CLOSED
                    |          |
                    +----------+------> CLOSED
```

Sends are non-blocking: [send()][nostrkit.core.connection.RelayConnection.send]
enqueues the frame and returns. Frames leave in the order they were enqueued.
A send on a connection that is not ``OPEN`` raises
[TransportUnavailableError][nostrkit.exceptions.TransportUnavailableError].
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Final

import aiohttp

from nostrkit.exceptions import TransportUnavailableError
from nostrkit.models.constants import NORMAL_CLOSURE, ConnectionState
from nostrkit.models.message import ping_message


if TYPE_CHECKING:
    from nostrkit.utils.transport import WebSocketLike

    from .logger import Logger


_TRANSITIONS: Final[dict[ConnectionState, frozenset[ConnectionState]]] = {
    ConnectionState.UNCONNECTED: frozenset({ConnectionState.CONNECTING, ConnectionState.CLOSED}),
    ConnectionState.CONNECTING: frozenset({ConnectionState.OPEN, ConnectionState.CLOSED}),
    ConnectionState.OPEN: frozenset({ConnectionState.CLOSING, ConnectionState.CLOSED}),
    ConnectionState.CLOSING: frozenset({ConnectionState.CLOSED}),
    ConnectionState.CLOSED: frozenset(),
}

_CLOSE: Final = object()


class RelayConnection:
    """One relay's WebSocket, outbound queue and keepalive handle.

    Args:
        url: Validated relay URL.
        logger: Pool logger; the connection binds its URL onto it.
    """

    def __init__(self, url: str, logger: Logger) -> None:
        self.url = url
        self._state = ConnectionState.UNCONNECTED
        self._logger = logger.bind(relay=url)
        self._ws: WebSocketLike | None = None
        self._settled = asyncio.Event()
        self._outbox: asyncio.Queue[object] | None = None
        self._writer: asyncio.Task[None] | None = None
        self._keepalive: asyncio.Task[None] | None = None
        self.task: asyncio.Task[None] | None = None

    def __repr__(self) -> str:
        return f"RelayConnection(url={self.url}, state={self._state})"

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is ConnectionState.OPEN

    @property
    def ws(self) -> WebSocketLike | None:
        return self._ws

    @property
    def has_keepalive(self) -> bool:
        """Whether a keepalive task is currently scheduled."""
        return self._keepalive is not None and not self._keepalive.done()

    def _transition(self, new_state: ConnectionState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise RuntimeError(f"invalid transition {self._state} -> {new_state} for {self.url}")
        self._logger.debug("state_changed", old=self._state, new=new_state)
        self._state = new_state

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def connecting(self) -> None:
        self._transition(ConnectionState.CONNECTING)

    def opened(self, ws: WebSocketLike) -> None:
        """Attach the open WebSocket and start the writer task."""
        self._transition(ConnectionState.OPEN)
        self._ws = ws
        self._outbox = asyncio.Queue()
        self._writer = asyncio.create_task(self._drain(ws, self._outbox), name=f"writer:{self.url}")
        self._settled.set()

    async def wait_settled(self) -> None:
        """Wait until the handshake has finished, either ``OPEN`` or ``CLOSED``."""
        await self._settled.wait()

    def begin_close(self) -> bool:
        """Queue a normal-closure close frame behind any pending sends.

        Returns:
            True if the connection was ``OPEN`` and is now ``CLOSING``.
        """
        if self._state is not ConnectionState.OPEN:
            return False
        self._transition(ConnectionState.CLOSING)
        self._cancel_keepalive()
        if self._outbox is not None:
            self._outbox.put_nowait(_CLOSE)
        return True

    def mark_closed(self) -> None:
        """Move to ``CLOSED`` and cancel the writer and keepalive tasks."""
        if self._state is ConnectionState.CLOSED:
            return
        self._transition(ConnectionState.CLOSED)
        self._settled.set()
        self._cancel_keepalive()
        if self._writer is not None and not self._writer.done():
            self._writer.cancel()
        self._discard_pending()

    async def wait_writer(self, timeout: float) -> None:  # noqa: ASYNC109
        """Give the writer up to *timeout* seconds to finish a pending close."""
        if self._writer is None or self._writer.done():
            return
        try:
            await asyncio.wait_for(asyncio.shield(self._writer), timeout=timeout)
        except TimeoutError:
            self._logger.warning("close_timeout", timeout=timeout)
            self._writer.cancel()

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    def send(self, payload: str) -> None:
        """Enqueue a text frame.

        Raises:
            TransportUnavailableError: If the connection is not ``OPEN``.
        """
        if self._state is not ConnectionState.OPEN or self._outbox is None:
            raise TransportUnavailableError(f"{self.url} is {self._state}")
        self._outbox.put_nowait(payload)

    async def flush(self) -> None:
        """Wait until every enqueued frame has been handed to the transport."""
        if self._outbox is not None and self._writer is not None and not self._writer.done():
            await self._outbox.join()

    async def _drain(self, ws: WebSocketLike, outbox: asyncio.Queue[object]) -> None:
        while True:
            item = await outbox.get()
            try:
                if item is _CLOSE:
                    await ws.close(code=NORMAL_CLOSURE, message=b"Normal Closure")
                    return
                await ws.send_str(str(item))
            except (aiohttp.ClientError, ConnectionError, RuntimeError, ValueError) as e:
                self._logger.warning("send_failed", error=str(e))
            finally:
                outbox.task_done()

    def _discard_pending(self) -> None:
        if self._outbox is None:
            return
        while True:
            try:
                self._outbox.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._outbox.task_done()

    # -------------------------------------------------------------------------
    # Keepalive
    # -------------------------------------------------------------------------

    def start_keepalive(self, interval: float) -> bool:
        """Schedule a ``["PING"]`` every *interval* seconds while ``OPEN``.

        Returns:
            False if a keepalive is already scheduled or the connection is
            neither ``CONNECTING`` nor ``OPEN``.
        """
        if self.has_keepalive:
            return False
        if self._state not in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            return False
        self._keepalive = asyncio.create_task(self._ping_loop(interval), name=f"keepalive:{self.url}")
        return True

    async def _ping_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            if self._state is not ConnectionState.OPEN:
                self._logger.debug("keepalive_stopped", state=self._state)
                return
            self.send(ping_message())

    def _cancel_keepalive(self) -> None:
        if self._keepalive is not None:
            if not self._keepalive.done():
                self._keepalive.cancel()
            self._keepalive = None
