"""WebSocket transport for relay connections, built on aiohttp.

The relay pool never talks to aiohttp directly; it calls a *connector*, an
async callable that takes a relay URL and returns an open WebSocket object
satisfying [WebSocketLike][nostrkit.utils.transport.WebSocketLike]. The
default connector is [AiohttpConnector][nostrkit.utils.transport.AiohttpConnector];
tests inject in-memory doubles through the same seam.

Connection failures of every flavour (DNS, refused, TLS, timeout, HTTP
upgrade rejected) are normalized to
[ConnectivityError][nostrkit.exceptions.ConnectivityError].

Warning:
    ``allow_insecure=True`` creates an ``ssl.SSLContext`` with
    ``CERT_NONE`` and ``check_hostname=False``, disabling all certificate
    verification. Only use it for relays known to run self-signed
    certificates.

Examples:
    ```python
    connector = AiohttpConnector(connect_timeout=5.0)
    ws = await connector("wss://relay.damus.io")
    await ws.send_str('["REQ","sub",{"limit":1}]')
    await connector.close()
    ```
"""

from __future__ import annotations

import asyncio
import logging
import ssl
from collections.abc import Awaitable, Callable
from typing import Protocol

import aiohttp

from nostrkit.exceptions import ConnectivityError


DEFAULT_CONNECT_TIMEOUT: float = 10.0
DEFAULT_MAX_MESSAGE_SIZE: int = 4 * 1024 * 1024


logger = logging.getLogger(__name__)


class WebSocketLike(Protocol):
    """The subset of ``aiohttp.ClientWebSocketResponse`` the pool relies on."""

    @property
    def closed(self) -> bool: ...

    @property
    def close_code(self) -> int | None: ...

    async def send_str(self, data: str) -> None: ...

    async def receive(self) -> aiohttp.WSMessage: ...

    async def close(self, *, code: int = ..., message: bytes = ...) -> bool: ...

    def exception(self) -> BaseException | None: ...


Connector = Callable[[str], Awaitable[WebSocketLike]]


def _insecure_ssl_context() -> ssl.SSLContext:
    ssl_context = ssl.create_default_context()
    ssl_context.check_hostname = False
    ssl_context.verify_mode = ssl.CERT_NONE
    return ssl_context


class AiohttpConnector:
    """Connector that opens relay WebSockets through one shared ``aiohttp.ClientSession``.

    The session is created lazily on first use (it must be created inside a
    running event loop) and released by [close()][nostrkit.utils.transport.AiohttpConnector.close].
    A session passed in by the caller is never closed by this class.

    Args:
        connect_timeout: Seconds allowed for TCP + TLS + HTTP upgrade.
        max_message_size: Largest inbound frame accepted, in bytes.
        allow_insecure: Disable TLS certificate verification.
        session: Optional caller-owned session.
    """

    def __init__(
        self,
        *,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE,
        allow_insecure: bool = False,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._connect_timeout = connect_timeout
        self._max_message_size = max_message_size
        self._allow_insecure = allow_insecure
        self._session = session
        self._owns_session = session is None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(ssl=_insecure_ssl_context()) if self._allow_insecure else None
            self._session = aiohttp.ClientSession(connector=connector)
            self._owns_session = True
        return self._session

    async def __call__(self, url: str) -> aiohttp.ClientWebSocketResponse:
        """Open a WebSocket to *url*.

        Raises:
            ConnectivityError: On any connection failure or timeout.
            asyncio.CancelledError: If cancelled.
        """
        session = self._ensure_session()
        try:
            return await asyncio.wait_for(
                session.ws_connect(url, max_msg_size=self._max_message_size, autoping=True),
                timeout=self._connect_timeout,
            )
        except TimeoutError:
            logger.debug("ws_connect_timeout url=%s", url)
            raise ConnectivityError(f"Connection timeout: {url}") from None
        except (aiohttp.ClientError, ssl.SSLError, OSError) as e:
            logger.debug("ws_connect_failed url=%s error=%s", url, str(e))
            raise ConnectivityError(f"Connection failed: {e}") from e

    async def close(self) -> None:
        """Close the underlying session if this connector created it."""
        if self._owns_session and self._session is not None:
            if not self._session.closed:
                await self._session.close()
            self._session = None
