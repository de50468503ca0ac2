"""
Relay session pool built on aiohttp WebSockets.

[RelayPool][nostrkit.core.pool.RelayPool] manages N independent relay
connections, dispatches inbound relay messages to single-slot callbacks, and
exposes [publish()][nostrkit.core.pool.RelayPool.publish],
[subscribe()][nostrkit.core.pool.RelayPool.subscribe],
[unsubscribe()][nostrkit.core.pool.RelayPool.unsubscribe] and
[close()][nostrkit.core.pool.RelayPool.close], each targeting either an
explicit subset of relays or every relay currently known to the pool.

The connection map and the subscription registry are owned by the pool
instance; several pools can live in one process without sharing state.
Failures are isolated per relay: a malformed message, a send to a relay that
is not open, a transport error or a raising callback is logged and never
affects other relays.

Examples:
    ```python
    pool = RelayPool(["wss://relay.damus.io", "wss://nos.lol"])
    pool.on_event(lambda relay, sub_id, event: print(relay, event.content))
    pool.on_connected(lambda relay: pool.subscribe("feed", [Filter(kinds=[1], limit=10)], [relay]))

    async with pool:
        await asyncio.sleep(10)
    ```

See Also:
    [RelayConnection][nostrkit.core.connection.RelayConnection]: Per-relay
        state, outbound queue and keepalive task.
    [RelayPoolConfig][nostrkit.core.pool.RelayPoolConfig]: Configuration
        model for this class.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from typing import Any

import aiohttp
from pydantic import BaseModel, Field, field_validator

from nostrkit.exceptions import ConnectivityError, MalformedMessageError, TransportUnavailableError
from nostrkit.models.constants import ConnectionState
from nostrkit.models.event import Event
from nostrkit.models.filter import FilterLike
from nostrkit.models.message import (
    ClosedMessage,
    EoseMessage,
    EventMessage,
    NoticeMessage,
    OkMessage,
    close_message,
    event_message,
    parse_relay_message,
    req_message,
)
from nostrkit.models.relay import validate_relay_url
from nostrkit.nips.nip01 import verify_event
from nostrkit.utils.transport import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_MAX_MESSAGE_SIZE,
    AiohttpConnector,
    Connector,
    WebSocketLike,
)

from .connection import RelayConnection
from .logger import Logger
from .yaml import load_yaml


ConnectedCallback = Callable[[str], Any]
ClosedCallback = Callable[[str, int | None, str], Any]
ErrorCallback = Callable[[str, BaseException], Any]
EventCallback = Callable[[str, str, Event], Any]
OkCallback = Callable[[str, str, bool, str], Any]
EoseCallback = Callable[[str, str], Any]
SubscriptionClosedCallback = Callable[[str, str, str], Any]
NoticeCallback = Callable[[str, str], Any]


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------


class RelayTimeoutsConfig(BaseModel):
    """Timeout settings for relay connections (in seconds)."""

    connect: float = Field(
        default=DEFAULT_CONNECT_TIMEOUT, gt=0, description="WebSocket connect timeout"
    )
    close: float = Field(default=5.0, gt=0, description="Graceful close timeout")


class KeepaliveConfig(BaseModel):
    """Interval of the ``["PING"]`` probe started by
    [enable_ping()][nostrkit.core.pool.RelayPool.enable_ping]."""

    interval: float = Field(default=30.0, gt=0, description="Seconds between probes")


class TransportConfig(BaseModel):
    """WebSocket transport settings.

    Warning:
        ``allow_insecure`` disables TLS certificate verification for every
        relay in the pool.
    """

    max_message_size: int = Field(
        default=DEFAULT_MAX_MESSAGE_SIZE, ge=1024, description="Largest inbound frame in bytes"
    )
    allow_insecure: bool = Field(default=False, description="Skip TLS certificate verification")


class RelayPoolConfig(BaseModel):
    """Aggregate configuration for [RelayPool][nostrkit.core.pool.RelayPool].

    Unlike the pool constructor, which skips invalid URLs with a warning,
    this model rejects them so a bad config file fails at load time.

    Examples:
        ```yaml
        relays: ["wss://relay.damus.io", "wss://nos.lol"]
        verify_events: true
        timeouts: {connect: 10.0, close: 5.0}
        keepalive: {interval: 30.0}
        transport: {max_message_size: 4194304}
        ```
    """

    relays: list[str] = Field(default_factory=list, description="Relay URLs (ws/wss)")
    verify_events: bool = Field(default=True, description="Verify inbound events")
    timeouts: RelayTimeoutsConfig = Field(default_factory=RelayTimeoutsConfig)
    keepalive: KeepaliveConfig = Field(default_factory=KeepaliveConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)

    @field_validator("relays")
    @classmethod
    def validate_relays(cls, v: list[str]) -> list[str]:
        """Validate every URL and drop duplicates, keeping the first occurrence."""
        relays: list[str] = []
        for url in v:
            normalized = validate_relay_url(url)
            if normalized not in relays:
                relays.append(normalized)
        return relays


# -----------------------------------------------------------------------------
# Pool
# -----------------------------------------------------------------------------


class RelayPool:
    """Pool of relay WebSocket sessions with single-slot callbacks.

    Construction with a running event loop starts connecting every valid
    URL immediately; otherwise connections stay ``UNCONNECTED`` until
    [start()][nostrkit.core.pool.RelayPool.start] or ``async with``.

    Callbacks each hold exactly one handler; registering a new one replaces
    the previous handler. Every callback receives the relay URL first:

    * ``on_connected(relay)``
    * ``on_closed(relay, code, reason)``
    * ``on_error(relay, error)``
    * ``on_event(relay, subscription_id, event)``
    * ``on_ok(relay, event_id, accepted, message)``
    * ``on_eose(relay, subscription_id)``
    * ``on_subscription_closed(relay, subscription_id, message)``
    * ``on_notice(relay, message)``

    Args:
        relay_urls: Relay URLs to connect to. Defaults to ``config.relays``.
        verify_events: Verify inbound events before ``on_event`` fires.
            Defaults to ``config.verify_events``.
        config: Pool configuration.
        connector: Async callable opening a WebSocket for a URL. Defaults to
            an [AiohttpConnector][nostrkit.utils.transport.AiohttpConnector]
            built from ``config``.
    """

    def __init__(
        self,
        relay_urls: Iterable[str] = (),
        *,
        verify_events: bool | None = None,
        config: RelayPoolConfig | None = None,
        connector: Connector | None = None,
    ) -> None:
        self._config = config or RelayPoolConfig()
        self._verify_events = self._config.verify_events if verify_events is None else verify_events
        self._logger = Logger("relay_pool")
        self._owns_connector = connector is None
        self._connector: Connector = connector or AiohttpConnector(
            connect_timeout=self._config.timeouts.connect,
            max_message_size=self._config.transport.max_message_size,
            allow_insecure=self._config.transport.allow_insecure,
        )
        self._connections: dict[str, RelayConnection] = {}
        self._subscriptions: dict[str, set[str]] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._callbacks: dict[str, Callable[..., Any] | None] = dict.fromkeys(
            (
                "connected",
                "closed",
                "error",
                "event",
                "ok",
                "eose",
                "subscription_closed",
                "notice",
            )
        )

        for url in list(relay_urls) or self._config.relays:
            self._add(url)

        if self._loop_running():
            self._start_pending()

    @classmethod
    def from_yaml(cls, config_path: str, **kwargs: Any) -> RelayPool:
        """Create a RelayPool from a YAML configuration file.

        Raises:
            FileNotFoundError: If the configuration file does not exist.
            ConfigurationError: If the file is not valid YAML.
            pydantic.ValidationError: If the configuration is invalid.
        """
        return cls.from_dict(load_yaml(config_path), **kwargs)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any], **kwargs: Any) -> RelayPool:
        """Create a RelayPool from a configuration dictionary.

        Extra keyword arguments (``connector``, ``verify_events``) are
        forwarded to the constructor.
        """
        config = RelayPoolConfig(**config_dict)
        return cls(config=config, **kwargs)

    # -------------------------------------------------------------------------
    # Connection Lifecycle
    # -------------------------------------------------------------------------

    @staticmethod
    def _loop_running() -> bool:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return False
        return True

    def _add(self, url: str) -> RelayConnection | None:
        try:
            normalized = validate_relay_url(url)
        except ValueError as e:
            self._logger.warning("invalid_relay_url", url=url, error=str(e))
            return None
        if normalized in self._connections:
            self._logger.debug("relay_already_known", relay=normalized)
            return None
        conn = RelayConnection(normalized, self._logger)
        self._connections[normalized] = conn
        return conn

    def _start(self, conn: RelayConnection) -> None:
        conn.connecting()
        task = asyncio.create_task(self._run(conn), name=f"relay:{conn.url}")
        conn.task = task
        self._tasks.add(task)
        task.add_done_callback(self._reap)

    def _reap(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self._logger.error(
                "relay_task_failed",
                task=task.get_name(),
                error_type=type(error).__name__,
                error=str(error),
            )

    def _start_pending(self) -> None:
        for conn in list(self._connections.values()):
            if conn.state is ConnectionState.UNCONNECTED:
                self._start(conn)

    async def start(self) -> None:
        """Start connecting every relay still ``UNCONNECTED``.

        Returns immediately; use
        [wait_connected()][nostrkit.core.pool.RelayPool.wait_connected] to
        wait for the handshakes.
        """
        self._start_pending()

    def connect(self, url: str) -> bool:
        """Add one relay to the pool and start connecting to it.

        Returns:
            False if *url* is invalid or already in the pool.
        """
        conn = self._add(url)
        if conn is None:
            return False
        if self._loop_running():
            self._start(conn)
        return True

    async def wait_connected(
        self,
        relay_urls: Iterable[str] | None = None,
        timeout: float | None = None,  # noqa: ASYNC109
    ) -> set[str]:
        """Wait until the targeted relays have finished their handshake.

        Args:
            relay_urls: Relays to wait for; defaults to every relay.
            timeout: Upper bound in seconds; defaults to the connect timeout.

        Returns:
            URLs of targeted relays that are ``OPEN`` when the wait ends.
        """
        targets = self._targets(relay_urls, "wait_connected")
        timeout = self._config.timeouts.connect if timeout is None else timeout
        waiters = [
            asyncio.create_task(c.wait_settled())
            for c in targets
            if c.state is ConnectionState.CONNECTING
        ]
        if waiters:
            _, pending = await asyncio.wait(waiters, timeout=timeout)
            for waiter in pending:
                waiter.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        return {c.url for c in targets if c.is_open}

    async def _run(self, conn: RelayConnection) -> None:
        """Connect, then read and dispatch until the transport closes."""
        try:
            ws = await self._connector(conn.url)
        except ConnectivityError as e:
            self._logger.warning("relay_connect_failed", relay=conn.url, error=str(e))
            self._fire("error", conn.url, e)
            self._handle_closed(conn, None, str(e))
            return
        except asyncio.CancelledError:
            self._handle_closed(conn, None, "cancelled")
            raise

        conn.opened(ws)
        self._logger.info("relay_connected", relay=conn.url)
        self._fire("connected", conn.url)

        code: int | None = None
        reason = ""
        try:
            code, reason = await self._read(conn, ws)
            if conn.state is ConnectionState.CLOSING:
                await conn.wait_writer(self._config.timeouts.close)
        finally:
            self._handle_closed(conn, code if code is not None else ws.close_code, reason)
            if not ws.closed:
                await self._release(conn, ws)

    async def _release(self, conn: RelayConnection, ws: WebSocketLike) -> None:
        """Close a socket the read loop exited without a close handshake."""
        try:
            await asyncio.wait_for(ws.close(), timeout=self._config.timeouts.close)
        except (TimeoutError, aiohttp.ClientError, ConnectionError) as e:
            self._logger.warning("relay_release_failed", relay=conn.url, error=str(e))

    async def _read(self, conn: RelayConnection, ws: WebSocketLike) -> tuple[int | None, str]:
        while True:
            try:
                msg = await ws.receive()
            except (aiohttp.ClientError, ConnectionError) as e:
                self._logger.warning("relay_receive_failed", relay=conn.url, error=str(e))
                self._fire("error", conn.url, e)
                return None, str(e)

            if msg.type is aiohttp.WSMsgType.TEXT:
                self._handle_message(conn.url, msg.data)
            elif msg.type is aiohttp.WSMsgType.BINARY:
                self._logger.debug("binary_frame_ignored", relay=conn.url, size=len(msg.data))
            elif msg.type is aiohttp.WSMsgType.ERROR:
                error = ws.exception() or msg.data
                if not isinstance(error, BaseException):
                    error = ConnectivityError(str(error))
                self._logger.warning("relay_transport_error", relay=conn.url, error=str(error))
                self._fire("error", conn.url, error)
            elif msg.type is aiohttp.WSMsgType.CLOSE:
                return msg.data, msg.extra or ""
            elif msg.type in (aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED):
                return ws.close_code, ""

    def _handle_closed(self, conn: RelayConnection, code: int | None, reason: str) -> None:
        """Mark *conn* closed, forget it, and fire the closed callback."""
        if conn.state is ConnectionState.CLOSED:
            return
        conn.mark_closed()
        if self._connections.get(conn.url) is conn:
            del self._connections[conn.url]
            self._prune(conn.url)
        self._logger.info("relay_closed", relay=conn.url, code=code, reason=reason)
        self._fire("closed", conn.url, code, reason)

    def _prune(self, url: str) -> None:
        for sub_id, relays in list(self._subscriptions.items()):
            relays.discard(url)
            if not relays:
                del self._subscriptions[sub_id]

    # -------------------------------------------------------------------------
    # Inbound Dispatch
    # -------------------------------------------------------------------------

    def _handle_message(self, url: str, data: str) -> None:
        try:
            self._dispatch(url, data)
        except MalformedMessageError as e:
            self._logger.warning("malformed_message", relay=url, error=str(e))
        except Exception as e:  # Per-message boundary: the read loop outlives any payload
            self._logger.error("message_dropped", relay=url, error_type=type(e).__name__, error=str(e))

    def _dispatch(self, url: str, data: str) -> None:
        message = parse_relay_message(data)

        if isinstance(message, EventMessage):
            if self._verify_events and not verify_event(message.event):
                self._logger.warning(
                    "event_verification_failed",
                    relay=url,
                    subscription=message.subscription_id,
                    event_id=message.event.id,
                )
                return
            self._fire("event", url, message.subscription_id, message.event)
        elif isinstance(message, NoticeMessage):
            self._fire("notice", url, message.message)
        elif isinstance(message, EoseMessage):
            self._fire("eose", url, message.subscription_id)
        elif isinstance(message, OkMessage):
            self._fire("ok", url, message.event_id, message.accepted, message.message)
        elif isinstance(message, ClosedMessage):
            self._fire("subscription_closed", url, message.subscription_id, message.message)
        else:
            self._logger.debug("unknown_message_ignored", relay=url, type=message.type)

    def _fire(self, name: str, *args: Any) -> None:
        callback = self._callbacks[name]
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:  # Callback error boundary: never tear down the connection
            self._logger.error("callback_failed", callback=name, error=str(e))

    # -------------------------------------------------------------------------
    # Outbound Operations
    # -------------------------------------------------------------------------

    def _targets(self, relay_urls: Iterable[str] | None, operation: str) -> list[RelayConnection]:
        if not relay_urls:
            return list(self._connections.values())
        targets: list[RelayConnection] = []
        for url in relay_urls:
            conn = self._connections.get(url.strip())
            if conn is None:
                self._logger.warning(f"{operation}_unknown_relay", relay=url)
                continue
            targets.append(conn)
        return targets

    def _send(self, conn: RelayConnection, payload: str, operation: str) -> bool:
        try:
            conn.send(payload)
        except TransportUnavailableError as e:
            self._logger.warning(f"{operation}_skipped", relay=conn.url, state=conn.state, error=str(e))
            return False
        return True

    def publish(self, event: Event, relay_urls: Iterable[str] | None = None) -> set[str]:
        """Send ``["EVENT", event]`` to every targeted relay that is ``OPEN``.

        Relays that are not open are skipped with a warning; nothing is
        queued for later delivery. Acceptance arrives later through
        ``on_ok``.

        Returns:
            URLs the message was queued on.
        """
        payload = event_message(event)
        sent = {c.url for c in self._targets(relay_urls, "publish") if self._send(c, payload, "publish")}
        self._logger.debug("event_published", event_id=event.id, relays=len(sent))
        return sent

    def subscribe(
        self,
        subscription_id: str,
        filters: Iterable[FilterLike],
        relay_urls: Iterable[str] | None = None,
    ) -> set[str]:
        """Send ``["REQ", subscription_id, *filters]`` to every targeted open relay.

        Each relay the request was queued on is added to the subscription's
        relay set.

        Returns:
            URLs the request was queued on.
        """
        payload = req_message(subscription_id, filters)
        sent: set[str] = set()
        for conn in self._targets(relay_urls, "subscribe"):
            if self._send(conn, payload, "subscribe"):
                self._subscriptions.setdefault(subscription_id, set()).add(conn.url)
                sent.add(conn.url)
        self._logger.debug("subscribed", subscription=subscription_id, relays=len(sent))
        return sent

    def unsubscribe(self, subscription_id: str, relay_urls: Iterable[str] | None = None) -> set[str]:
        """Send ``["CLOSE", subscription_id]`` and forget the targeted relays.

        Targets the intersection of the subscription's relays and
        *relay_urls*. Only open relays receive the frame, but every targeted
        relay is removed from the registry; an emptied subscription is
        deleted.

        Returns:
            URLs the frame was queued on.
        """
        relays = self._subscriptions.get(subscription_id)
        if relays is None:
            self._logger.debug("unsubscribe_unknown", subscription=subscription_id)
            return set()

        targets = relays & {u.strip() for u in relay_urls} if relay_urls else set(relays)
        payload = close_message(subscription_id)
        sent: set[str] = set()
        for url in targets:
            conn = self._connections.get(url)
            if conn is not None and self._send(conn, payload, "unsubscribe"):
                sent.add(url)
            relays.discard(url)
        if not relays:
            del self._subscriptions[subscription_id]
        return sent

    def close(self, relay_urls: Iterable[str] | None = None) -> None:
        """Close and forget the targeted relays.

        Open relays get a normal-closure close frame; relays still
        connecting have their handshake cancelled. Every targeted relay is
        removed from the pool and from every subscription immediately.
        Without *relay_urls* the whole pool is closed and the subscription
        registry cleared.
        """
        targets = self._targets(relay_urls, "close")
        for conn in targets:
            if conn.state is ConnectionState.OPEN:
                conn.begin_close()
            elif conn.state is ConnectionState.CONNECTING and conn.task is not None:
                conn.task.cancel()
            elif conn.state is ConnectionState.UNCONNECTED:
                conn.mark_closed()
            if self._connections.get(conn.url) is conn:
                del self._connections[conn.url]
            self._prune(conn.url)
        if not relay_urls:
            self._subscriptions.clear()
        self._logger.debug("relays_closed", count=len(targets))

    def enable_ping(self, url: str) -> bool:
        """Start the keepalive probe for one relay.

        Sends ``["PING"]`` every ``keepalive.interval`` seconds while the
        relay is ``OPEN``; the probe stops when the relay leaves ``OPEN``.

        Returns:
            False if the relay is unknown, not connecting or open, or
            already has an active probe.
        """
        conn = self._connections.get(url.strip())
        if conn is None:
            self._logger.warning("enable_ping_unknown_relay", relay=url)
            return False
        if not conn.start_keepalive(self._config.keepalive.interval):
            self._logger.warning("enable_ping_refused", relay=url, state=conn.state, active=conn.has_keepalive)
            return False
        return True

    async def flush(self) -> None:
        """Wait until every open relay's outbound queue has drained."""
        await asyncio.gather(*(c.flush() for c in self._connections.values() if c.is_open))

    async def aclose(self) -> None:
        """Close every relay and wait for the reader tasks to finish.

        Waits at most ``timeouts.close`` seconds, then cancels stragglers
        and releases the transport session if the pool created it.
        """
        self.close()
        tasks = list(self._tasks)
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=self._config.timeouts.close)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        if self._owns_connector and isinstance(self._connector, AiohttpConnector):
            await self._connector.close()

    # -------------------------------------------------------------------------
    # Callback Registration
    # -------------------------------------------------------------------------

    def on_connected(self, callback: ConnectedCallback) -> RelayPool:
        self._callbacks["connected"] = callback
        return self

    def on_closed(self, callback: ClosedCallback) -> RelayPool:
        self._callbacks["closed"] = callback
        return self

    def on_error(self, callback: ErrorCallback) -> RelayPool:
        self._callbacks["error"] = callback
        return self

    def on_event(self, callback: EventCallback) -> RelayPool:
        self._callbacks["event"] = callback
        return self

    def on_ok(self, callback: OkCallback) -> RelayPool:
        self._callbacks["ok"] = callback
        return self

    def on_eose(self, callback: EoseCallback) -> RelayPool:
        self._callbacks["eose"] = callback
        return self

    def on_subscription_closed(self, callback: SubscriptionClosedCallback) -> RelayPool:
        self._callbacks["subscription_closed"] = callback
        return self

    def on_notice(self, callback: NoticeCallback) -> RelayPool:
        self._callbacks["notice"] = callback
        return self

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def config(self) -> RelayPoolConfig:
        """The pool configuration (read-only)."""
        return self._config

    @property
    def verify_events(self) -> bool:
        return self._verify_events

    @property
    def relay_urls(self) -> list[str]:
        """URLs of every relay currently in the pool, in insertion order."""
        return list(self._connections)

    @property
    def subscription_ids(self) -> list[str]:
        return list(self._subscriptions)

    def subscription_relays(self, subscription_id: str) -> frozenset[str]:
        """Relays a subscription is currently registered on (empty if unknown)."""
        return frozenset(self._subscriptions.get(subscription_id, ()))

    def state(self, url: str) -> ConnectionState | None:
        """Lifecycle state of *url*, or None if the pool does not hold it."""
        conn = self._connections.get(url.strip())
        return conn.state if conn is not None else None

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> RelayPool:
        """Start connecting on context entry."""
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any | None,
    ) -> None:
        """Close every relay on context exit."""
        await self.aclose()

    def __repr__(self) -> str:
        open_count = sum(1 for c in self._connections.values() if c.is_open)
        return (
            f"RelayPool(relays={len(self._connections)}, open={open_count}, "
            f"subscriptions={len(self._subscriptions)})"
        )
