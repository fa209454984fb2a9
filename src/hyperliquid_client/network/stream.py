"""Persistent WebSocket connection with bounded automatic reconnection."""

import asyncio
import json
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import aiohttp

from ..config import ProxyConfig
from ..errors import HyperliquidNetworkError
from .heartbeat import HeartbeatManager

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """Streaming connection lifecycle."""

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    RECONNECTING = "RECONNECTING"
    FAILED = "FAILED"


StateListener = Callable[[ConnectionState, int], None]
MessageListener = Callable[[Dict[str, Any]], None]


class StreamConnection:
    """Owns one WebSocket connection to the streaming API.

    State machine::

        DISCONNECTED --connect--> CONNECTING --ok--> CONNECTED
        CONNECTING --fail--> RECONNECTING(n)
        CONNECTED --drop--> RECONNECTING(1)
        RECONNECTING(n) --ok--> CONNECTED           (counter reset)
        RECONNECTING(n) --n > max--> FAILED         (until connect())
        any --close--> DISCONNECTED

    State listeners receive ``(state, attempt)`` on every transition so that
    subscription owners can resubscribe after a reconnect.
    """

    def __init__(
        self,
        ws_url: str,
        max_reconnect_attempts: int = 5,
        initial_backoff: float = 1.0,
        max_backoff: float = 30.0,
        proxy: Optional[ProxyConfig] = None,
        heartbeat_interval: float = 50.0,
        heartbeat_timeout: float = 10.0,
        connect_timeout: float = 10.0,
    ):
        """Initialize the connection manager.

        Args:
            ws_url: WebSocket URL
            max_reconnect_attempts: Failed attempts tolerated before FAILED
            initial_backoff: Delay before the first reconnect attempt
            max_backoff: Cap on the reconnect delay
            proxy: Optional egress proxy
            heartbeat_interval: Ping interval in seconds
            heartbeat_timeout: Pong timeout in seconds
            connect_timeout: Handshake timeout in seconds
        """
        self.ws_url = ws_url
        self.max_reconnect_attempts = max_reconnect_attempts
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self.connect_timeout = connect_timeout

        self._proxy_url: Optional[str] = None
        self._proxy_auth: Optional[aiohttp.BasicAuth] = None
        if proxy is not None:
            self._proxy_url = proxy.url
            if proxy.auth is not None:
                self._proxy_auth = aiohttp.BasicAuth(proxy.auth.username, proxy.auth.password)

        self.heartbeat = HeartbeatManager(
            interval=heartbeat_interval,
            timeout=heartbeat_timeout,
            on_health_change=self._on_heartbeat_health_change,
        )

        self._state = ConnectionState.DISCONNECTED
        self._attempts = 0
        self._closing = False
        self._http_session: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._connect_task: Optional[asyncio.Task] = None

        self._state_listeners: List[StateListener] = []
        self._message_listeners: List[MessageListener] = []

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def reconnect_attempts(self) -> int:
        return self._attempts

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def add_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    def remove_state_listener(self, listener: StateListener) -> None:
        if listener in self._state_listeners:
            self._state_listeners.remove(listener)

    def add_message_listener(self, listener: MessageListener) -> None:
        self._message_listeners.append(listener)

    def remove_message_listener(self, listener: MessageListener) -> None:
        if listener in self._message_listeners:
            self._message_listeners.remove(listener)

    async def connect(self) -> None:
        """Connect, retrying with backoff until connected or FAILED.

        Concurrent callers share the in-flight attempt. Calling this from
        FAILED starts a fresh cycle with the attempt counter reset.

        Raises:
            HyperliquidNetworkError: The cycle ended in FAILED, or close()
                interrupted it
        """
        if self._state is ConnectionState.CONNECTED:
            return

        pending = self._connect_task
        if pending is not None and not pending.done() and self._state is ConnectionState.FAILED:
            # teardown of a dropped connection
            await pending

        if self._connect_task is None or self._connect_task.done():
            self._closing = False
            self._attempts = 0
            self._set_state(ConnectionState.CONNECTING)
            self._connect_task = asyncio.create_task(self._connect_cycle())

        task = self._connect_task
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if task.cancelled() and self._closing:
                raise HyperliquidNetworkError("Connection closed while connecting")
            raise

        if self._state is not ConnectionState.CONNECTED:
            raise HyperliquidNetworkError(
                f"WebSocket connection failed (state {self._state.value})"
            )

    async def close(self) -> None:
        """Close the connection and stop reconnecting."""
        self._closing = True
        task = self._connect_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except (asyncio.CancelledError, HyperliquidNetworkError):
                pass
        self._connect_task = None

        await self._teardown()
        if self._http_session and not self._http_session.closed:
            await self._http_session.close()
        self._http_session = None

        self._attempts = 0
        self._set_state(ConnectionState.DISCONNECTED)

    async def send_json(self, message: Dict[str, Any]) -> None:
        """Send a JSON message on the open connection."""
        if self._ws is None or self._ws.closed or not self.is_connected:
            raise HyperliquidNetworkError("WebSocket is not connected")
        try:
            await self._ws.send_str(json.dumps(message))
        except (aiohttp.ClientError, ConnectionError) as e:
            raise HyperliquidNetworkError(f"WebSocket send failed: {e}", cause=e) from e

    async def _connect_cycle(self) -> None:
        while True:
            if self._state is ConnectionState.RECONNECTING:
                delay = self._backoff_delay(self._attempts)
                logger.info(
                    "Attempting WS reconnect in %.2fs (attempt %d/%d)",
                    delay, self._attempts, self.max_reconnect_attempts,
                )
                await asyncio.sleep(delay)

            try:
                await self._open()
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
                self._attempts += 1
                if self._attempts > self.max_reconnect_attempts:
                    logger.error(
                        "WebSocket connection failed after %d reconnect attempts: %s",
                        self.max_reconnect_attempts, exc,
                    )
                    self._set_state(ConnectionState.FAILED)
                    raise HyperliquidNetworkError(
                        f"Max reconnect attempts ({self.max_reconnect_attempts}) reached",
                        cause=exc,
                    ) from exc
                logger.warning(f"WebSocket connection failed: {exc}")
                self._set_state(ConnectionState.RECONNECTING)
                continue

            self._attempts = 0
            self._set_state(ConnectionState.CONNECTED)
            logger.info("WebSocket connected")
            return

    async def _open(self) -> None:
        if self._http_session is None or self._http_session.closed:
            self._http_session = aiohttp.ClientSession()

        ws = await asyncio.wait_for(
            self._http_session.ws_connect(
                self.ws_url, proxy=self._proxy_url, proxy_auth=self._proxy_auth
            ),
            timeout=self.connect_timeout,
        )
        self._ws = ws
        self._reader_task = asyncio.create_task(self._read_loop(ws))
        await self.heartbeat.start(ws)

    async def _read_loop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        async for msg in ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                self._dispatch(msg.data)
            elif msg.type == aiohttp.WSMsgType.ERROR:
                logger.error(f"WebSocket error: {ws.exception()}")
                break

        if ws is self._ws:
            self._schedule_reconnect("connection closed by server")

    def _dispatch(self, raw: str) -> None:
        try:
            data = json.loads(raw)
        except ValueError:
            logger.debug("Ignoring non-JSON frame: %r", raw[:200])
            return

        if isinstance(data, dict) and data.get("channel") == "pong":
            self.heartbeat.handle_pong()
            return

        for listener in list(self._message_listeners):
            try:
                listener(data)
            except Exception:
                logger.exception("Message listener raised")

    def _on_heartbeat_health_change(self, healthy: bool) -> None:
        if not healthy:
            self._schedule_reconnect("heartbeat timeout")

    def _schedule_reconnect(self, reason: str) -> None:
        if self._closing or self._state is not ConnectionState.CONNECTED:
            return
        self._attempts = 1
        if self._attempts > self.max_reconnect_attempts:
            logger.error("WebSocket dropped (%s); reconnection is disabled", reason)
            self._set_state(ConnectionState.FAILED)
            self._connect_task = asyncio.create_task(self._teardown())
            return
        logger.warning("WebSocket dropped (%s); reconnecting", reason)
        self._set_state(ConnectionState.RECONNECTING)
        self._connect_task = asyncio.create_task(self._reconnect())

    async def _reconnect(self) -> None:
        await self._teardown()
        try:
            await self._connect_cycle()
        except HyperliquidNetworkError as e:
            logger.error(f"Failed to reconnect: {e}")

    async def _teardown(self) -> None:
        await self.heartbeat.stop()

        reader = self._reader_task
        self._reader_task = None
        if reader is not None and reader is not asyncio.current_task():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass

        ws = self._ws
        self._ws = None
        if ws is not None and not ws.closed:
            await ws.close()

    def _backoff_delay(self, attempt: int) -> float:
        delay = self.initial_backoff * (2 ** max(attempt - 1, 0))
        return min(delay, self.max_backoff)

    def _set_state(self, state: ConnectionState) -> None:
        self._state = state
        logger.debug("WebSocket state -> %s (attempt %d)", state.value, self._attempts)
        for listener in list(self._state_listeners):
            try:
                listener(state, self._attempts)
            except Exception:
                logger.exception("State listener raised")
