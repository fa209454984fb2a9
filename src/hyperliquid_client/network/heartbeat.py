"""WebSocket heartbeat management."""

import asyncio
import json
import logging
import time
from typing import Callable, Optional, Set

logger = logging.getLogger(__name__)

PING_MESSAGE = {"method": "ping"}


class HeartbeatManager:
    """Sends application-level pings and watches for the matching pong.

    The server answers ``{"method": "ping"}`` with a message on the
    ``pong`` channel. A ping left unanswered for ``timeout`` seconds marks
    the connection unhealthy.
    """

    def __init__(
        self,
        interval: float = 50.0,
        timeout: float = 10.0,
        on_health_change: Optional[Callable[[bool], None]] = None,
    ):
        """Initialize heartbeat manager.

        Args:
            interval: Ping interval in seconds
            timeout: Pong timeout in seconds
            on_health_change: Callback when connection health changes
        """
        self.interval = interval
        self.timeout = timeout
        self.on_health_change = on_health_change

        self._ws = None
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._timeout_tasks: Set[asyncio.Task] = set()
        self._last_ping: Optional[float] = None
        self._last_pong: Optional[float] = None
        self._lock = asyncio.Lock()
        self._healthy = True

    async def start(self, ws_connection) -> None:
        """Start heartbeat loop.

        Args:
            ws_connection: aiohttp WebSocket connection
        """
        async with self._lock:
            self._ws = ws_connection
            self._healthy = True
            self._last_ping = None
            self._last_pong = None
            if self._running and self._task and not self._task.done():
                return
            self._running = True
            self._task = asyncio.create_task(self._heartbeat_loop())

    async def stop(self) -> None:
        """Stop heartbeat loop."""
        async with self._lock:
            self._running = False
            tasks = list(self._timeout_tasks)
            if self._task:
                tasks.append(self._task)
            for task in tasks:
                task.cancel()
            for task in tasks:
                try:
                    await task
                except asyncio.CancelledError:
                    pass
            self._task = None
            self._timeout_tasks.clear()
            self._ws = None

    def handle_pong(self) -> None:
        """Record a pong from the server."""
        self._last_pong = time.monotonic()
        if not self._healthy:
            self._set_healthy(True)

    def is_healthy(self) -> bool:
        return self._healthy

    async def _heartbeat_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval)

                if not self._running:
                    break

                async with self._lock:
                    if not self._ws or self._ws.closed:
                        break
                    try:
                        await self._ws.send_str(json.dumps(PING_MESSAGE))
                    except Exception as e:
                        logger.warning(f"Heartbeat ping failed: {e}")
                        self._set_healthy(False)
                        break

                    sent_at = time.monotonic()
                    self._last_ping = sent_at
                    task = asyncio.create_task(self._check_pong_timeout(sent_at))
                    self._timeout_tasks.add(task)
                    task.add_done_callback(self._timeout_tasks.discard)

            except asyncio.CancelledError:
                break

    async def _check_pong_timeout(self, sent_at: float) -> None:
        """Mark unhealthy if no pong arrived after the ping sent at ``sent_at``."""
        await asyncio.sleep(self.timeout)
        if self._running and (self._last_pong is None or self._last_pong < sent_at):
            logger.warning("No pong within %.1fs", self.timeout)
            self._set_healthy(False)

    def _set_healthy(self, healthy: bool) -> None:
        if self._healthy == healthy:
            return
        self._healthy = healthy
        if self.on_health_change:
            self.on_health_change(healthy)
