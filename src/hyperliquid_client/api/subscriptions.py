"""Streaming subscriptions that survive reconnects."""

import asyncio
import json
import logging
from typing import Any, Callable, Dict, List, Set

from ..network.stream import ConnectionState, StreamConnection
from .symbol_conversion import SymbolConversion

logger = logging.getLogger(__name__)

# Subscription types whose pushes arrive on a differently named channel.
CHANNEL_NAMES = {"userEvents": "user"}

MessageCallback = Callable[[Dict[str, Any]], None]


class WebSocketSubscriptions:
    """Tracks active subscriptions and replays them on every CONNECTED.

    Subscriptions are stored with stable symbol names and translated to
    exchange names each time they are sent, so a subscription registered
    before the symbol tables load is still sent with the right coin.
    """

    def __init__(self, stream: StreamConnection, symbol_conversion: SymbolConversion):
        self.stream = stream
        self.symbol_conversion = symbol_conversion
        self._subscriptions: Dict[str, Dict[str, Any]] = {}
        self._callbacks: Dict[str, List[MessageCallback]] = {}
        self._pending: Set[asyncio.Task] = set()

        stream.add_state_listener(self._on_state_change)
        stream.add_message_listener(self._on_message)

    async def subscribe(self, subscription: Dict[str, Any], callback: MessageCallback) -> None:
        subscription = dict(subscription)
        key = self._key(subscription)
        self._subscriptions[key] = subscription
        self._callbacks.setdefault(key, []).append(callback)
        if self.stream.is_connected:
            await self._send("subscribe", subscription)

    async def unsubscribe(self, subscription: Dict[str, Any]) -> None:
        key = self._key(subscription)
        stored = self._subscriptions.pop(key, None)
        if stored is None:
            return
        self._callbacks.pop(key, None)
        if self.stream.is_connected:
            await self._send("unsubscribe", stored)

    @property
    def active(self) -> List[Dict[str, Any]]:
        return list(self._subscriptions.values())

    async def _send(self, method: str, subscription: Dict[str, Any]) -> None:
        await self.stream.send_json({"method": method, "subscription": self._to_exchange(subscription)})

    def _to_exchange(self, subscription: Dict[str, Any]) -> Dict[str, Any]:
        subscription = dict(subscription)
        if "coin" in subscription:
            subscription["coin"] = self.symbol_conversion.to_exchange_symbol(subscription["coin"])
        return subscription

    @staticmethod
    def _key(subscription: Dict[str, Any]) -> str:
        return json.dumps(subscription, sort_keys=True)

    def _on_state_change(self, state: ConnectionState, attempt: int) -> None:
        if state is ConnectionState.CONNECTED and self._subscriptions:
            task = asyncio.create_task(self._resubscribe())
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _resubscribe(self) -> None:
        for subscription in list(self._subscriptions.values()):
            try:
                await self._send("subscribe", subscription)
            except Exception as e:
                logger.warning(f"Resubscribe failed for {subscription}: {e}")
                return
        logger.info("Resubscribed %d subscription(s)", len(self._subscriptions))

    def _matches(self, subscription: Dict[str, Any], message: Dict[str, Any]) -> bool:
        """Whether a push belongs to ``subscription``: same channel, and same coin or user when both carry one."""
        channel = CHANNEL_NAMES.get(subscription.get("type"), subscription.get("type"))
        if message.get("channel") != channel:
            return False

        data = message.get("data")
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict):
            return True

        if "coin" in subscription and "coin" in data:
            return self.symbol_conversion.to_exchange_symbol(subscription["coin"]) == data["coin"]
        if "user" in subscription and "user" in data:
            return str(subscription["user"]).lower() == str(data["user"]).lower()
        return True

    def _on_message(self, message: Dict[str, Any]) -> None:
        if not isinstance(message, dict):
            return
        targets = [
            callback
            for key, subscription in list(self._subscriptions.items())
            if self._matches(subscription, message)
            for callback in list(self._callbacks.get(key, ()))
        ]
        if not targets:
            return

        converted = self.symbol_conversion.convert_response(message)
        for callback in targets:
            callback(converted)
