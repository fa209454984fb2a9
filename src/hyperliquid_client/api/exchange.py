"""Signed trading actions against ``/exchange``."""

import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..auth import AuthenticationGate
from ..constants import EXCHANGE_ENDPOINT, EXCHANGE_WEIGHT
from ..errors import HyperliquidAPIError
from ..network.http_transport import HttpTransport
from .signing import float_to_wire, get_timestamp_ms, sign_l1_action
from .symbol_conversion import SymbolConversion

logger = logging.getLogger(__name__)


class ExchangeAPI:
    """Privileged operations. Only reachable through the authentication gate."""

    def __init__(
        self,
        transport: HttpTransport,
        gate: AuthenticationGate,
        symbol_conversion: SymbolConversion,
        ensure_ready: Callable[[], Awaitable[None]],
        is_mainnet: bool = True,
        vault_address: Optional[str] = None,
    ):
        self.transport = transport
        self.gate = gate
        self.symbol_conversion = symbol_conversion
        self.is_mainnet = is_mainnet
        self.vault_address = vault_address
        self._ensure_ready = ensure_ready

    async def post_action(
        self,
        action: Dict[str, Any],
        vault_address: Optional[str] = None,
        weight: int = EXCHANGE_WEIGHT,
    ) -> Dict[str, Any]:
        """Sign and submit an L1 action.

        Raises:
            HyperliquidAPIError: The exchange answered with ``status: err``
        """
        await self._ensure_ready()
        vault = vault_address or self.vault_address
        nonce = get_timestamp_ms()
        signature = sign_l1_action(self.gate.account, action, vault, nonce, self.is_mainnet)
        payload = {
            "action": action,
            "nonce": nonce,
            "signature": signature,
            "vaultAddress": vault,
        }
        response = await self.transport.send(EXCHANGE_ENDPOINT, payload, weight=weight)
        if isinstance(response, dict) and response.get("status") == "err":
            logger.warning("Exchange rejected %s: %s", action.get("type"), response.get("response"))
            raise HyperliquidAPIError(
                str(response.get("response")),
                code="EXCHANGE_ERROR",
                status_code=200,
                response_body=json.dumps(response),
            )
        return response

    async def place_order(
        self,
        symbol: str,
        is_buy: bool,
        size: float,
        limit_price: float,
        reduce_only: bool = False,
        tif: str = "Gtc",
        cloid: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Place a single limit order."""
        return await self.bulk_orders([
            {
                "symbol": symbol,
                "is_buy": is_buy,
                "size": size,
                "limit_price": limit_price,
                "reduce_only": reduce_only,
                "tif": tif,
                "cloid": cloid,
            }
        ])

    async def bulk_orders(self, orders: List[Dict[str, Any]], grouping: str = "na") -> Dict[str, Any]:
        await self._ensure_ready()
        wires = [self._order_wire(order) for order in orders]
        action = {"type": "order", "orders": wires, "grouping": grouping}
        # Batched actions weigh 1 + floor(batch / 40).
        return await self.post_action(action, weight=EXCHANGE_WEIGHT + len(wires) // 40)

    async def cancel(self, symbol: str, oid: int) -> Dict[str, Any]:
        await self._ensure_ready()
        action = {
            "type": "cancel",
            "cancels": [{"a": self._asset(symbol), "o": oid}],
        }
        return await self.post_action(action)

    async def bulk_cancel(self, cancels: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Cancel many orders; each entry has ``symbol`` and ``oid``."""
        await self._ensure_ready()
        action = {
            "type": "cancel",
            "cancels": [
                {"a": self._asset(c["symbol"]), "o": c["oid"]}
                for c in cancels
            ],
        }
        return await self.post_action(action, weight=EXCHANGE_WEIGHT + len(cancels) // 40)

    async def update_leverage(self, symbol: str, leverage: int, is_cross: bool = True) -> Dict[str, Any]:
        await self._ensure_ready()
        action = {
            "type": "updateLeverage",
            "asset": self._asset(symbol),
            "isCross": is_cross,
            "leverage": leverage,
        }
        return await self.post_action(action)

    def _asset(self, symbol: str) -> int:
        try:
            return self.symbol_conversion.asset_index(symbol)
        except KeyError:
            raise HyperliquidAPIError(f"Unknown symbol: {symbol}", code="UNKNOWN_SYMBOL") from None

    def _order_wire(self, order: Dict[str, Any]) -> Dict[str, Any]:
        try:
            price = float_to_wire(order["limit_price"])
            size = float_to_wire(order["size"])
        except ValueError as e:
            raise HyperliquidAPIError(str(e), code="INVALID_ORDER") from e
        wire = {
            "a": self._asset(order["symbol"]),
            "b": order["is_buy"],
            "p": price,
            "s": size,
            "r": order.get("reduce_only", False),
            "t": {"limit": {"tif": order.get("tif", "Gtc")}},
        }
        if order.get("cloid"):
            wire["c"] = order["cloid"]
        return wire
