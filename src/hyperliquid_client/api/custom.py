"""Convenience operations composed from info and exchange calls."""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..auth import AuthenticationGate
from .exchange import ExchangeAPI
from .info import InfoAPI

logger = logging.getLogger(__name__)


class CustomOperations:
    """Privileged helpers. Only reachable through the authentication gate."""

    def __init__(
        self,
        exchange: ExchangeAPI,
        info: InfoAPI,
        gate: AuthenticationGate,
        ensure_ready: Callable[[], Awaitable[None]],
    ):
        self.exchange = exchange
        self.info = info
        self.gate = gate
        self._ensure_ready = ensure_ready

    async def cancel_all_orders(self, symbol: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Cancel every open order, or only those on ``symbol``.

        Returns:
            Exchange response, or None when there was nothing to cancel
        """
        orders = await self.info.open_orders(self.gate.wallet_address)
        if symbol is not None:
            orders = [o for o in orders if o.get("coin") == symbol]
        if not orders:
            logger.info("No open orders to cancel")
            return None

        logger.info("Cancelling %d open order(s)", len(orders))
        return await self.exchange.bulk_cancel(
            [{"symbol": o["coin"], "oid": o["oid"]} for o in orders]
        )

    async def get_all_assets(self) -> Dict[str, List[str]]:
        await self._ensure_ready()
        conversion = self.exchange.symbol_conversion
        return {"perp": conversion.symbols("perp"), "spot": conversion.symbols("spot")}
