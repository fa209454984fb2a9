"""Public read-only endpoints."""

from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..constants import INFO_ENDPOINT, info_weight
from ..network.http_transport import HttpTransport
from .symbol_conversion import SymbolConversion


class InfoAPI:
    """Queries against ``/info``. Each call waits for client bootstrap first."""

    def __init__(
        self,
        transport: HttpTransport,
        symbol_conversion: SymbolConversion,
        ensure_ready: Callable[[], Awaitable[None]],
    ):
        self.transport = transport
        self.symbol_conversion = symbol_conversion
        self._ensure_ready = ensure_ready

    async def raw(self, payload: Dict[str, Any], weight: Optional[int] = None) -> Any:
        """Send an arbitrary info request."""
        await self._ensure_ready()
        if weight is None:
            weight = info_weight(payload.get("type", ""))
        return await self.transport.send(INFO_ENDPOINT, payload, weight=weight)

    async def all_mids(self) -> Dict[str, str]:
        mids = await self.raw({"type": "allMids"})
        return {self.symbol_conversion.from_exchange_symbol(k): v for k, v in mids.items()}

    async def meta(self) -> Dict[str, Any]:
        return await self.raw({"type": "meta"})

    async def spot_meta(self) -> Dict[str, Any]:
        return await self.raw({"type": "spotMeta"})

    async def user_state(self, user: str) -> Dict[str, Any]:
        state = await self.raw({"type": "clearinghouseState", "user": user})
        return self.symbol_conversion.convert_response(state)

    async def open_orders(self, user: str) -> List[Dict[str, Any]]:
        orders = await self.raw({"type": "openOrders", "user": user})
        return self.symbol_conversion.convert_response(orders)

    async def l2_book(self, symbol: str) -> Dict[str, Any]:
        await self._ensure_ready()
        coin = self.symbol_conversion.to_exchange_symbol(symbol)
        book = await self.raw({"type": "l2Book", "coin": coin})
        return self.symbol_conversion.convert_response(book)
