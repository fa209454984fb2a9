"""Stable symbol names on top of the exchange's coin names and asset ids."""

import logging
from typing import Any, Dict, Iterable, List, Optional

from ..constants import INFO_ENDPOINT, SPOT_ASSET_OFFSET, info_weight
from ..network.http_transport import HttpTransport

logger = logging.getLogger(__name__)

PERP_SUFFIX = "-PERP"
SPOT_SUFFIX = "-SPOT"


class SymbolConversion:
    """Maps ``BTC-PERP`` / ``PURR-SPOT`` to exchange names and asset ids.

    Perpetuals are named by their coin (``BTC``) and indexed by their
    position in ``meta.universe``. Spot pairs are named by their pair name
    (``PURR/USDC`` or ``@107``) and indexed at ``10000 + pair index``.
    """

    def __init__(self, transport: HttpTransport):
        self.transport = transport
        self._to_exchange: Dict[str, str] = {}
        self._from_exchange: Dict[str, str] = {}
        self._asset_ids: Dict[str, int] = {}
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Fetch perp and spot metadata and rebuild the lookup tables."""
        meta = await self.transport.send(
            INFO_ENDPOINT, {"type": "meta"}, weight=info_weight("meta")
        )
        spot_meta = await self.transport.send(
            INFO_ENDPOINT, {"type": "spotMeta"}, weight=info_weight("spotMeta")
        )
        self.load(meta, spot_meta)
        logger.info(
            "Symbol tables loaded: %d perp, %d spot",
            sum(1 for s in self._to_exchange if s.endswith(PERP_SUFFIX)),
            sum(1 for s in self._to_exchange if s.endswith(SPOT_SUFFIX)),
        )

    def load(self, meta: Dict[str, Any], spot_meta: Dict[str, Any]) -> None:
        to_exchange: Dict[str, str] = {}
        from_exchange: Dict[str, str] = {}
        asset_ids: Dict[str, int] = {}

        for index, asset in enumerate(meta.get("universe", [])):
            coin = asset["name"]
            symbol = f"{coin}{PERP_SUFFIX}"
            to_exchange[symbol] = coin
            from_exchange[coin] = symbol
            asset_ids[symbol] = index

        tokens = {token["index"]: token["name"] for token in spot_meta.get("tokens", [])}
        for pair in spot_meta.get("universe", []):
            base_index = pair["tokens"][0]
            base = tokens.get(base_index)
            if base is None:
                continue
            symbol = f"{base}{SPOT_SUFFIX}"
            if symbol in to_exchange:
                continue
            to_exchange[symbol] = pair["name"]
            from_exchange[pair["name"]] = symbol
            asset_ids[symbol] = SPOT_ASSET_OFFSET + pair["index"]

        self._to_exchange = to_exchange
        self._from_exchange = from_exchange
        self._asset_ids = asset_ids
        self._initialized = True

    def to_exchange_symbol(self, symbol: str) -> str:
        """``BTC-PERP`` -> ``BTC``. Unknown names pass through unchanged."""
        return self._to_exchange.get(symbol, symbol)

    def from_exchange_symbol(self, name: str) -> str:
        """``BTC`` -> ``BTC-PERP``. Unknown names pass through unchanged."""
        return self._from_exchange.get(name, name)

    def asset_index(self, symbol: str) -> int:
        """Asset id used in order and cancel actions.

        Raises:
            KeyError: Unknown symbol
        """
        try:
            return self._asset_ids[symbol]
        except KeyError:
            raise KeyError(f"Unknown symbol: {symbol}") from None

    def symbols(self, kind: Optional[str] = None) -> List[str]:
        if kind == "perp":
            return [s for s in self._to_exchange if s.endswith(PERP_SUFFIX)]
        if kind == "spot":
            return [s for s in self._to_exchange if s.endswith(SPOT_SUFFIX)]
        return list(self._to_exchange)

    def convert_response(self, response: Any, fields: Iterable[str] = ("coin", "symbol")) -> Any:
        """Rename exchange coin names to stable symbols throughout ``response``."""
        fields = tuple(fields)
        if isinstance(response, list):
            return [self.convert_response(item, fields) for item in response]
        if isinstance(response, dict):
            converted = {}
            for key, value in response.items():
                if key in fields and isinstance(value, str):
                    converted[key] = self.from_exchange_symbol(value)
                else:
                    converted[key] = self.convert_response(value, fields)
            return converted
        return response
