"""Tests for signed exchange actions and the composite operations."""

from unittest.mock import AsyncMock

import pytest

from src.hyperliquid_client.api.custom import CustomOperations
from src.hyperliquid_client.api.exchange import ExchangeAPI
from src.hyperliquid_client.api.info import InfoAPI
from src.hyperliquid_client.api.symbol_conversion import SymbolConversion
from src.hyperliquid_client.auth import AuthenticationGate
from src.hyperliquid_client.errors import HyperliquidAPIError

PRIVATE_KEY = "0x" + "01" * 32
OK = {"status": "ok", "response": {"type": "cancel", "data": {"statuses": ["success"]}}}


@pytest.fixture
def symbols(meta, spot_meta) -> SymbolConversion:
    conversion = SymbolConversion(transport=None)
    conversion.load(meta, spot_meta)
    return conversion


@pytest.fixture
def transport():
    transport = AsyncMock()
    transport.send.return_value = OK
    return transport


@pytest.fixture
def gate() -> AuthenticationGate:
    return AuthenticationGate(PRIVATE_KEY)


@pytest.fixture
def exchange(transport, gate, symbols) -> ExchangeAPI:
    return ExchangeAPI(transport, gate, symbols, AsyncMock(), is_mainnet=False)


def sent_action(transport) -> dict:
    return transport.send.await_args.args[1]["action"]


class TestExchangeAPI:
    """Test cases for ExchangeAPI."""

    async def test_post_action_payload(self, exchange: ExchangeAPI, transport):
        await exchange.post_action({"type": "noop"})

        endpoint, payload = transport.send.await_args.args
        assert endpoint == "/exchange"
        assert set(payload) == {"action", "nonce", "signature", "vaultAddress"}
        assert transport.send.await_args.kwargs == {"weight": 1}

    async def test_vault_address(self, transport, gate, symbols):
        vault = "0x" + "ab" * 20
        exchange = ExchangeAPI(transport, gate, symbols, AsyncMock(), vault_address=vault)

        await exchange.post_action({"type": "noop"})

        assert transport.send.await_args.args[1]["vaultAddress"] == vault

    async def test_error_status_raises(self, exchange: ExchangeAPI, transport):
        """Test a rejected action surfaces as an exchange error."""
        transport.send.return_value = {"status": "err", "response": "Insufficient margin"}

        with pytest.raises(HyperliquidAPIError) as exc_info:
            await exchange.place_order("BTC-PERP", True, 1, 30000)

        assert exc_info.value.code == "EXCHANGE_ERROR"
        assert exc_info.value.message == "Insufficient margin"

    async def test_place_order_with_cloid(self, exchange: ExchangeAPI, transport):
        cloid = "0x" + "00" * 15 + "01"

        await exchange.place_order("PURR-SPOT", True, 10, 0.25, tif="Ioc", cloid=cloid)

        wire = sent_action(transport)["orders"][0]
        assert wire["a"] == 10000
        assert wire["t"] == {"limit": {"tif": "Ioc"}}
        assert wire["c"] == cloid

    async def test_bulk_order_weight(self, exchange: ExchangeAPI, transport):
        """Test batches weigh 1 + floor(n / 40)."""
        orders = [
            {"symbol": "BTC-PERP", "is_buy": True, "size": 0.001, "limit_price": 30000 + i}
            for i in range(80)
        ]

        await exchange.bulk_orders(orders)

        assert transport.send.await_args.kwargs == {"weight": 3}
        assert len(sent_action(transport)["orders"]) == 80

    async def test_cancel(self, exchange: ExchangeAPI, transport):
        await exchange.cancel("ETH-PERP", 42)

        assert sent_action(transport) == {"type": "cancel", "cancels": [{"a": 1, "o": 42}]}

    async def test_update_leverage(self, exchange: ExchangeAPI, transport):
        await exchange.update_leverage("BTC-PERP", 10, is_cross=False)

        assert sent_action(transport) == {
            "type": "updateLeverage",
            "asset": 0,
            "isCross": False,
            "leverage": 10,
        }

    async def test_unknown_symbol(self, exchange: ExchangeAPI, transport):
        with pytest.raises(HyperliquidAPIError) as exc_info:
            await exchange.cancel("DOGE-PERP", 1)

        assert exc_info.value.code == "UNKNOWN_SYMBOL"
        transport.send.assert_not_awaited()

    async def test_unrepresentable_size(self, exchange: ExchangeAPI, transport):
        with pytest.raises(HyperliquidAPIError) as exc_info:
            await exchange.place_order("BTC-PERP", True, 0.123456789, 30000)

        assert exc_info.value.code == "INVALID_ORDER"
        transport.send.assert_not_awaited()


class TestCustomOperations:
    """Test cases for CustomOperations."""

    @pytest.fixture
    def custom(self, exchange, transport, gate, symbols) -> CustomOperations:
        info = InfoAPI(transport, symbols, AsyncMock())
        return CustomOperations(exchange, info, gate, AsyncMock())

    async def test_cancel_all_orders(self, custom: CustomOperations, transport, gate):
        """Test every open order on the symbol is cancelled in one batch."""
        transport.send.side_effect = [
            [
                {"coin": "BTC", "oid": 1},
                {"coin": "ETH", "oid": 2},
                {"coin": "BTC", "oid": 3},
            ],
            OK,
        ]

        await custom.cancel_all_orders("BTC-PERP")

        query = transport.send.await_args_list[0].args[1]
        assert query == {"type": "openOrders", "user": gate.wallet_address}
        assert sent_action(transport)["cancels"] == [{"a": 0, "o": 1}, {"a": 0, "o": 3}]

    async def test_cancel_all_orders_nothing_open(self, custom: CustomOperations, transport):
        transport.send.side_effect = [[]]

        assert await custom.cancel_all_orders() is None
        assert transport.send.await_count == 1

    async def test_get_all_assets(self, custom: CustomOperations):
        assets = await custom.get_all_assets()

        assert assets == {"perp": ["BTC-PERP", "ETH-PERP"], "spot": ["PURR-SPOT", "HYPE-SPOT"]}
