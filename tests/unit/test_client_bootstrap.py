"""Tests for the client's one-time bootstrap."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.hyperliquid_client.client import HyperliquidClient, InitializationState
from src.hyperliquid_client.config import ClientConfig
from src.hyperliquid_client.constants import INFO_ENDPOINT
from src.hyperliquid_client.errors import HyperliquidAPIError, HyperliquidNetworkError


@pytest.fixture
async def client():
    """Client whose symbol loading and streaming connection are mocked."""
    client = HyperliquidClient(testnet=True)
    client.symbol_conversion.initialize = AsyncMock()
    client.ws.connect = AsyncMock()
    client.ws.close = AsyncMock()
    yield client
    await client.disconnect()


class TestBootstrap:
    """Test cases for HyperliquidClient.ensure_ready."""

    async def test_starts_not_ready(self, client: HyperliquidClient):
        """Test construction performs no I/O."""
        assert client.initialization_state is InitializationState.NOT_STARTED
        assert not client.is_ready
        client.symbol_conversion.initialize.assert_not_awaited()
        client.ws.connect.assert_not_awaited()

    async def test_concurrent_callers_share_one_attempt(self, client: HyperliquidClient):
        """Test N concurrent callers trigger exactly one bootstrap."""

        async def slow_load():
            await asyncio.sleep(0.05)

        client.symbol_conversion.initialize.side_effect = slow_load

        await asyncio.gather(*(client.ensure_ready() for _ in range(10)))

        assert client.symbol_conversion.initialize.await_count == 1
        assert client.ws.connect.await_count == 1
        assert client.initialization_state is InitializationState.READY

    async def test_in_progress_while_running(self, client: HyperliquidClient):
        started = asyncio.Event()
        release = asyncio.Event()

        async def blocked_load():
            started.set()
            await release.wait()

        client.symbol_conversion.initialize.side_effect = blocked_load
        task = asyncio.create_task(client.ensure_ready())
        await started.wait()

        assert client.initialization_state is InitializationState.IN_PROGRESS

        release.set()
        await task
        assert client.is_ready

    async def test_symbols_load_before_stream_connects(self, client: HyperliquidClient):
        """Test the stream opens only after symbol tables are loaded."""
        calls = MagicMock()
        client.symbol_conversion.initialize.side_effect = lambda: calls.symbols()
        client.ws.connect.side_effect = lambda: calls.stream()

        await client.ensure_ready()

        assert [c[0] for c in calls.mock_calls] == ["symbols", "stream"]

    async def test_stream_disabled(self):
        client = HyperliquidClient(testnet=True, enable_ws=False)
        client.symbol_conversion.initialize = AsyncMock()
        client.ws.connect = AsyncMock()

        await client.ensure_ready()

        assert client.is_ready
        client.ws.connect.assert_not_awaited()
        await client.disconnect()

    async def test_calls_after_ready_are_noops(self, client: HyperliquidClient):
        await client.ensure_ready()
        await client.ensure_ready()
        await client.connect()
        await client.ensure_initialized()

        assert client.symbol_conversion.initialize.await_count == 1

    async def test_failure_reaches_every_waiter(self, client: HyperliquidClient):
        """Test all concurrent callers see the same categorized error."""
        failure = HyperliquidNetworkError("connection refused")

        async def failing_load():
            await asyncio.sleep(0.01)
            raise failure

        client.symbol_conversion.initialize.side_effect = failing_load

        results = await asyncio.gather(
            *(client.ensure_ready() for _ in range(3)), return_exceptions=True
        )

        assert all(result is failure for result in results)
        assert client.initialization_state is InitializationState.NOT_STARTED
        assert client.symbol_conversion.initialize.await_count == 1

    async def test_failure_is_not_cached(self, client: HyperliquidClient):
        """Test a call after a failed bootstrap starts a fresh attempt."""
        client.symbol_conversion.initialize.side_effect = [
            HyperliquidNetworkError("connection refused"),
            None,
        ]

        with pytest.raises(HyperliquidNetworkError):
            await client.ensure_ready()
        await client.ensure_ready()

        assert client.is_ready
        assert client.symbol_conversion.initialize.await_count == 2

    async def test_stream_failure_fails_bootstrap(self, client: HyperliquidClient):
        client.ws.connect.side_effect = HyperliquidNetworkError("Max reconnect attempts (5) reached")

        with pytest.raises(HyperliquidNetworkError):
            await client.ensure_ready()

        assert client.initialization_state is InitializationState.NOT_STARTED

    async def test_unexpected_errors_are_wrapped(self, client: HyperliquidClient):
        """Test malformed metadata surfaces as an initialization error."""
        client.symbol_conversion.initialize.side_effect = KeyError("universe")

        with pytest.raises(HyperliquidAPIError) as exc_info:
            await client.ensure_ready()

        assert exc_info.value.code == "INITIALIZATION_ERROR"
        assert isinstance(exc_info.value.__cause__, KeyError)

    async def test_cancelled_caller_does_not_cancel_attempt(self, client: HyperliquidClient):
        """Test one impatient caller cannot abort the shared bootstrap."""

        async def slow_load():
            await asyncio.sleep(0.05)

        client.symbol_conversion.initialize.side_effect = slow_load
        impatient = asyncio.create_task(client.ensure_ready())
        await asyncio.sleep(0)
        impatient.cancel()

        await client.ensure_ready()

        assert impatient.cancelled()
        assert client.is_ready
        assert client.symbol_conversion.initialize.await_count == 1

    async def test_info_calls_trigger_bootstrap(self, meta, spot_meta):
        """Test the first public query loads symbols before it is sent."""
        client = HyperliquidClient(testnet=True, enable_ws=False)
        sent = []

        async def send(endpoint, payload=None, weight=2, method="POST"):
            sent.append(payload["type"])
            return {"meta": meta, "spotMeta": spot_meta}.get(payload["type"], {"BTC": "65000.5"})

        client.transport.send = AsyncMock(side_effect=send)

        mids = await client.info.all_mids()

        assert sent == ["meta", "spotMeta", "allMids"]
        assert mids == {"BTC-PERP": "65000.5"}
        assert client.transport.send.await_args.args[0] == INFO_ENDPOINT
        await client.disconnect()

    async def test_disconnect_closes_transports(self, client: HyperliquidClient):
        client.transport.close = AsyncMock()

        await client.disconnect()

        client.ws.close.assert_awaited()
        client.transport.close.assert_awaited_once()

    async def test_context_manager_disconnects(self):
        async with HyperliquidClient(testnet=True, enable_ws=False) as client:
            client.ws.close = AsyncMock()
            client.transport.close = AsyncMock()

        client.ws.close.assert_awaited_once()
        client.transport.close.assert_awaited_once()


class TestClientConstruction:
    """Test cases for client construction."""

    def test_config_and_options_are_exclusive(self):
        with pytest.raises(TypeError):
            HyperliquidClient(ClientConfig(), testnet=True)

    def test_options_build_config(self):
        client = HyperliquidClient(testnet=True, max_reconnect_attempts=2, http_timeout_ms=1000)

        assert client.config.testnet
        assert client.ws.max_reconnect_attempts == 2
        assert client.transport.base_url == "https://api.hyperliquid-testnet.xyz"
        assert client.ws.ws_url == "wss://api.hyperliquid-testnet.xyz/ws"

    def test_mainnet_by_default(self):
        client = HyperliquidClient()

        assert client.transport.base_url == "https://api.hyperliquid.xyz"
        assert not client.is_authenticated()


class TestBootstrapOrdering:
    """Symbol-bearing calls and disconnects around the bootstrap."""

    async def test_l2_book_on_fresh_client_uses_exchange_name(self, meta, spot_meta):
        """Test the coin is translated only after the symbol tables load."""
        client = HyperliquidClient(testnet=True, enable_ws=False)
        sent = []

        async def send(endpoint, payload=None, weight=2, method="POST"):
            sent.append(payload)
            return {"meta": meta, "spotMeta": spot_meta}.get(
                payload["type"], {"coin": "BTC", "levels": [[], []]}
            )

        client.transport.send = AsyncMock(side_effect=send)

        book = await client.info.l2_book("BTC-PERP")

        assert sent[-1] == {"type": "l2Book", "coin": "BTC"}
        assert book["coin"] == "BTC-PERP"
        await client.disconnect()

    async def test_disconnect_during_bootstrap_fails_waiters(self):
        """Test waiters get a categorized error, not a bare cancellation."""
        client = HyperliquidClient(testnet=True, enable_ws=False)
        started = asyncio.Event()

        async def slow_load():
            started.set()
            await asyncio.sleep(1)

        client.symbol_conversion.initialize = AsyncMock(side_effect=slow_load)
        waiter = asyncio.create_task(client.ensure_ready())
        await started.wait()

        await client.disconnect()

        with pytest.raises(HyperliquidNetworkError, match="disconnected during initialization"):
            await waiter
        assert not waiter.cancelled()
        assert client.initialization_state is InitializationState.NOT_STARTED
