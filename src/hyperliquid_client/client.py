"""Hyperliquid client: lazy one-time bootstrap over the governed transports."""

import asyncio
import logging
from enum import Enum
from typing import Any, Optional

from . import constants
from .api.custom import CustomOperations
from .api.exchange import ExchangeAPI
from .api.info import InfoAPI
from .api.subscriptions import WebSocketSubscriptions
from .api.symbol_conversion import SymbolConversion
from .auth import AuthenticatedProxy, AuthenticationGate
from .config import ClientConfig
from .errors import HyperliquidAPIError, HyperliquidError, HyperliquidNetworkError
from .network.http_transport import HttpTransport, RetryObserver
from .network.rate_limiter import RateLimiter
from .network.stream import StreamConnection

logger = logging.getLogger(__name__)


class InitializationState(str, Enum):
    """Bootstrap progress. READY is terminal."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    READY = "READY"


class HyperliquidClient:
    """Client for the Hyperliquid REST and streaming APIs.

    Construction never performs I/O and never fails on a bad private key.
    The first call that needs the exchange (or an explicit ``connect()``)
    runs the one-time bootstrap: symbol tables are loaded, then the
    streaming connection is opened if enabled. Concurrent callers share
    that single attempt; a failed attempt is not cached.

    Example:
        async with HyperliquidClient(private_key=key, testnet=True) as client:
            mids = await client.info.all_mids()
            await client.exchange.place_order("BTC-PERP", True, 0.01, 30000)
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        symbol_conversion: Optional[SymbolConversion] = None,
        on_retry: Optional[RetryObserver] = None,
        **options: Any,
    ):
        """Initialize client.

        Args:
            config: Client configuration; alternatively pass its fields as
                keyword arguments (``testnet=True, private_key=...``)
            symbol_conversion: Symbol cache to warm on bootstrap
            on_retry: Observer for HTTP retry attempts
        """
        if config is None:
            config = ClientConfig(**options)
        elif options:
            raise TypeError("Pass either a ClientConfig or keyword options, not both")
        self.config = config
        network = config.network

        self.rate_limiter = RateLimiter(
            capacity=network.rate_limit_capacity,
            refill_per_second=network.rate_limit_refill_per_second,
        )
        self.transport = HttpTransport(
            base_url=constants.base_url(config.testnet),
            rate_limiter=self.rate_limiter,
            timeout_ms=config.http_timeout_ms,
            proxy=config.proxy,
            max_retries=network.http_max_retries,
            retry_base_delay=network.http_retry_base_delay,
            retry_jitter=network.http_retry_jitter,
            on_retry=on_retry,
        )
        self.symbol_conversion = symbol_conversion or SymbolConversion(self.transport)
        self.info = InfoAPI(self.transport, self.symbol_conversion, self.ensure_ready)

        self.ws = StreamConnection(
            ws_url=constants.ws_url(config.testnet),
            max_reconnect_attempts=config.max_reconnect_attempts,
            initial_backoff=network.reconnect_initial_backoff,
            max_backoff=network.reconnect_max_backoff,
            proxy=config.proxy,
            heartbeat_interval=network.heartbeat_interval,
            heartbeat_timeout=network.heartbeat_timeout,
        )
        self.subscriptions = WebSocketSubscriptions(self.ws, self.symbol_conversion)

        self._gate = AuthenticationGate(config.private_key, config.wallet_address)
        exchange: Optional[ExchangeAPI] = None
        custom: Optional[CustomOperations] = None
        if self._gate.is_authenticated:
            exchange = ExchangeAPI(
                self.transport,
                self._gate,
                self.symbol_conversion,
                self.ensure_ready,
                is_mainnet=not config.testnet,
                vault_address=config.vault_address,
            )
            custom = CustomOperations(exchange, self.info, self._gate, self.ensure_ready)
        self.exchange: Any = AuthenticatedProxy(self._gate, exchange, "exchange")
        self.custom: Any = AuthenticatedProxy(self._gate, custom, "custom")

        self._init_state = InitializationState.NOT_STARTED
        self._initializing: Optional[asyncio.Task] = None
        self._disconnecting = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    @property
    def initialization_state(self) -> InitializationState:
        return self._init_state

    @property
    def is_ready(self) -> bool:
        return self._init_state is InitializationState.READY

    @property
    def wallet_address(self) -> Optional[str]:
        return self._gate.wallet_address

    def is_authenticated(self) -> bool:
        return self._gate.is_authenticated

    async def ensure_ready(self) -> None:
        """Run the one-time bootstrap, or join the one already running.

        Raises:
            HyperliquidError: Bootstrap failed; every concurrent caller
                receives the same error and a later call starts over
        """
        if self._init_state is InitializationState.READY:
            return
        if self._initializing is None:
            self._init_state = InitializationState.IN_PROGRESS
            self._initializing = asyncio.create_task(self._initialize())
        await asyncio.shield(self._initializing)

    connect = ensure_ready
    ensure_initialized = ensure_ready

    async def _initialize(self) -> None:
        succeeded = False
        try:
            await self.symbol_conversion.initialize()
            if self.config.enable_ws:
                await self.ws.connect()
            succeeded = True
            logger.info("Client ready (%s)", "testnet" if self.config.testnet else "mainnet")
        except asyncio.CancelledError:
            if self._disconnecting:
                raise HyperliquidNetworkError("Client disconnected during initialization") from None
            raise
        except HyperliquidError as e:
            logger.error(f"Client initialization failed: {e}")
            raise
        except Exception as e:
            logger.error(f"Client initialization failed: {e}")
            raise HyperliquidAPIError(
                f"Initialization failed: {e}", code="INITIALIZATION_ERROR"
            ) from e
        finally:
            self._initializing = None
            self._init_state = (
                InitializationState.READY if succeeded else InitializationState.NOT_STARTED
            )

    async def disconnect(self) -> None:
        """Close the streaming connection and the HTTP session."""
        self._disconnecting = True
        try:
            task = self._initializing
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except (asyncio.CancelledError, HyperliquidError):
                    pass
            await self.ws.close()
            await self.transport.close()
        finally:
            self._disconnecting = False
