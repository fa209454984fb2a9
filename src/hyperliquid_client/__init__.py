"""Asyncio client for the Hyperliquid exchange API."""

from .auth import AuthenticatedProxy, AuthenticationGate
from .client import HyperliquidClient, InitializationState
from .config import ClientConfig, NetworkConfig, ProxyAuth, ProxyConfig
from .errors import (
    AuthenticationError,
    HyperliquidAPIError,
    HyperliquidError,
    HyperliquidNetworkError,
    HyperliquidTimeoutError,
)
from .network import ConnectionState, HttpTransport, RateLimiter, StreamConnection

__all__ = [
    "AuthenticatedProxy",
    "AuthenticationGate",
    "AuthenticationError",
    "ClientConfig",
    "ConnectionState",
    "HttpTransport",
    "HyperliquidAPIError",
    "HyperliquidClient",
    "HyperliquidError",
    "HyperliquidNetworkError",
    "HyperliquidTimeoutError",
    "InitializationState",
    "NetworkConfig",
    "ProxyAuth",
    "ProxyConfig",
    "RateLimiter",
    "StreamConnection",
]
