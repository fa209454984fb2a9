"""Endpoint wrappers built on the client's network layer."""

from .custom import CustomOperations
from .exchange import ExchangeAPI
from .info import InfoAPI
from .subscriptions import WebSocketSubscriptions
from .symbol_conversion import SymbolConversion

__all__ = [
    "CustomOperations",
    "ExchangeAPI",
    "InfoAPI",
    "WebSocketSubscriptions",
    "SymbolConversion",
]
