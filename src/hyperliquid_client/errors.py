"""Structured error hierarchy for the Hyperliquid client.

Every error that reaches application code inherits from HyperliquidError,
so callers can catch broadly while still recovering from specific failure
modes (bad credentials, flaky network, rejected requests).
"""

from typing import Optional


class HyperliquidError(Exception):
    """Base exception for all client errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        status_code: int = 0,
        response_body: str = "",
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.response_body = response_body


class AuthenticationError(HyperliquidError):
    """Privileged operation attempted without a valid private key."""

    def __init__(self, message: str = "Invalid or missing private key. This method requires authentication."):
        super().__init__(message, code="AUTHENTICATION_ERROR")


class HyperliquidNetworkError(HyperliquidError):
    """Connection-level failure: no response was received."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, code="NETWORK_ERROR")
        self.cause = cause


class HyperliquidTimeoutError(HyperliquidError):
    """Request exceeded the configured HTTP timeout."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, code="TIMEOUT_ERROR", status_code=408)
        self.cause = cause


class HyperliquidAPIError(HyperliquidError):
    """Error derived from an HTTP status or an error payload from the API."""
    pass
