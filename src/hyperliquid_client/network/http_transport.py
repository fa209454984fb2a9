"""Rate-limited HTTP transport with retry on transient failures."""

import asyncio
import json
import logging
import random
from typing import Any, Callable, Dict, Optional, Tuple

import aiohttp

from ..config import ProxyConfig
from ..errors import (
    HyperliquidAPIError,
    HyperliquidError,
    HyperliquidNetworkError,
    HyperliquidTimeoutError,
)
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "PUT", "DELETE"})

RetryObserver = Callable[[int, HyperliquidError, float], None]


class _StatusFailure(Exception):
    """Non-2xx response captured inside a single attempt."""

    def __init__(self, status: int, body: str):
        super().__init__(f"HTTP {status}")
        self.status = status
        self.body = body


class HttpTransport:
    """Sends JSON requests to the API.

    The rate limiter is consulted once per logical call. Retries are
    transport-level recovery of the same call, so they do not consume
    additional budget.
    """

    def __init__(
        self,
        base_url: str,
        rate_limiter: RateLimiter,
        timeout_ms: int = 50000,
        proxy: Optional[ProxyConfig] = None,
        max_retries: int = 3,
        retry_base_delay: float = 0.1,
        retry_jitter: float = 0.2,
        on_retry: Optional[RetryObserver] = None,
    ):
        """Initialize transport.

        Args:
            base_url: API base URL
            rate_limiter: Shared rate limiter
            timeout_ms: Per-attempt timeout in milliseconds
            proxy: Optional egress proxy applied to every request
            max_retries: Retries after the first attempt for transient failures
            retry_base_delay: Delay before the first retry, doubled per retry
            retry_jitter: Maximum extra delay as a fraction of the backoff
            on_retry: Called with (retry number, cause, delay) before each retry
        """
        self.base_url = base_url.rstrip("/")
        self.rate_limiter = rate_limiter
        self.timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000)
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_jitter = retry_jitter
        self.on_retry = on_retry

        self._proxy_url: Optional[str] = None
        self._proxy_auth: Optional[aiohttp.BasicAuth] = None
        if proxy is not None:
            self._proxy_url = proxy.url
            if proxy.auth is not None:
                self._proxy_auth = aiohttp.BasicAuth(proxy.auth.username, proxy.auth.password)

        self._http_session: Optional[aiohttp.ClientSession] = None

    async def _get_http_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._http_session is None or self._http_session.closed:
            self._http_session = aiohttp.ClientSession(
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        return self._http_session

    async def send(
        self,
        endpoint: str,
        payload: Optional[Dict[str, Any]] = None,
        weight: float = 2,
        method: str = "POST",
    ) -> Any:
        """Make a rate-limited request and return the decoded JSON body.

        Args:
            endpoint: Path relative to the base URL, e.g. "/info"
            payload: JSON body
            weight: Rate-limit weight of this call
            method: HTTP method

        Returns:
            Decoded JSON response

        Raises:
            HyperliquidNetworkError: Connection failed on every attempt
            HyperliquidTimeoutError: Timed out on every attempt
            HyperliquidAPIError: Non-retryable or exhausted HTTP error status
        """
        method = method.upper()
        await self.rate_limiter.wait_for_token(weight)

        retry = 0
        while True:
            try:
                return await self._attempt(method, endpoint, payload)
            except Exception as exc:
                error, transient = self._categorize(exc, method, endpoint)
                if not transient or retry >= self.max_retries:
                    if transient:
                        logger.error(
                            "%s %s failed after %d attempts: %s",
                            method, endpoint, retry + 1, error,
                        )
                    raise error from exc

                retry += 1
                delay = self._backoff_delay(retry)
                logger.warning(
                    "Retrying request %s %s, attempt %d. Error: %s",
                    method, endpoint, retry, error,
                )
                if self.on_retry:
                    self.on_retry(retry, error, delay)
                await asyncio.sleep(delay)

    async def _attempt(
        self, method: str, endpoint: str, payload: Optional[Dict[str, Any]]
    ) -> Any:
        """One physical request. Raises raw aiohttp errors or _StatusFailure."""
        session = await self._get_http_session()
        url = f"{self.base_url}{endpoint}"
        logger.debug("REST %s %s", method, url)
        async with session.request(
            method,
            url,
            json=payload,
            proxy=self._proxy_url,
            proxy_auth=self._proxy_auth,
        ) as response:
            if response.status >= 400:
                raise _StatusFailure(response.status, await response.text())
            return await response.json(content_type=None)

    def _categorize(
        self, exc: Exception, method: str, endpoint: str
    ) -> Tuple[HyperliquidError, bool]:
        """Map a raw failure to (client error, is transient)."""
        if isinstance(exc, _StatusFailure):
            error = self._api_error(exc.status, exc.body)
            transient = exc.status == 408 or (
                exc.status >= 500 and method in IDEMPOTENT_METHODS
            )
            return error, transient

        if isinstance(exc, asyncio.TimeoutError):
            return HyperliquidTimeoutError(f"{method} {endpoint} timed out", cause=exc), True

        if isinstance(exc, aiohttp.ClientConnectionError):
            return HyperliquidNetworkError(
                f"No response received from the server: {exc}", cause=exc
            ), True

        if isinstance(exc, aiohttp.ClientResponseError):
            return self._api_error(exc.status, exc.message), False

        if isinstance(exc, ValueError):
            return HyperliquidAPIError(
                f"Invalid response body: {exc}", code="INVALID_RESPONSE"
            ), False

        if isinstance(exc, aiohttp.ClientError):
            return HyperliquidAPIError(
                f"Request setup failed: {exc}", code="REQUEST_SETUP_ERROR"
            ), False

        return HyperliquidAPIError(str(exc) or type(exc).__name__), False

    def _api_error(self, status: int, body: str) -> HyperliquidAPIError:
        code = f"HTTP_{status}"
        message = body or f"HTTP {status}"
        try:
            data = json.loads(body)
        except (TypeError, ValueError):
            data = None
        if isinstance(data, dict):
            code = str(data.get("code", code))
            message = str(data.get("message") or data.get("error") or message)
        return HyperliquidAPIError(message, code=code, status_code=status, response_body=body)

    def _backoff_delay(self, retry: int) -> float:
        """Exponential delay before retry number ``retry`` (1-based)."""
        delay = self.retry_base_delay * (2 ** (retry - 1))
        return delay + delay * self.retry_jitter * random.random()

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._http_session and not self._http_session.closed:
            await self._http_session.close()
        self._http_session = None
