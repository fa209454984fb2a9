"""Client network management module."""

from .heartbeat import HeartbeatManager
from .http_transport import HttpTransport
from .rate_limiter import PendingRequest, RateLimiter
from .stream import ConnectionState, StreamConnection

__all__ = [
    "HeartbeatManager",
    "HttpTransport",
    "PendingRequest",
    "RateLimiter",
    "ConnectionState",
    "StreamConnection",
]
