"""Client configuration."""

import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProxyAuth(BaseModel):
    """Basic-auth credentials for the egress proxy."""

    model_config = ConfigDict(frozen=True)

    username: str
    password: str


class ProxyConfig(BaseModel):
    """HTTP(S) egress proxy used for every REST and WebSocket request."""

    model_config = ConfigDict(frozen=True)

    host: str = Field(description="Proxy host")
    port: int = Field(description="Proxy port")
    auth: Optional[ProxyAuth] = Field(default=None, description="Optional basic auth")

    @property
    def url(self) -> str:
        """Proxy URL. Always http://, since aiohttp only speaks to HTTP proxies (HTTPS targets are tunnelled with CONNECT)."""
        return f"http://{self.host}:{self.port}"


class NetworkConfig(BaseModel):
    """Network management configuration."""

    model_config = ConfigDict(frozen=True)

    rate_limit_capacity: int = Field(
        default=1200, gt=0, description="Token bucket capacity in weight units"
    )
    rate_limit_refill_per_second: float = Field(
        default=20.0, gt=0, description="Weight units regenerated per second"
    )
    http_max_retries: int = Field(
        default=3, ge=0, description="Retries for transient HTTP failures"
    )
    http_retry_base_delay: float = Field(
        default=0.1, ge=0, description="First retry delay in seconds, doubled per retry"
    )
    http_retry_jitter: float = Field(
        default=0.2, ge=0, lt=1, description="Random extra delay as a fraction of the backoff"
    )
    reconnect_initial_backoff: float = Field(
        default=1.0, ge=0, description="Initial backoff before reconnect attempts"
    )
    reconnect_max_backoff: float = Field(
        default=30.0, ge=0, description="Maximum reconnect backoff"
    )
    heartbeat_interval: float = Field(
        default=50.0, gt=0, description="WebSocket ping interval in seconds"
    )
    heartbeat_timeout: float = Field(
        default=10.0, gt=0, description="Seconds to wait for a pong"
    )


class ClientConfig(BaseModel):
    """Client configuration, captured once at construction."""

    model_config = ConfigDict(frozen=True)

    testnet: bool = Field(default=False, description="Use the testnet endpoints")
    enable_ws: bool = Field(default=True, description="Open the streaming connection on bootstrap")
    private_key: Optional[str] = Field(
        default=None, repr=False, description="Hex signing key, 0x prefix optional"
    )
    wallet_address: Optional[str] = Field(
        default=None, description="Account address when signing with an agent wallet"
    )
    vault_address: Optional[str] = Field(default=None, description="Vault to trade on behalf of")
    max_reconnect_attempts: int = Field(
        default=5, ge=0, description="Maximum reconnect attempts before giving up"
    )
    proxy: Optional[ProxyConfig] = Field(default=None, description="Egress proxy")
    http_timeout_ms: int = Field(default=50000, gt=0, description="HTTP request timeout in milliseconds")
    network: NetworkConfig = Field(default_factory=NetworkConfig)

    @classmethod
    def from_file(cls, path: str) -> "ClientConfig":
        """Load configuration from a JSON file.

        Args:
            path: Path to configuration file

        Returns:
            ClientConfig instance
        """
        with open(path, "r") as f:
            data = json.load(f)
        return cls.model_validate(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientConfig":
        """Load configuration from a dictionary."""
        return cls.model_validate(data)
