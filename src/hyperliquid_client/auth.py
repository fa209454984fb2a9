"""Private-key validation and fail-closed access to privileged operations."""

import logging
from typing import Any, Generic, Optional, TypeVar

from eth_account import Account
from eth_account.signers.local import LocalAccount

from .errors import AuthenticationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def normalize_private_key(private_key: str) -> str:
    """Return the key with a ``0x`` prefix."""
    key = private_key.strip()
    return key if key.startswith("0x") else f"0x{key}"


class AuthenticationGate:
    """Holds the signing account, if the configured key is usable.

    Validation happens once, synchronously, at construction. A bad key is
    logged and leaves the gate unauthenticated; it never raises.
    """

    def __init__(self, private_key: Optional[str] = None, wallet_address: Optional[str] = None):
        self._account: Optional[LocalAccount] = None
        self._wallet_address = wallet_address

        if private_key:
            self._account = self._load_account(private_key)

    @staticmethod
    def _load_account(private_key: str) -> Optional[LocalAccount]:
        try:
            return Account.from_key(normalize_private_key(private_key))
        except Exception as e:
            logger.warning(
                "Invalid private key provided. Some functionalities will be limited. (%s)",
                type(e).__name__,
            )
            return None

    @property
    def is_authenticated(self) -> bool:
        return self._account is not None

    @property
    def account(self) -> LocalAccount:
        """Signing account.

        Raises:
            AuthenticationError: No valid key was configured
        """
        if self._account is None:
            raise AuthenticationError()
        return self._account

    @property
    def signer_address(self) -> Optional[str]:
        """Address derived from the private key."""
        return self._account.address if self._account is not None else None

    @property
    def wallet_address(self) -> Optional[str]:
        """Account address used for queries: explicit wallet, else the signer."""
        return self._wallet_address or self.signer_address


class AuthenticatedProxy(Generic[T]):
    """Forwards attribute access to ``target`` only while the gate is open.

    Any attribute access on a proxy whose gate is unauthenticated raises
    AuthenticationError immediately, before any request is built.
    """

    __slots__ = ("_gate", "_target", "_name")

    def __init__(self, gate: AuthenticationGate, target: Optional[T], name: str = "object"):
        object.__setattr__(self, "_gate", gate)
        object.__setattr__(self, "_target", target)
        object.__setattr__(self, "_name", name)

    def __getattr__(self, item: str) -> Any:
        if item.startswith("__") and item.endswith("__"):
            raise AttributeError(item)
        gate = object.__getattribute__(self, "_gate")
        target = object.__getattribute__(self, "_target")
        if not gate.is_authenticated or target is None:
            raise AuthenticationError(
                "Invalid or missing private key. This method requires authentication."
            )
        return getattr(target, item)

    def __setattr__(self, key: str, value: Any) -> None:
        raise AttributeError(f"{self._name} proxy is read-only")

    def __repr__(self) -> str:
        state = "authenticated" if self._gate.is_authenticated else "locked"
        return f"<AuthenticatedProxy {self._name} ({state})>"
