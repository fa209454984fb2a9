"""L1 action signing and wire formatting."""

import time
from decimal import Decimal
from typing import Any, Dict, Optional

import msgpack
from eth_account.messages import encode_typed_data
from eth_account.signers.local import LocalAccount
from eth_utils import keccak, to_hex

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def get_timestamp_ms() -> int:
    return int(time.time() * 1000)


def address_to_bytes(address: str) -> bytes:
    return bytes.fromhex(address[2:] if address.startswith("0x") else address)


def action_hash(action: Dict[str, Any], vault_address: Optional[str], nonce: int) -> bytes:
    """keccak of the msgpack-encoded action, the nonce and the vault flag."""
    data = msgpack.packb(action)
    data += nonce.to_bytes(8, "big")
    if vault_address is None:
        data += b"\x00"
    else:
        data += b"\x01"
        data += address_to_bytes(vault_address)
    return keccak(data)


def construct_phantom_agent(hash_: bytes, is_mainnet: bool) -> Dict[str, Any]:
    return {"source": "a" if is_mainnet else "b", "connectionId": hash_}


def l1_payload(phantom_agent: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "domain": {
            "chainId": 1337,
            "name": "Exchange",
            "verifyingContract": ZERO_ADDRESS,
            "version": "1",
        },
        "types": {
            "Agent": [
                {"name": "source", "type": "string"},
                {"name": "connectionId", "type": "bytes32"},
            ],
            "EIP712Domain": [
                {"name": "name", "type": "string"},
                {"name": "version", "type": "string"},
                {"name": "chainId", "type": "uint256"},
                {"name": "verifyingContract", "type": "address"},
            ],
        },
        "primaryType": "Agent",
        "message": phantom_agent,
    }


def sign_l1_action(
    wallet: LocalAccount,
    action: Dict[str, Any],
    vault_address: Optional[str],
    nonce: int,
    is_mainnet: bool,
) -> Dict[str, Any]:
    """Sign ``action`` and return the ``{r, s, v}`` signature the API expects."""
    phantom_agent = construct_phantom_agent(action_hash(action, vault_address, nonce), is_mainnet)
    structured = encode_typed_data(full_message=l1_payload(phantom_agent))
    signed = wallet.sign_message(structured)
    return {"r": to_hex(signed.r), "s": to_hex(signed.s), "v": signed.v}


def float_to_wire(x: float) -> str:
    """Format a price or size with at most 8 decimals and no trailing zeros.

    Raises:
        ValueError: The value cannot be represented with 8 decimals
    """
    rounded = f"{x:.8f}"
    if abs(float(rounded) - x) >= 1e-12:
        raise ValueError(f"float_to_wire causes rounding: {x}")
    if rounded == "-0.00000000":
        rounded = "0.00000000"
    normalized = Decimal(rounded).normalize()
    return f"{normalized:f}"
