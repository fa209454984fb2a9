"""Endpoints and request weights."""

BASE_URLS = {
    "PRODUCTION": "https://api.hyperliquid.xyz",
    "TESTNET": "https://api.hyperliquid-testnet.xyz",
}

WSS_URLS = {
    "PRODUCTION": "wss://api.hyperliquid.xyz/ws",
    "TESTNET": "wss://api.hyperliquid-testnet.xyz/ws",
}

INFO_ENDPOINT = "/info"
EXCHANGE_ENDPOINT = "/exchange"

# Info requests not listed here weigh 20.
INFO_WEIGHTS = {
    "l2Book": 2,
    "allMids": 2,
    "clearinghouseState": 2,
    "orderStatus": 2,
    "spotClearinghouseState": 2,
    "exchangeStatus": 2,
}
DEFAULT_INFO_WEIGHT = 20
EXCHANGE_WEIGHT = 1

SPOT_ASSET_OFFSET = 10000


def base_url(testnet: bool) -> str:
    return BASE_URLS["TESTNET" if testnet else "PRODUCTION"]


def ws_url(testnet: bool) -> str:
    return WSS_URLS["TESTNET" if testnet else "PRODUCTION"]


def info_weight(request_type: str) -> int:
    return INFO_WEIGHTS.get(request_type, DEFAULT_INFO_WEIGHT)
