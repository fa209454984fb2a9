"""Pytest configuration and shared fixtures."""
import sys
from pathlib import Path

import pytest

# Add project root to Python path to support 'from src.hyperliquid_client...' imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def meta() -> dict:
    """Perpetuals metadata as returned by {"type": "meta"}."""
    return {
        "universe": [
            {"name": "BTC", "szDecimals": 5, "maxLeverage": 50},
            {"name": "ETH", "szDecimals": 4, "maxLeverage": 50},
        ]
    }


@pytest.fixture
def spot_meta() -> dict:
    """Spot metadata as returned by {"type": "spotMeta"}."""
    return {
        "tokens": [
            {"name": "USDC", "index": 0},
            {"name": "PURR", "index": 1},
            {"name": "HYPE", "index": 150},
        ],
        "universe": [
            {"name": "PURR/USDC", "tokens": [1, 0], "index": 0},
            {"name": "@107", "tokens": [150, 0], "index": 107},
        ],
    }
