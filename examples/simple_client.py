"""Simple Hyperliquid client example.

Reads public market data from testnet, streams mid prices for a few
seconds, and places an order if HYPERLIQUID_PRIVATE_KEY is set.
"""

import asyncio
import logging
import os

from hyperliquid_client import AuthenticationError, HyperliquidClient, HyperliquidError


async def main():
    """Run a simple client against testnet."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    async with HyperliquidClient(
        testnet=True,
        private_key=os.environ.get("HYPERLIQUID_PRIVATE_KEY"),
        on_retry=lambda attempt, error, delay: print(f"retry {attempt} in {delay:.2f}s: {error}"),
    ) as client:
        mids = await client.info.all_mids()
        print(f"{len(mids)} markets, BTC-PERP mid: {mids.get('BTC-PERP')}")

        assets = client.symbol_conversion.symbols("perp")
        print(f"First perpetuals: {assets[:5]}")

        await client.subscriptions.subscribe(
            {"type": "allMids"},
            lambda message: print(f"mids update: {len(message['data']['mids'])} coins"),
        )
        await asyncio.sleep(5)

        try:
            response = await client.exchange.place_order(
                "BTC-PERP", is_buy=True, size=0.001, limit_price=10000, tif="Alo"
            )
            print(f"Order response: {response}")
        except AuthenticationError as e:
            print(f"Skipping order: {e.message}")
        except HyperliquidError as e:
            print(f"Order failed [{e.code}]: {e.message}")


if __name__ == "__main__":
    asyncio.run(main())
