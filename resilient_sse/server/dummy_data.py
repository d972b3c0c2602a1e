"""
MODULE OVERVIEW:
A finite fake-data generator for the demo SSE endpoint.

WHAT IS HAPPENING HERE:
Each connection receives a short burst of stock ticks and then the body ends.
To the client that looks exactly like a dropped connection, which is the whole
point: it lets you watch the reconnect loop work against a real server.
Event ids keep increasing across connections so gaps are easy to spot.
"""

import asyncio
import itertools
import json
import random

SYMBOLS = ["AAPL", "NVDA", "TSLA", "MSFT", "AMZN"]

_sequence = itertools.count(1)
_prices = {s: random.uniform(100.0, 900.0) for s in SYMBOLS}


async def stock_tick_events(count: int, interval_s: float):
    """Yields `count` sse-starlette event dicts, `interval_s` apart."""
    for _ in range(count):
        symbol = random.choice(SYMBOLS)
        delta = random.uniform(-2.5, 2.5)
        _prices[symbol] += delta

        yield {
            "event": "stock_tick",
            "id": str(next(_sequence)),
            "data": json.dumps({
                "ticker": symbol,
                "price": round(_prices[symbol], 2),
                "delta": round(delta, 2),
            }),
        }
        await asyncio.sleep(interval_s)
