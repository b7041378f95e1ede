#!/usr/bin/env python
"""
Post example signals to a running gateway.

Usage::

    python scripts/send_webhook.py --url http://localhost:3001/webhook market
    python scripts/send_webhook.py limit --json
    python scripts/send_webhook.py --signal "ETHUSDT,Sell,Market,0.05,,,,false,,2,1"

String signals are sent as ``text/plain``; ``--json`` wraps the same
fields in a JSON object instead.
"""

from __future__ import annotations

import argparse
import asyncio
import json

import aiohttp

from gateway.signals import parse_delimited

EXAMPLES = {
    "market": "BTCUSDT,Buy,Market,0.001",
    "limit": "BTCUSDT,Buy,Limit,0.001,30000,GTC",
    "bracket": "BTCUSDT,Buy,Market,0.001,,,,false,,10,5",
}


async def send(url: str, signal: str, as_json: bool) -> None:
    if as_json:
        kwargs = {"json": parse_delimited(signal)}
    else:
        kwargs = {"data": signal, "headers": {"Content-Type": "text/plain"}}
    async with aiohttp.ClientSession() as session:
        async with session.post(url, **kwargs) as resp:
            text = await resp.text()
    print(f"HTTP {resp.status}")
    try:
        print(json.dumps(json.loads(text), indent=2))
    except ValueError:
        print(text)


def main() -> None:
    parser = argparse.ArgumentParser(description="Send an example signal to the gateway.")
    parser.add_argument("example", nargs="?", choices=sorted(EXAMPLES), default="market")
    parser.add_argument("--url", default="http://localhost:3001/webhook")
    parser.add_argument("--signal", help="Custom delimited signal; overrides the example.")
    parser.add_argument("--json", action="store_true", help="Send the fields as a JSON object.")
    args = parser.parse_args()
    asyncio.run(send(args.url, args.signal or EXAMPLES[args.example], args.json))


if __name__ == "__main__":
    main()
