#!/usr/bin/env python
"""Simple health check utility.

This script loads the gateway configuration exactly as the server would
and prints which accounts were found and the effective settings.  API keys
are masked and secrets are never printed.  Operators can run it before
starting the gateway to verify the environment.
"""

from __future__ import annotations

import sys

from gateway.config import MAX_ACCOUNTS, GatewayConfig
from gateway.errors import ConfigError


def _mask(value: str) -> str:
    return value[:4] + "..." if len(value) > 4 else "***"


def main() -> int:
    try:
        config = GatewayConfig.from_env()
    except ConfigError as exc:
        print(f"Configuration error: {exc}")
        return 1
    print("Health Check:")
    print(f"accounts: {len(config.accounts)} of {MAX_ACCOUNTS} slots")
    for account in config.accounts:
        print(f"  {account.name}: key {_mask(account.api_key)} -> {account.base_url}")
    settings = {
        "PAPER_TRADING": config.paper_trading,
        "PRICE_PRECISION": config.price_precision,
        "DEFAULT_REDUCE_ONLY": config.default_reduce_only,
        "CANCEL_OPEN_ORDERS": config.cancel_open_orders,
        "SETTLE_TIMEOUT_SEC": config.settle_timeout,
        "SETTLE_POLL_INTERVAL_SEC": config.settle_poll_interval,
        "REQUEST_TIMEOUT_SEC": config.request_timeout,
        "EVENT_STORE_PATH": config.event_store_path or "disabled",
        "PROMETHEUS_PORT": config.prometheus_port or "disabled",
    }
    for key, value in settings.items():
        print(f"{key}: {value}")
    if not config.accounts:
        print("No usable account: webhooks will be answered with 500")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
