"""
Entry point for the gateway process.

Reads the configuration from the environment, optionally exposes the
Prometheus registry and serves the webhook application until interrupted::

    BYBIT_API_KEY_1=... BYBIT_API_SECRET_1=... BASE_URL_1=https://api-testnet.bybit.com \\
        bybit-gateway
"""

import logging
import sys

from aiohttp import web

from .config import GatewayConfig
from .errors import ConfigError
from .server import create_app
from .services.metrics_service import OrderMetrics


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger(__name__)
    try:
        config = GatewayConfig.from_env()
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(2)
    logging.getLogger().setLevel(config.log_level)

    if not config.accounts:
        logger.warning("No Bybit accounts configured; every webhook will be answered with 500")

    metrics = OrderMetrics()
    if config.prometheus_port:
        metrics.serve(config.prometheus_port)

    app = create_app(config, metrics=metrics)
    logger.info("Gateway listening on %s:%d (paper=%s)", config.host, config.port, config.paper_trading)
    web.run_app(app, host=config.host, port=config.port, print=None)


if __name__ == "__main__":
    main()
