"""
aiohttp application exposing the webhook endpoint.

Routes
------

* ``POST /webhook`` – parse a signal and dispatch it to every account.
* ``GET /healthz`` – liveness probe with the number of configured accounts.
* ``GET /metrics`` – Prometheus exposition of the gateway registry.

Status codes: 200 when at least one account placed the order, 400 when
the signal is invalid or every account failed, 500 when no account is
configured or an unexpected error occurs.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from aiohttp import web
from prometheus_client import CONTENT_TYPE_LATEST

from .clients.http_exchange import BybitHttpClient
from .clients.paper_exchange import PaperExchangeClient
from .config import GatewayConfig
from .errors import OrderValidationError
from .services.dispatcher import OrderDispatcher
from .services.event_store import EventStore
from .services.flattener import PositionFlattener
from .services.market_reader import MarketReader
from .services.metrics_service import OrderMetrics
from .services.order_submitter import OrderSubmitter
from .signals import parse_webhook_body

logger = logging.getLogger(__name__)

CONFIG_KEY = web.AppKey("config", GatewayConfig)
DISPATCHER_KEY = web.AppKey("dispatcher", OrderDispatcher)
METRICS_KEY = web.AppKey("metrics", OrderMetrics)
EVENT_STORE_KEY = web.AppKey("event_store", object)


def build_client(config: GatewayConfig) -> BybitHttpClient:
    if config.paper_trading:
        logger.warning("PAPER_TRADING enabled: orders are simulated, nothing reaches Bybit")
        return PaperExchangeClient(reference_price=config.paper_reference_price)
    return BybitHttpClient(recv_window=config.recv_window, timeout=config.request_timeout)


def build_dispatcher(
    config: GatewayConfig, client: BybitHttpClient, metrics: Optional[OrderMetrics] = None
) -> OrderDispatcher:
    """Wire reader, flattener and submitter for ``config``."""
    reader = MarketReader(client)
    flattener = PositionFlattener(
        client,
        reader,
        settle_timeout=config.settle_timeout,
        settle_interval=config.settle_poll_interval,
        cancel_open_orders=config.cancel_open_orders,
    )
    submitter = OrderSubmitter(
        client,
        reader,
        flattener,
        price_precision=config.price_precision,
        default_reduce_only=config.default_reduce_only,
    )
    return OrderDispatcher(submitter, config.accounts, metrics=metrics)


def _error(message: str, status: int, **extra: Any) -> web.Response:
    body: Dict[str, Any] = {"status": "error", "message": message}
    body.update(extra)
    return web.json_response(body, status=status)


async def _record(request: web.Request, payload: str, status: int, response: Dict[str, Any]) -> None:
    store = request.app[EVENT_STORE_KEY]
    if store is None:
        return
    try:
        await store.log("webhook", {"payload": payload, "status": status, "response": response})
    except OSError:
        logger.exception("Failed to append webhook event to %s", getattr(store, "path", "event store"))


async def handle_webhook(request: web.Request) -> web.Response:
    config = request.app[CONFIG_KEY]
    metrics = request.app[METRICS_KEY]
    body_bytes = await request.read()
    # Undecodable bytes become U+FFFD so a malformed body fails validation with 400
    raw = body_bytes.decode("utf-8", errors="replace")

    if not config.accounts:
        logger.error("Webhook received but no Bybit account is configured")
        metrics.record_webhook("error")
        body = {"status": "error", "message": "No Bybit accounts configured", "results": []}
        await _record(request, raw, 500, body)
        return web.json_response(body, status=500)

    try:
        order = parse_webhook_body(raw, request.content_type)
    except OrderValidationError as exc:
        logger.info("Rejected webhook: %s", exc)
        metrics.record_webhook("invalid")
        body = {"status": "error", "message": str(exc), "results": []}
        await _record(request, raw, 400, body)
        return web.json_response(body, status=400)

    try:
        outcome = await request.app[DISPATCHER_KEY].dispatch(order)
    except Exception as exc:
        logger.exception("Unexpected error while dispatching %s", order.symbol)
        metrics.record_webhook("error")
        await _record(request, raw, 500, {"error": str(exc)})
        return _error("Internal server error", 500, error=str(exc))

    results = [result.to_dict() for result in outcome.results]
    total = len(outcome.results)
    if outcome.success:
        status, body = 200, {
            "status": "success",
            "message": f"Order placed on {outcome.succeeded}/{total} account(s)",
            "results": results,
        }
        metrics.record_webhook("success")
    else:
        status, body = 400, {
            "status": "error",
            "message": f"Order failed on all {total} account(s)",
            "results": results,
        }
        metrics.record_webhook("rejected")
    await _record(request, raw, status, body)
    return web.json_response(body, status=status)


async def handle_health(request: web.Request) -> web.Response:
    config = request.app[CONFIG_KEY]
    return web.json_response({"status": "ok", "accounts": len(config.accounts), "paper": config.paper_trading})


async def handle_metrics(request: web.Request) -> web.Response:
    body = request.app[METRICS_KEY].render()
    return web.Response(body=body, headers={"Content-Type": CONTENT_TYPE_LATEST})


def create_app(
    config: GatewayConfig,
    dispatcher: Optional[OrderDispatcher] = None,
    client: Optional[BybitHttpClient] = None,
    event_store: Optional[EventStore] = None,
    metrics: Optional[OrderMetrics] = None,
) -> web.Application:
    """Build the web application.

    Collaborators default to the ones described by ``config``; tests pass a
    fake ``client`` (or a whole ``dispatcher``) to stay offline.
    """
    metrics = metrics or OrderMetrics()
    if dispatcher is None:
        dispatcher = build_dispatcher(config, client or build_client(config), metrics)
    if event_store is None and config.event_store_path:
        event_store = EventStore(config.event_store_path)

    app = web.Application()
    app[CONFIG_KEY] = config
    app[DISPATCHER_KEY] = dispatcher
    app[METRICS_KEY] = metrics
    app[EVENT_STORE_KEY] = event_store
    app.router.add_post("/webhook", handle_webhook)
    app.router.add_get("/healthz", handle_health)
    app.router.add_get("/metrics", handle_metrics)
    return app
