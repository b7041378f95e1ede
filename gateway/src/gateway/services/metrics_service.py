"""
Order Metrics
=============

Prometheus metrics for the gateway.  The collectors live in a registry
owned by the ``OrderMetrics`` instance instead of the global default
registry, so several instances (one per test, or one per app) can coexist
without duplicate-registration errors.

Metrics
-------

* ``gateway_webhooks_total{status=...}`` – webhooks by HTTP outcome
  (``success``, ``rejected``, ``invalid``, ``error``).
* ``gateway_orders_total{account=...,outcome=...}`` – per-account
  submissions, ``outcome`` is ``success`` or ``failure``.
* ``gateway_order_latency_seconds{account=...}`` – wall time of one
  account's flatten-and-submit pipeline.

Set ``PROMETHEUS_PORT`` to expose the registry over HTTP.
"""

from __future__ import annotations

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest, start_http_server

logger = logging.getLogger(__name__)


class OrderMetrics:
    """Counters and latency histogram for webhook and order outcomes."""

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.webhooks = Counter(
            "gateway_webhooks_total",
            "Webhooks received by outcome",
            labelnames=["status"],
            registry=self.registry,
        )
        self.orders = Counter(
            "gateway_orders_total",
            "Per-account order submissions by outcome",
            labelnames=["account", "outcome"],
            registry=self.registry,
        )
        self.latency = Histogram(
            "gateway_order_latency_seconds",
            "Per-account flatten and submit latency",
            labelnames=["account"],
            registry=self.registry,
        )

    def record_webhook(self, status: str) -> None:
        self.webhooks.labels(status=status).inc()

    def record_order(self, account: str, success: bool, seconds: float) -> None:
        outcome = "success" if success else "failure"
        self.orders.labels(account=account, outcome=outcome).inc()
        self.latency.labels(account=account).observe(seconds)

    def sample(self, name: str, **labels: str) -> float:
        """Current value of a sample, ``0.0`` when it was never recorded."""
        value = self.registry.get_sample_value(name, labels)
        return value if value is not None else 0.0

    def render(self) -> bytes:
        return generate_latest(self.registry)

    def serve(self, port: int) -> None:
        """Expose this registry on ``port`` in a background thread."""
        start_http_server(port, registry=self.registry)
        logger.info("Prometheus metrics on port %d", port)
