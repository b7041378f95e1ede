"""Tests for the event store and the Prometheus order metrics."""

from __future__ import annotations

import asyncio
import json
from decimal import Decimal

import pytest

from gateway.services.event_store import EventStore
from gateway.services.metrics_service import OrderMetrics


@pytest.mark.asyncio
async def test_event_store_appends_json_lines(tmp_path) -> None:
    store = EventStore(str(tmp_path / "logs" / "events.jsonl"))
    await store.log("webhook", {"payload": "BTCUSDT,Buy,Market,1", "status": 200})
    await store.log("webhook", {"price": Decimal("1.5")})
    lines = (tmp_path / "logs" / "events.jsonl").read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert first["type"] == "webhook"
    assert first["data"]["status"] == 200
    assert isinstance(first["ts"], float)
    assert json.loads(lines[1])["data"]["price"] == "1.5"


@pytest.mark.asyncio
async def test_event_store_concurrent_writes_do_not_interleave(tmp_path) -> None:
    store = EventStore(str(tmp_path / "events.jsonl"))
    await asyncio.gather(*(store.log("webhook", {"n": n, "blob": "x" * 2000}) for n in range(25)))
    records = store.read_all()
    assert sorted(record["data"]["n"] for record in records) == list(range(25))


def test_event_store_read_all_when_missing(tmp_path) -> None:
    assert EventStore(str(tmp_path / "none.jsonl")).read_all() == []


def test_metrics_instances_are_independent() -> None:
    first = OrderMetrics()
    second = OrderMetrics()
    first.record_webhook("success")
    first.record_webhook("success")
    second.record_webhook("invalid")
    assert first.sample("gateway_webhooks_total", status="success") == 2.0
    assert second.sample("gateway_webhooks_total", status="success") == 0.0
    assert second.sample("gateway_webhooks_total", status="invalid") == 1.0


def test_metrics_render_exposition_text() -> None:
    metrics = OrderMetrics()
    metrics.record_order("bybit1", False, 0.2)
    text = metrics.render().decode("utf-8")
    assert 'gateway_orders_total{account="bybit1",outcome="failure"} 1.0' in text
    assert "gateway_order_latency_seconds_bucket" in text
