"""Tests for the multi-account dispatcher."""

from __future__ import annotations

import asyncio

import pytest

from bybit_fakes import credential
from gateway.models import AccountOrderResult, OrderRequest
from gateway.services.dispatcher import OrderDispatcher
from gateway.services.metrics_service import OrderMetrics

ORDER = OrderRequest.model_validate({"symbol": "BTCUSDT", "side": "Buy", "orderType": "Market", "qty": "1"})


class FakeSubmitter:
    """Answers per account: a result, or an exception to raise."""

    def __init__(self, outcomes) -> None:
        self.outcomes = outcomes
        self.seen = []

    async def submit(self, cred, order):
        self.seen.append((cred.name, order.symbol))
        outcome = self.outcomes[cred.name]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.mark.asyncio
async def test_one_failing_account_does_not_affect_the_other() -> None:
    submitter = FakeSubmitter(
        {
            "bybit1": AccountOrderResult.placed("bybit1", {"orderId": "1"}),
            "bybit2": RuntimeError("boom"),
        }
    )
    dispatcher = OrderDispatcher(submitter, [credential("bybit1"), credential("bybit2")])
    outcome = await dispatcher.dispatch(ORDER)
    assert outcome.success
    assert [r.account for r in outcome.results] == ["bybit1", "bybit2"]
    assert outcome.results[0].success
    assert not outcome.results[1].success
    assert outcome.results[1].error == "boom"
    assert outcome.succeeded == 1


@pytest.mark.asyncio
async def test_all_failed_is_not_success() -> None:
    submitter = FakeSubmitter(
        {
            "bybit1": AccountOrderResult.failed("bybit1", "insufficient balance", 110007),
            "bybit2": AccountOrderResult.failed("bybit2", "Flatten failed: timeout"),
        }
    )
    outcome = await OrderDispatcher(submitter, [credential("bybit1"), credential("bybit2")]).dispatch(ORDER)
    assert not outcome.success
    assert len(outcome.results) == 2


@pytest.mark.asyncio
async def test_results_keep_account_order() -> None:
    names = [f"bybit{i}" for i in range(1, 6)]
    submitter = FakeSubmitter({name: AccountOrderResult.placed(name, {}) for name in names})
    outcome = await OrderDispatcher(submitter, [credential(name) for name in names]).dispatch(ORDER)
    assert [r.account for r in outcome.results] == names


@pytest.mark.asyncio
async def test_accounts_run_concurrently() -> None:
    both_started = asyncio.Event()
    started = []

    class GatedSubmitter:
        async def submit(self, cred, order):
            started.append(cred.name)
            if len(started) == 2:
                both_started.set()
            await both_started.wait()
            return AccountOrderResult.placed(cred.name, {})

    dispatcher = OrderDispatcher(GatedSubmitter(), [credential("bybit1"), credential("bybit2")])
    outcome = await asyncio.wait_for(dispatcher.dispatch(ORDER), timeout=1)
    assert outcome.succeeded == 2


@pytest.mark.asyncio
async def test_no_accounts_yields_empty_failure() -> None:
    outcome = await OrderDispatcher(FakeSubmitter({}), []).dispatch(ORDER)
    assert outcome.results == []
    assert not outcome.success


@pytest.mark.asyncio
async def test_outcomes_are_recorded_in_metrics() -> None:
    metrics = OrderMetrics()
    submitter = FakeSubmitter(
        {
            "bybit1": AccountOrderResult.placed("bybit1", {}),
            "bybit2": ValueError("bad"),
        }
    )
    await OrderDispatcher(submitter, [credential("bybit1"), credential("bybit2")], metrics=metrics).dispatch(ORDER)
    assert metrics.sample("gateway_orders_total", account="bybit1", outcome="success") == 1.0
    assert metrics.sample("gateway_orders_total", account="bybit2", outcome="failure") == 1.0
    assert metrics.sample("gateway_order_latency_seconds_count", account="bybit1") == 1.0
