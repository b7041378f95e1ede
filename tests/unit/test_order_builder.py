"""Tests for the order body overrides."""

from __future__ import annotations

from gateway.models import OrderRequest
from gateway.services.order_builder import (
    base_body,
    build_order_body,
    with_position_index,
    with_price,
    with_protective_prices,
    with_reduce_only,
)


def _order(**fields) -> OrderRequest:
    data = {"symbol": "BTCUSDT", "side": "Buy", "orderType": "Market", "qty": "0.001"}
    data.update(fields)
    return OrderRequest.model_validate(data)


def test_market_order_body() -> None:
    body = build_order_body(_order())
    assert body == {
        "category": "linear",
        "symbol": "BTCUSDT",
        "side": "Buy",
        "orderType": "Market",
        "qty": "0.001",
        "reduceOnly": True,
    }
    assert list(body)[:5] == ["category", "symbol", "side", "orderType", "qty"]


def test_limit_order_gets_price_and_default_time_in_force() -> None:
    body = build_order_body(_order(orderType="Limit", price="30000"))
    assert body["price"] == "30000"
    assert body["timeInForce"] == "GTC"


def test_explicit_time_in_force_wins() -> None:
    body = build_order_body(_order(orderType="Limit", price="30000", timeInForce="PostOnly"))
    assert body["timeInForce"] == "PostOnly"
    assert build_order_body(_order(timeInForce="IOC"))["timeInForce"] == "IOC"


def test_market_order_never_carries_price() -> None:
    body = build_order_body(_order(price="30000"))
    assert "price" not in body
    assert "timeInForce" not in body


def test_reduce_only_default_and_override() -> None:
    assert build_order_body(_order(), default_reduce_only=False)["reduceOnly"] is False
    assert build_order_body(_order(reduceOnly=False))["reduceOnly"] is False
    assert build_order_body(_order(reduceOnly=True), default_reduce_only=False)["reduceOnly"] is True


def test_optional_fields_only_when_present() -> None:
    body = build_order_body(
        _order(
            positionIdx=1,
            closeOnTrigger=True,
            tpTriggerBy="MarkPrice",
            slTriggerBy="IndexPrice",
            orderLinkId="abc",
        )
    )
    assert body["positionIdx"] == 1
    assert body["closeOnTrigger"] is True
    assert body["tpTriggerBy"] == "MarkPrice"
    assert body["slTriggerBy"] == "IndexPrice"
    assert body["orderLinkId"] == "abc"
    plain = build_order_body(_order())
    for key in ("positionIdx", "closeOnTrigger", "tpTriggerBy", "slTriggerBy", "orderLinkId"):
        assert key not in plain


def test_position_index_zero_is_kept() -> None:
    assert with_position_index({}, _order(positionIdx=0)) == {"positionIdx": 0}


def test_protective_prices() -> None:
    body = build_order_body(_order(), take_profit="110.00", stop_loss="90.00")
    assert body["takeProfit"] == "110.00"
    assert body["stopLoss"] == "90.00"
    assert with_protective_prices({"a": 1}, stop_loss="5") == {"a": 1, "stopLoss": "5"}


def test_overrides_return_new_dicts() -> None:
    order = _order(orderType="Limit", price="1")
    base = base_body(order)
    priced = with_price(base, order)
    reduced = with_reduce_only(priced, order)
    assert "price" not in base
    assert priced is not base
    assert "reduceOnly" not in priced
    assert reduced["reduceOnly"] is True
