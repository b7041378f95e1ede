"""Tests for webhook body parsing.

Every supported wire format must end up as the same validated
``OrderRequest``; malformed bodies raise ``OrderValidationError``.
"""

from __future__ import annotations

import json

import pytest

from gateway.errors import OrderValidationError
from gateway.models import OrderType, Side
from gateway.signals import DELIMITED_FIELDS, parse_delimited, parse_webhook_body


def test_plain_delimited_string_sets_only_given_fields() -> None:
    order = parse_webhook_body(b"BTCUSDT,Buy,Market,0.001", "text/plain")
    assert order.symbol == "BTCUSDT"
    assert order.side is Side.BUY
    assert order.order_type is OrderType.MARKET
    assert order.quantity == "0.001"
    assert order.price is None
    assert order.time_in_force is None
    assert order.position_index is None
    assert order.reduce_only is None
    assert order.close_on_trigger is None
    assert order.take_profit_percent is None
    assert order.stop_loss_percent is None
    assert order.order_link_id is None


def test_full_delimited_string_maps_every_position() -> None:
    raw = "BTCUSDT,Sell,Limit,0.5,30000,IOC,2,false,true,10,5,MarkPrice,LastPrice,link-7"
    order = parse_webhook_body(raw, "text/plain")
    assert order.side is Side.SELL
    assert order.price == "30000"
    assert order.time_in_force == "IOC"
    assert order.position_index == 2
    assert order.reduce_only is False
    assert order.close_on_trigger is True
    assert order.take_profit_percent == "10"
    assert order.stop_loss_percent == "5"
    assert order.tp_trigger_by == "MarkPrice"
    assert order.sl_trigger_by == "LastPrice"
    assert order.order_link_id == "link-7"


def test_empty_segments_are_skipped() -> None:
    fields = parse_delimited("BTCUSDT,Buy,Market,1,,,,,,3")
    assert fields == {"symbol": "BTCUSDT", "side": "Buy", "orderType": "Market", "qty": "1", "takeProfit": "3"}


def test_json_object_body() -> None:
    body = json.dumps({"symbol": "ethusdt", "side": "buy", "orderType": "limit", "qty": 1, "price": 2000})
    order = parse_webhook_body(body, "application/json")
    assert order.symbol == "ETHUSDT"
    assert order.order_type is OrderType.LIMIT
    assert order.quantity == "1"
    assert order.price == "2000"


def test_json_string_body() -> None:
    order = parse_webhook_body('"BTCUSDT,Buy,Limit,0.001,30000,GTC"', "application/json")
    assert order.price == "30000"
    assert order.time_in_force == "GTC"


def test_signal_embedded_as_form_key() -> None:
    order = parse_webhook_body("BTCUSDT,Buy,Market,0.001", "application/x-www-form-urlencoded")
    assert order.symbol == "BTCUSDT"
    assert order.quantity == "0.001"


def test_signal_embedded_as_json_key() -> None:
    order = parse_webhook_body('{"BTCUSDT,Sell,Market,2": ""}', "application/json")
    assert order.side is Side.SELL
    assert order.quantity == "2"


def test_signal_with_overrides() -> None:
    body = json.dumps({"signal": "BTCUSDT,Buy,Market,0.001", "qty": "0.5", "takeProfit": "2", "reduceOnly": False})
    order = parse_webhook_body(body, "application/json")
    assert order.symbol == "BTCUSDT"
    assert order.quantity == "0.5"
    assert order.take_profit_percent == "2"
    assert order.reduce_only is False


def test_content_type_is_optional() -> None:
    assert parse_webhook_body("BTCUSDT,Buy,Market,1").quantity == "1"
    assert parse_webhook_body('{"symbol":"BTCUSDT","side":"Buy","orderType":"Market","qty":"1"}').quantity == "1"


def test_limit_signal_without_price_is_rejected() -> None:
    with pytest.raises(OrderValidationError, match="price is required"):
        parse_webhook_body("BTCUSDT,Buy,Limit,0.001", "text/plain")


def test_too_many_segments_is_rejected() -> None:
    raw = ",".join(["BTCUSDT", "Buy", "Market", "1"] + [""] * (len(DELIMITED_FIELDS) - 3))
    with pytest.raises(OrderValidationError, match="at most 14"):
        parse_webhook_body(raw, "text/plain")


@pytest.mark.parametrize("raw", [b"", b"   ", ",,,"])
def test_empty_body_is_rejected(raw: bytes) -> None:
    with pytest.raises(OrderValidationError):
        parse_webhook_body(raw, "text/plain")


@pytest.mark.parametrize("raw", ["{not json", "[1, 2]", "BTCUSDT,Buy"])
def test_malformed_bodies_are_rejected(raw: str) -> None:
    with pytest.raises(OrderValidationError):
        parse_webhook_body(raw, "application/json")


def test_validation_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        parse_webhook_body("BTCUSDT,Buy,Market,-1", "text/plain")
