"""
Order body construction for ``/v5/order/create``.

The body starts from the fields every order carries and is then passed
through a fixed chain of overrides.  Each override takes the body and the
validated :class:`~gateway.models.OrderRequest` and returns a new dict,
adding its fields only when they apply.  Key order is preserved because
the JSON body is signed exactly as serialised.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from ..clients.http_exchange import CATEGORY
from ..models import OrderRequest, OrderType

Body = Dict[str, Any]


def base_body(order: OrderRequest) -> Body:
    return {
        "category": CATEGORY,
        "symbol": order.symbol,
        "side": order.side.value,
        "orderType": order.order_type.value,
        "qty": order.quantity,
    }


def with_price(body: Body, order: OrderRequest) -> Body:
    if order.order_type is OrderType.LIMIT and order.price is not None:
        return {**body, "price": order.price}
    return dict(body)


def with_time_in_force(body: Body, order: OrderRequest) -> Body:
    if order.time_in_force:
        return {**body, "timeInForce": order.time_in_force}
    if order.order_type is OrderType.LIMIT:
        return {**body, "timeInForce": "GTC"}
    return dict(body)


def with_position_index(body: Body, order: OrderRequest) -> Body:
    if order.position_index is None:
        return dict(body)
    return {**body, "positionIdx": order.position_index}


def with_reduce_only(body: Body, order: OrderRequest, default: bool = True) -> Body:
    reduce_only = default if order.reduce_only is None else order.reduce_only
    return {**body, "reduceOnly": reduce_only}


def with_close_on_trigger(body: Body, order: OrderRequest) -> Body:
    if order.close_on_trigger is None:
        return dict(body)
    return {**body, "closeOnTrigger": order.close_on_trigger}


def with_trigger_by(body: Body, order: OrderRequest) -> Body:
    updated = dict(body)
    if order.tp_trigger_by:
        updated["tpTriggerBy"] = order.tp_trigger_by
    if order.sl_trigger_by:
        updated["slTriggerBy"] = order.sl_trigger_by
    return updated


def with_order_link_id(body: Body, order: OrderRequest) -> Body:
    if not order.order_link_id:
        return dict(body)
    return {**body, "orderLinkId": order.order_link_id}


def with_protective_prices(body: Body, take_profit: Optional[str] = None, stop_loss: Optional[str] = None) -> Body:
    updated = dict(body)
    if take_profit is not None:
        updated["takeProfit"] = take_profit
    if stop_loss is not None:
        updated["stopLoss"] = stop_loss
    return updated


def build_order_body(
    order: OrderRequest,
    *,
    default_reduce_only: bool = True,
    take_profit: Optional[str] = None,
    stop_loss: Optional[str] = None,
) -> Body:
    """Assemble the full create-order body for one account."""
    body = base_body(order)
    body = with_price(body, order)
    body = with_time_in_force(body, order)
    body = with_position_index(body, order)
    body = with_reduce_only(body, order, default_reduce_only)
    body = with_close_on_trigger(body, order)
    body = with_trigger_by(body, order)
    body = with_order_link_id(body, order)
    return with_protective_prices(body, take_profit, stop_loss)
