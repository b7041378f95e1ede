"""
Order submitter.

Runs the per-account pipeline for a single validated order:

1. read the live position and ticker (best effort);
2. derive take-profit / stop-loss prices and build the order body;
3. flatten any open position on the symbol;
4. place the new order.

A failed flatten aborts the pipeline for that account.  The new order is
sent exactly once; exchange rejections are reported, never retried.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from ..clients.http_exchange import ORDER_CREATE
from ..errors import ExchangeError
from ..models import AccountCredential, AccountOrderResult, MarketSnapshot, OrderRequest, PositionSnapshot
from .order_builder import build_order_body
from .pricing import derive_protective_prices

logger = logging.getLogger(__name__)


class OrderSubmitter:
    def __init__(
        self,
        client,
        reader,
        flattener,
        *,
        price_precision: int = 2,
        default_reduce_only: bool = True,
    ) -> None:
        self.client = client
        self.reader = reader
        self.flattener = flattener
        self.price_precision = price_precision
        self.default_reduce_only = default_reduce_only

    async def _snapshots(
        self, credential: AccountCredential, symbol: str
    ) -> Tuple[Optional[PositionSnapshot], Optional[MarketSnapshot]]:
        position = market = None
        try:
            position = await self.reader.get_position(credential, symbol)
        except ExchangeError as exc:
            logger.warning("%s: position unavailable for %s: %s", credential.name, symbol, exc)
        try:
            market = await self.reader.get_market(credential, symbol)
        except ExchangeError as exc:
            logger.warning("%s: ticker unavailable for %s: %s", credential.name, symbol, exc)
        return position, market

    async def submit(self, credential: AccountCredential, order: OrderRequest) -> AccountOrderResult:
        """Flatten then place ``order`` on one account."""
        position, market = await self._snapshots(credential, order.symbol)
        take_profit, stop_loss = derive_protective_prices(order, position, market, self.price_precision)
        body = build_order_body(
            order,
            default_reduce_only=self.default_reduce_only,
            take_profit=take_profit,
            stop_loss=stop_loss,
        )

        flattened = await self.flattener.flatten(credential, order.symbol, order.side)
        if not flattened.success:
            logger.warning("%s: flatten failed for %s: %s", credential.name, order.symbol, flattened.message)
            return AccountOrderResult.failed(credential.name, f"Flatten failed: {flattened.message}")

        result = await self.client.request(credential, ORDER_CREATE, "POST", body)
        if result.ok:
            logger.info(
                "%s: %s %s %s %s placed",
                credential.name,
                order.side.value,
                order.order_type.value,
                order.quantity,
                order.symbol,
            )
            return AccountOrderResult.placed(credential.name, result.result)
        logger.warning("%s: order rejected: %s (%s)", credential.name, result.ret_msg, result.ret_code)
        return AccountOrderResult.failed(credential.name, result.ret_msg, result.ret_code)
