"""
Position flattener.

Closes any open position on a symbol before a new order is placed, so
every signal starts from a flat book ("close-then-open").  Each open leg
is closed with a reduce-only market order on the opposite side for its
full size (in hedge mode both legs may be open).  Afterwards the position
endpoint is polled until every entry reports zero size; if that does not
happen within the settle timeout the flatten is reported as failed and
the caller must not place the new order.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Awaitable, Callable, List, Optional, Tuple

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    retry_if_result,
    stop_after_delay,
    wait_fixed,
)

from ..clients.http_exchange import CATEGORY, ORDER_CANCEL_ALL, ORDER_CREATE
from ..errors import ExchangeError
from ..models import AccountCredential, FlattenResult, PositionSnapshot, Side

logger = logging.getLogger(__name__)


class PositionFlattener:
    def __init__(
        self,
        client,
        reader,
        *,
        settle_timeout: float = 5.0,
        settle_interval: float = 0.5,
        cancel_open_orders: bool = False,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Create a flattener.

        Args:
            client: Transport exposing ``request(credential, endpoint, method, params)``.
            reader: :class:`~gateway.services.market_reader.MarketReader`.
            settle_timeout: Seconds to wait for the position to report zero size.
            settle_interval: Seconds between position reads while waiting.
            cancel_open_orders: Cancel resting orders on the symbol before closing.
            sleep: Coroutine used between polls; tests pass a no-op.
        """
        self.client = client
        self.reader = reader
        self.settle_timeout = settle_timeout
        self.settle_interval = settle_interval
        self.cancel_open_orders = cancel_open_orders
        self._sleep = sleep

    async def flatten(self, credential: AccountCredential, symbol: str, incoming_side: Side) -> FlattenResult:
        try:
            positions = await self.reader.get_positions(credential, symbol)
        except ExchangeError as exc:
            logger.warning("%s: cannot read %s position: %s", credential.name, symbol, exc)
            return FlattenResult(success=False, message=f"Position read failed: {exc.ret_msg}")

        # Hedge mode reports one entry per leg; each open leg is closed on its own positionIdx
        legs: List[Tuple[PositionSnapshot, Side]] = []
        for position in positions:
            if position.is_flat:
                continue
            try:
                legs.append((position, Side(position.side)))
            except ValueError:
                return FlattenResult(
                    success=False,
                    message=f"Open position of size {position.size} has unknown side {position.side!r}",
                )
        if not legs:
            return FlattenResult(success=True, message="No open position, nothing to close")

        total = sum((position.size_value for position, _ in legs), Decimal("0"))
        size = format(total, "f")
        logger.info(
            "%s: closing %d leg(s) totalling %s %s before new %s order",
            credential.name,
            len(legs),
            size,
            symbol,
            incoming_side.value,
        )

        if self.cancel_open_orders:
            cancelled = await self.client.request(
                credential, ORDER_CANCEL_ALL, "POST", {"category": CATEGORY, "symbol": symbol}
            )
            if not cancelled.ok:
                return FlattenResult(success=False, message=f"Cancel open orders failed: {cancelled.ret_msg}")

        order_ids: List[str] = []
        for position, existing in legs:
            body = {
                "category": CATEGORY,
                "symbol": symbol,
                "side": existing.opposite.value,
                "orderType": "Market",
                "qty": format(position.size_value, "f"),
                "reduceOnly": True,
            }
            if position.position_index:
                body["positionIdx"] = position.position_index
            closed = await self.client.request(credential, ORDER_CREATE, "POST", body)
            if not closed.ok:
                logger.warning(
                    "%s: close order rejected: %s (%s)", credential.name, closed.ret_msg, closed.ret_code
                )
                return FlattenResult(success=False, message=closed.ret_msg or f"retCode {closed.ret_code}")
            if isinstance(closed.result, dict) and closed.result.get("orderId"):
                order_ids.append(str(closed.result["orderId"]))
        order_id: Optional[str] = ",".join(order_ids) or None

        if not await self._wait_until_flat(credential, symbol):
            return FlattenResult(
                success=False,
                message=f"Position on {symbol} not flat after {self.settle_timeout:g}s",
                closed_size=size,
                order_id=order_id,
            )
        logger.info("%s: %s position closed", credential.name, symbol)
        return FlattenResult(success=True, message="Position closed", closed_size=size, order_id=order_id)

    async def _is_flat(self, credential: AccountCredential, symbol: str) -> bool:
        positions = await self.reader.get_positions(credential, symbol)
        return all(position.is_flat for position in positions)

    async def _wait_until_flat(self, credential: AccountCredential, symbol: str) -> bool:
        retrying = AsyncRetrying(
            stop=stop_after_delay(self.settle_timeout),
            wait=wait_fixed(self.settle_interval),
            retry=retry_if_result(lambda flat: not flat) | retry_if_exception_type(ExchangeError),
            retry_error_callback=lambda state: False,
            sleep=self._sleep,
        )
        return await retrying(self._is_flat, credential, symbol)
