"""Take-profit / stop-loss price derivation from percentage inputs."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Tuple

from ..models import MarketSnapshot, OrderRequest, PositionSnapshot, Side, to_decimal

logger = logging.getLogger(__name__)

_HUNDRED = Decimal("100")


def resolve_base_price(position: PositionSnapshot, market: MarketSnapshot) -> Optional[Decimal]:
    """Entry price, else mark price, else last traded price; ``None`` if none is positive."""
    for candidate in (position.entry_price, position.mark_price, market.last_price):
        value = to_decimal(candidate)
        if value > 0:
            return value
    return None


def quantize_price(value: Decimal, precision: int) -> str:
    exponent = Decimal(1).scaleb(-precision)
    return format(value.quantize(exponent, rounding=ROUND_HALF_UP), "f")


def protective_price(
    base: Decimal, percent: str, side: Side, *, take_profit: bool, precision: int
) -> Optional[str]:
    """Absolute TP or SL price, or ``None`` when it would not be positive."""
    pct = Decimal(percent) / _HUNDRED
    # TP sits above entry for longs and below for shorts, SL the reverse
    upward = (side is Side.BUY) == take_profit
    factor = Decimal(1) + pct if upward else Decimal(1) - pct
    price = quantize_price(base * factor, precision)
    if Decimal(price) <= 0:
        return None
    return price


def derive_protective_prices(
    order: OrderRequest,
    position: Optional[PositionSnapshot],
    market: Optional[MarketSnapshot],
    precision: int = 2,
) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(take_profit, stop_loss)`` absolute prices for ``order``.

    Either element is ``None`` when its percentage was not supplied or
    would put the price at or below zero.  Both are ``None`` when a
    snapshot is missing or no positive base price exists.
    """
    if order.take_profit_percent is None and order.stop_loss_percent is None:
        return None, None
    if position is None or market is None:
        logger.warning("%s: position or market data unavailable, skipping TP/SL", order.symbol)
        return None, None
    base = resolve_base_price(position, market)
    if base is None:
        logger.warning("%s: no positive base price, skipping TP/SL", order.symbol)
        return None, None

    take_profit: Optional[str] = None
    stop_loss: Optional[str] = None
    if order.take_profit_percent is not None:
        take_profit = protective_price(
            base, order.take_profit_percent, order.side, take_profit=True, precision=precision
        )
        if take_profit is None:
            logger.warning(
                "%s: takeProfit %s%% from %s is not a positive price, skipping TP",
                order.symbol,
                order.take_profit_percent,
                base,
            )
    if order.stop_loss_percent is not None:
        stop_loss = protective_price(base, order.stop_loss_percent, order.side, take_profit=False, precision=precision)
        if stop_loss is None:
            logger.warning(
                "%s: stopLoss %s%% from %s is not a positive price, skipping SL",
                order.symbol,
                order.stop_loss_percent,
                base,
            )
    logger.debug("%s: base %s -> TP %s SL %s", order.symbol, base, take_profit, stop_loss)
    return take_profit, stop_loss
