"""
Market and position reader.

Fetches the live position and ticker for a symbol immediately before
they are needed.  Nothing is cached: the exchange's state can change
between two webhooks (or between two steps of the same webhook), so each
call goes back to the API.

Both readers raise :class:`~gateway.errors.ExchangeError` when the
exchange answers with a non-zero ``retCode`` and return ``None`` when the
answer contains no entry for the symbol.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..clients.http_exchange import CATEGORY, MARKET_TICKERS, POSITION_LIST
from ..errors import ExchangeError
from ..models import AccountCredential, ApiResult, MarketSnapshot, PositionSnapshot, to_decimal

logger = logging.getLogger(__name__)


def _entries(result: ApiResult) -> List[Dict[str, Any]]:
    payload = result.result if isinstance(result.result, dict) else {}
    items = payload.get("list") or []
    return [item for item in items if isinstance(item, dict)]


def _text(item: Dict[str, Any], *keys: str, default: str = "0") -> str:
    for key in keys:
        value = item.get(key)
        if value not in (None, ""):
            return str(value)
    return default


def parse_position(item: Dict[str, Any]) -> PositionSnapshot:
    try:
        position_index = int(item.get("positionIdx") or 0)
    except (TypeError, ValueError):
        position_index = 0
    return PositionSnapshot(
        symbol=str(item.get("symbol") or ""),
        side=str(item.get("side") or ""),
        size=_text(item, "size"),
        entry_price=_text(item, "avgPrice", "entryPrice"),
        mark_price=_text(item, "markPrice"),
        leverage=_text(item, "leverage"),
        position_index=position_index,
    )


def parse_ticker(item: Dict[str, Any]) -> MarketSnapshot:
    return MarketSnapshot(
        symbol=str(item.get("symbol") or ""),
        last_price=_text(item, "lastPrice"),
        high_price_24h=_text(item, "highPrice24h"),
        low_price_24h=_text(item, "lowPrice24h"),
        volume_24h=_text(item, "volume24h"),
        funding_rate=_text(item, "fundingRate"),
    )


class MarketReader:
    """Read-only access to live position and ticker data."""

    def __init__(self, client) -> None:
        self.client = client

    async def get_positions(self, credential: AccountCredential, symbol: str) -> List[PositionSnapshot]:
        """Every entry for ``symbol``: one in one-way mode, one per leg in hedge mode."""
        result = await self.client.request(
            credential, POSITION_LIST, "GET", {"category": CATEGORY, "symbol": symbol}
        )
        if not result.ok:
            raise ExchangeError(result.ret_code, result.ret_msg)
        return [parse_position(item) for item in _entries(result) if item.get("symbol") == symbol]

    async def get_position(self, credential: AccountCredential, symbol: str) -> Optional[PositionSnapshot]:
        matches = await self.get_positions(credential, symbol)
        if not matches:
            logger.debug("%s: no position entry for %s", credential.name, symbol)
            return None
        # Hedge mode lists one entry per direction; prefer the open one
        for snapshot in matches:
            if not snapshot.is_flat:
                return snapshot
        return matches[0]

    async def get_market(self, credential: AccountCredential, symbol: str) -> Optional[MarketSnapshot]:
        result = await self.client.request(
            credential, MARKET_TICKERS, "GET", {"category": CATEGORY, "symbol": symbol}
        )
        if not result.ok:
            raise ExchangeError(result.ret_code, result.ret_msg)
        for item in _entries(result):
            if item.get("symbol") == symbol:
                snapshot = parse_ticker(item)
                if to_decimal(snapshot.last_price) <= 0:
                    logger.warning("%s: ticker for %s has no last price", credential.name, symbol)
                return snapshot
        logger.debug("%s: no ticker entry for %s", credential.name, symbol)
        return None
