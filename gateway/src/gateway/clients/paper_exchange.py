"""
Paper exchange client for simulation.

This client is used in paper trading mode to run the full order pipeline
without touching the Bybit REST API.  It answers the four endpoints the
gateway uses from an in-memory book of positions keyed by account and
symbol:

* market orders fill immediately at the reference price;
* limit orders rest as open orders and never fill;
* reduce-only orders are rejected when there is nothing to reduce, the
  same way the exchange rejects them (``retCode`` 110017).

No matching engine logic is implemented.  Responses mimic the shape of
the real API closely enough for the reader and flattener to parse them.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..models import AccountCredential, ApiResult
from .http_exchange import (
    BybitHttpClient,
    MARKET_TICKERS,
    ORDER_CANCEL_ALL,
    ORDER_CREATE,
    POSITION_LIST,
)

REDUCE_ONLY_REJECTED = 110017
PARAMS_ERROR = 10001


@dataclass
class _PaperPosition:
    side: str = ""
    size: Decimal = Decimal("0")
    avg_price: Decimal = Decimal("0")


class PaperExchangeClient(BybitHttpClient):
    """Simulate the Bybit endpoints used by the gateway."""

    def __init__(self, reference_price: str = "100", leverage: str = "10") -> None:
        super().__init__()
        self.reference_price = Decimal(reference_price)
        self.leverage = leverage
        self.prices: Dict[str, Decimal] = {}
        self.positions: Dict[Tuple[str, str], _PaperPosition] = {}
        self.open_orders: Dict[Tuple[str, str], List[Dict[str, Any]]] = {}
        #: Every call as ``(account, method, endpoint, params)``.
        self.calls: List[Tuple[str, str, str, Dict[str, Any]]] = []

    def set_price(self, symbol: str, price: str) -> None:
        self.prices[symbol] = Decimal(price)

    def set_position(self, account: str, symbol: str, side: str, size: str, avg_price: str = "0") -> None:
        self.positions[(account, symbol)] = _PaperPosition(side=side, size=Decimal(size), avg_price=Decimal(avg_price))

    def _price(self, symbol: str) -> Decimal:
        return self.prices.get(symbol, self.reference_price)

    async def request(
        self,
        credential: AccountCredential,
        endpoint: str,
        method: str = "GET",
        params: Optional[Mapping[str, Any]] = None,
    ) -> ApiResult:
        params = dict(params or {})
        self.calls.append((credential.name, method.upper(), endpoint, params))
        # Simulate network latency without slowing tests down
        await asyncio.sleep(0)
        if endpoint == POSITION_LIST:
            return self._position_list(credential.name, params)
        if endpoint == MARKET_TICKERS:
            return self._tickers(params)
        if endpoint == ORDER_CREATE:
            return self._create_order(credential.name, params)
        if endpoint == ORDER_CANCEL_ALL:
            return self._cancel_all(credential.name, params)
        return ApiResult(ret_code=PARAMS_ERROR, ret_msg=f"Unsupported endpoint in paper mode: {endpoint}")

    def _position_list(self, account: str, params: Dict[str, Any]) -> ApiResult:
        symbol = str(params.get("symbol") or "")
        pos = self.positions.get((account, symbol), _PaperPosition())
        entry = {
            "symbol": symbol,
            "side": pos.side,
            "size": format(pos.size, "f"),
            "avgPrice": format(pos.avg_price, "f"),
            "markPrice": format(self._price(symbol), "f"),
            "leverage": self.leverage,
            "positionIdx": 0,
        }
        return ApiResult(ret_code=0, ret_msg="OK", result={"category": "linear", "list": [entry]})

    def _tickers(self, params: Dict[str, Any]) -> ApiResult:
        symbol = str(params.get("symbol") or "")
        price = self._price(symbol)
        entry = {
            "symbol": symbol,
            "lastPrice": format(price, "f"),
            "highPrice24h": format(price, "f"),
            "lowPrice24h": format(price, "f"),
            "volume24h": "0",
            "fundingRate": "0.0001",
        }
        return ApiResult(ret_code=0, ret_msg="OK", result={"category": "linear", "list": [entry]})

    def _create_order(self, account: str, params: Dict[str, Any]) -> ApiResult:
        symbol = str(params.get("symbol") or "")
        side = params.get("side")
        try:
            qty = Decimal(str(params.get("qty")))
        except InvalidOperation:
            return ApiResult(ret_code=PARAMS_ERROR, ret_msg="params error: qty invalid")
        if not symbol or side not in ("Buy", "Sell") or not qty.is_finite() or qty <= 0:
            return ApiResult(ret_code=PARAMS_ERROR, ret_msg="params error: symbol, side and qty are required")
        order = {
            "orderId": str(uuid.uuid4()),
            "orderLinkId": params.get("orderLinkId", ""),
        }
        key = (account, symbol)
        pos = self.positions.setdefault(key, _PaperPosition())
        if params.get("reduceOnly") and (pos.size == 0 or pos.side == side):
            return ApiResult(
                ret_code=REDUCE_ONLY_REJECTED,
                ret_msg="current position is zero, cannot fix reduce-only order qty",
            )
        if params.get("orderType") == "Limit":
            self.open_orders.setdefault(key, []).append({**params, **order})
            return ApiResult(ret_code=0, ret_msg="OK", result=order)
        self._fill(pos, side, qty, self._price(symbol), bool(params.get("reduceOnly")))
        return ApiResult(ret_code=0, ret_msg="OK", result=order)

    @staticmethod
    def _fill(pos: _PaperPosition, side: str, qty: Decimal, price: Decimal, reduce_only: bool) -> None:
        if pos.size == 0:
            pos.side, pos.size, pos.avg_price = side, qty, price
        elif pos.side == side:
            total = pos.size + qty
            pos.avg_price = (pos.avg_price * pos.size + price * qty) / total
            pos.size = total
        elif qty < pos.size or reduce_only:
            pos.size = max(pos.size - qty, Decimal("0"))
        elif qty == pos.size:
            pos.size = Decimal("0")
        else:
            pos.side, pos.size, pos.avg_price = side, qty - pos.size, price
        if pos.size == 0:
            pos.side, pos.avg_price = "", Decimal("0")

    def _cancel_all(self, account: str, params: Dict[str, Any]) -> ApiResult:
        symbol = str(params.get("symbol") or "")
        cancelled = self.open_orders.pop((account, symbol), [])
        listed = [{"orderId": o["orderId"], "orderLinkId": o.get("orderLinkId", "")} for o in cancelled]
        return ApiResult(ret_code=0, ret_msg="OK", result={"list": listed, "success": "1"})
