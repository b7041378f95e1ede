"""
HTTP exchange client with request signing.

This module defines the asynchronous transport for the Bybit v5 REST API.
Every call is signed with a fresh timestamp (see :mod:`.signer`) and every
response, including network failures and HTTP errors, is normalised into
an :class:`~gateway.models.ApiResult`.  Callers therefore never handle
transport exceptions; they check ``result.ok`` (``retCode == 0``).

The client performs exactly one attempt per call.  Order placement is not
idempotent on the exchange side, so retrying here could double-submit.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Mapping, Optional

import aiohttp
from yarl import URL

from ..models import AccountCredential, ApiResult
from .signer import RECV_WINDOW, canonical_body, canonical_query, sign_request

logger = logging.getLogger(__name__)

CATEGORY = "linear"  # USDT perpetuals

ORDER_CREATE = "/v5/order/create"
ORDER_CANCEL_ALL = "/v5/order/cancel-all"
POSITION_LIST = "/v5/position/list"
MARKET_TICKERS = "/v5/market/tickers"

_BODY_PREVIEW = 200


class BybitHttpClient:
    """Asynchronous Bybit REST client returning uniform results."""

    def __init__(
        self,
        *,
        recv_window: str = RECV_WINDOW,
        timeout: float = 10.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """Construct the HTTP client.

        Args:
            recv_window: Receive window sent with and signed into each call.
            timeout: Total timeout in seconds for a single HTTP call.
            session: Optional shared session.  When omitted a short-lived
                session is opened per request.
        """
        self.recv_window = recv_window
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session

    async def request(
        self,
        credential: AccountCredential,
        endpoint: str,
        method: str = "GET",
        params: Optional[Mapping[str, Any]] = None,
    ) -> ApiResult:
        method = method.upper()
        if method == "GET":
            payload = canonical_query(params)
            url = f"{credential.base_url}{endpoint}"
            if payload:
                url = f"{url}?{payload}"
            body: Optional[str] = None
        else:
            payload = canonical_body(params)
            url = f"{credential.base_url}{endpoint}"
            body = payload
        signed = sign_request(credential, payload, self.recv_window)
        headers = signed.headers(credential.api_key)
        logger.debug("%s %s for %s", method, endpoint, credential.name)
        try:
            if self._session is not None:
                return await self._send(self._session, method, url, headers, body)
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                return await self._send(session, method, url, headers, body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            message = str(exc) or type(exc).__name__
            logger.warning("%s %s failed for %s: %s", method, endpoint, credential.name, message)
            return ApiResult.failure(message)

    async def _send(
        self,
        session: aiohttp.ClientSession,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Optional[str],
    ) -> ApiResult:
        # encoded=True keeps the query string exactly as it was signed
        async with session.request(
            method, URL(url, encoded=True), headers=headers, data=body, timeout=self.timeout
        ) as resp:
            raw = await resp.read()
            return self._normalise(resp.status, raw.decode("utf-8", errors="replace"))

    @staticmethod
    def _normalise(status: int, text: str) -> ApiResult:
        try:
            data = json.loads(text) if text else None
        except ValueError:
            data = None
        if isinstance(data, dict) and "retCode" in data:
            try:
                ret_code = int(data["retCode"])
            except (TypeError, ValueError):
                ret_code = -1
            ret_msg = str(data.get("retMsg") or "")
            if status >= 400 and not ret_msg:
                ret_msg = f"HTTP {status}"
            if status >= 400 and ret_code == 0:
                ret_code = -1
            return ApiResult(ret_code=ret_code, ret_msg=ret_msg, result=data.get("result"))
        preview = (text or "")[:_BODY_PREVIEW]
        if status >= 400:
            # Avoid logging full response bodies; truncate to prevent leakage
            logger.error("REST API error %s: %s", status, preview)
            if isinstance(data, dict) and data.get("retMsg"):
                return ApiResult.failure(str(data["retMsg"]))
            return ApiResult.failure(f"HTTP {status}: {preview}" if preview else f"HTTP {status}")
        logger.error("Unexpected response body (HTTP %s): %s", status, preview)
        return ApiResult.failure(f"Invalid response from exchange (HTTP {status})")

    # Convenience methods for common endpoints
    async def create_order(self, credential: AccountCredential, body: Mapping[str, Any]) -> ApiResult:
        return await self.request(credential, ORDER_CREATE, "POST", body)

    async def cancel_all_orders(self, credential: AccountCredential, symbol: str) -> ApiResult:
        return await self.request(credential, ORDER_CANCEL_ALL, "POST", {"category": CATEGORY, "symbol": symbol})

    async def get_positions(self, credential: AccountCredential, symbol: str) -> ApiResult:
        return await self.request(credential, POSITION_LIST, "GET", {"category": CATEGORY, "symbol": symbol})

    async def get_tickers(self, credential: AccountCredential, symbol: str) -> ApiResult:
        return await self.request(credential, MARKET_TICKERS, "GET", {"category": CATEGORY, "symbol": symbol})
