"""
Request signing for the Bybit v5 REST API.

Every private call carries four headers: the API key, a millisecond
timestamp, the receive window and an HMAC-SHA256 signature over::

    timestamp + api_key + recv_window + payload

where ``payload`` is the URL query string for GET requests (keys sorted,
pairs URL-encoded, joined with ``&``) and the exact JSON body for POST
requests.  The exchange recomputes the signature from what it receives,
so the signed payload must be byte-for-byte the one that is sent.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

from ..models import AccountCredential

RECV_WINDOW = "5000"
SIGN_TYPE = "2"  # HMAC


def sign(api_key: str, api_secret: str, timestamp: int, payload: str, recv_window: str = RECV_WINDOW) -> str:
    """Return the hex HMAC-SHA256 signature for one request."""
    message = f"{timestamp}{api_key}{recv_window}{payload}".encode("utf-8")
    return hmac.new(api_secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def canonical_query(params: Optional[Mapping[str, Any]]) -> str:
    """Build the sorted, URL-encoded query string used for GET requests."""
    if not params:
        return ""
    pairs = sorted((str(key), _query_value(value)) for key, value in params.items() if value is not None)
    return urlencode(pairs)


def canonical_body(params: Optional[Mapping[str, Any]]) -> str:
    """Serialise a POST body, keeping the key order it was built with."""
    body = {key: value for key, value in (params or {}).items() if value is not None}
    return json.dumps(body, separators=(",", ":"), ensure_ascii=False)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class SignedRequest:
    """Signature material for exactly one HTTP call."""

    timestamp: int
    payload: str
    signature: str
    recv_window: str = RECV_WINDOW

    def headers(self, api_key: str) -> Dict[str, str]:
        return {
            "X-BAPI-API-KEY": api_key,
            "X-BAPI-TIMESTAMP": str(self.timestamp),
            "X-BAPI-RECV-WINDOW": self.recv_window,
            "X-BAPI-SIGN": self.signature,
            "X-BAPI-SIGN-TYPE": SIGN_TYPE,
            "Content-Type": "application/json",
        }


def sign_request(
    credential: AccountCredential,
    payload: str,
    recv_window: str = RECV_WINDOW,
    timestamp: Optional[int] = None,
) -> SignedRequest:
    """Stamp and sign ``payload`` for ``credential``.

    A new timestamp is taken on every call unless one is supplied, so a
    retried logical request always gets a fresh signature.
    """
    ts = now_ms() if timestamp is None else timestamp
    signature = sign(credential.api_key, credential.api_secret, ts, payload, recv_window)
    return SignedRequest(timestamp=ts, payload=payload, signature=signature, recv_window=recv_window)
