"""
Inbound signal parsing.

Alerting tools post orders in several shapes, all of which end up as the
same validated :class:`~gateway.models.OrderRequest`:

* a JSON object whose keys are order fields (``{"symbol": "BTCUSDT", ...}``);
* a comma-delimited string, either as a ``text/plain`` body, a JSON string,
  or as the only key of a form / JSON object with an empty value (this is
  how a bare string arrives when the sender posts it as a form);
* a JSON object with a ``signal`` key holding a delimited string, whose
  other keys override the positional fields.

The delimited layout is::

    symbol,side,orderType,qty,price,timeInForce,positionIdx,reduceOnly,
    closeOnTrigger,takeProfit,stopLoss,tpTriggerBy,slTriggerBy,orderLinkId

Fields after ``qty`` are optional and empty segments mean "unset".
"""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import parse_qsl

from pydantic import ValidationError

from .errors import OrderValidationError
from .models import OrderRequest

DELIMITED_FIELDS = (
    "symbol",
    "side",
    "orderType",
    "qty",
    "price",
    "timeInForce",
    "positionIdx",
    "reduceOnly",
    "closeOnTrigger",
    "takeProfit",
    "stopLoss",
    "tpTriggerBy",
    "slTriggerBy",
    "orderLinkId",
)

SIGNAL_KEY = "signal"


def parse_delimited(text: str) -> Dict[str, str]:
    """Map a delimited signal onto wire field names, skipping empty segments."""
    segments = [segment.strip() for segment in text.strip().split(",")]
    if not any(segments):
        raise OrderValidationError("signal string is empty")
    if len(segments) > len(DELIMITED_FIELDS):
        raise OrderValidationError(
            f"signal string has {len(segments)} fields, at most {len(DELIMITED_FIELDS)} are allowed"
        )
    return {name: value for name, value in zip(DELIMITED_FIELDS, segments) if value}


def _format_errors(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def build_order(fields: Mapping[str, Any]) -> OrderRequest:
    try:
        return OrderRequest.model_validate(dict(fields))
    except ValidationError as exc:
        raise OrderValidationError(_format_errors(exc)) from None


def _embedded_signal(data: Mapping[str, Any]) -> Optional[str]:
    # {"BTCUSDT,Buy,Market,0.001": ""}
    if len(data) == 1:
        key, value = next(iter(data.items()))
        if "," in key and value in ("", None):
            return key
    return None


def _from_mapping(data: Mapping[str, Any]) -> OrderRequest:
    embedded = _embedded_signal(data)
    if embedded is not None:
        return build_order(parse_delimited(embedded))
    signal = data.get(SIGNAL_KEY)
    if isinstance(signal, str):
        fields: Dict[str, Any] = parse_delimited(signal)
        fields.update({key: value for key, value in data.items() if key != SIGNAL_KEY})
        return build_order(fields)
    return build_order(data)


def parse_webhook_body(raw: Union[bytes, str], content_type: Optional[str] = None) -> OrderRequest:
    """Turn a raw webhook body into a validated order.

    Raises:
        OrderValidationError: the body is empty, malformed or fails
            validation.  Nothing has been sent to the exchange at this point.
    """
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    text = text.strip()
    if not text:
        raise OrderValidationError("request body is empty")
    content_type = (content_type or "").lower()

    if content_type.startswith("application/x-www-form-urlencoded"):
        return _from_mapping(dict(parse_qsl(text, keep_blank_values=True)))

    if text[0] in "{[\"":
        try:
            data = json.loads(text)
        except ValueError:
            raise OrderValidationError("request body is not valid JSON") from None
        if isinstance(data, str):
            return build_order(parse_delimited(data))
        if isinstance(data, dict):
            return _from_mapping(data)
        raise OrderValidationError("JSON body must be an object or a signal string")

    return build_order(parse_delimited(text))
