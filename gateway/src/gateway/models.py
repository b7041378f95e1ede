"""
Domain models for the signal gateway.

Inbound order intents are validated with Pydantic so that every signal,
whatever its wire format, is reduced to the same ``OrderRequest`` shape
before any exchange call is made.  Read-only exchange state (positions,
tickers) and transport results are plain frozen dataclasses: they are
built from trusted exchange payloads and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


def to_decimal(value: Any) -> Decimal:
    """Parse an exchange decimal string, treating blanks and junk as zero."""
    if value is None or value == "":
        return Decimal("0")
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        return Decimal("0")
    return parsed if parsed.is_finite() else Decimal("0")


def _decimal_text(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("expected a decimal number, got a boolean")
    if isinstance(value, float):
        return format(Decimal(repr(value)), "f")
    if isinstance(value, (int, Decimal)):
        return format(Decimal(value), "f")
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _require_positive(text: str, name: str) -> str:
    try:
        number = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"{name} must be a number, got {text!r}") from None
    if not number.is_finite() or number <= 0:
        raise ValueError(f"{name} must be a positive number, got {text!r}")
    return text


class Side(str, Enum):
    BUY = "Buy"
    SELL = "Sell"

    @property
    def opposite(self) -> "Side":
        return Side.SELL if self is Side.BUY else Side.BUY


class OrderType(str, Enum):
    MARKET = "Market"
    LIMIT = "Limit"


class OrderRequest(BaseModel):
    """Normalised order intent received from a webhook."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    symbol: str = Field(..., description="Contract symbol, e.g. BTCUSDT")
    side: Side
    order_type: OrderType = Field(..., validation_alias=AliasChoices("orderType", "order_type"))
    quantity: str = Field(..., validation_alias=AliasChoices("qty", "quantity"))
    price: Optional[str] = None
    time_in_force: Optional[str] = Field(None, validation_alias=AliasChoices("timeInForce", "time_in_force"))
    position_index: Optional[int] = Field(
        None, validation_alias=AliasChoices("positionIdx", "positionIndex", "position_index")
    )
    reduce_only: Optional[bool] = Field(None, validation_alias=AliasChoices("reduceOnly", "reduce_only"))
    close_on_trigger: Optional[bool] = Field(
        None, validation_alias=AliasChoices("closeOnTrigger", "close_on_trigger")
    )
    take_profit_percent: Optional[str] = Field(
        None, validation_alias=AliasChoices("takeProfit", "takeProfitPercent", "take_profit_percent")
    )
    stop_loss_percent: Optional[str] = Field(
        None, validation_alias=AliasChoices("stopLoss", "stopLossPercent", "stop_loss_percent")
    )
    tp_trigger_by: Optional[str] = Field(None, validation_alias=AliasChoices("tpTriggerBy", "tp_trigger_by"))
    sl_trigger_by: Optional[str] = Field(None, validation_alias=AliasChoices("slTriggerBy", "sl_trigger_by"))
    order_link_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("orderLinkId", "clientOrderLinkId", "order_link_id")
    )

    @field_validator("symbol", mode="before")
    @classmethod
    def _clean_symbol(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().upper()
            if not value:
                raise ValueError("symbol must not be empty")
        return value

    @field_validator("side", "order_type", mode="before")
    @classmethod
    def _normalise_case(cls, value: Any) -> Any:
        # Alerts frequently send "buy" / "MARKET"
        if isinstance(value, str):
            return value.strip().capitalize()
        return value

    @field_validator("quantity", "price", "take_profit_percent", "stop_loss_percent", mode="before")
    @classmethod
    def _coerce_decimal_text(cls, value: Any) -> Any:
        if value is None:
            return None
        return _decimal_text(value)

    @field_validator(
        "time_in_force",
        "tp_trigger_by",
        "sl_trigger_by",
        "order_link_id",
        "position_index",
        "reduce_only",
        "close_on_trigger",
        mode="before",
    )
    @classmethod
    def _blank_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @field_validator("quantity")
    @classmethod
    def _positive_quantity(cls, value: str) -> str:
        return _require_positive(value, "qty")

    @field_validator("price", "take_profit_percent", "stop_loss_percent")
    @classmethod
    def _positive_optional(cls, value: Optional[str], info: Any) -> Optional[str]:
        if value is None:
            return None
        return _require_positive(value, info.field_name)

    @field_validator("position_index")
    @classmethod
    def _known_position_index(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value not in (0, 1, 2):
            raise ValueError("positionIdx must be 0 (one-way), 1 (hedge buy) or 2 (hedge sell)")
        return value

    @model_validator(mode="after")
    def _limit_needs_price(self) -> "OrderRequest":
        if self.order_type is OrderType.LIMIT and self.price is None:
            raise ValueError("price is required for Limit orders")
        return self


@dataclass(frozen=True)
class AccountCredential:
    """One exchange account identity.  Immutable once loaded."""

    api_key: str
    api_secret: str = field(repr=False)
    base_url: str
    name: str


@dataclass(frozen=True)
class PositionSnapshot:
    symbol: str
    side: str
    size: str
    entry_price: str
    mark_price: str
    leverage: str
    position_index: int = 0

    @property
    def size_value(self) -> Decimal:
        return abs(to_decimal(self.size))

    @property
    def is_flat(self) -> bool:
        return self.size_value == 0


@dataclass(frozen=True)
class MarketSnapshot:
    symbol: str
    last_price: str
    high_price_24h: str
    low_price_24h: str
    volume_24h: str
    funding_rate: str


@dataclass(frozen=True)
class ApiResult:
    """Uniform result of every exchange call, successful or not."""

    ret_code: int
    ret_msg: str
    result: Any = None

    @property
    def ok(self) -> bool:
        return self.ret_code == 0

    @classmethod
    def failure(cls, message: str, ret_code: int = -1) -> "ApiResult":
        return cls(ret_code=ret_code, ret_msg=message, result=None)


@dataclass(frozen=True)
class FlattenResult:
    success: bool
    message: str
    closed_size: Optional[str] = None
    order_id: Optional[str] = None


class AccountOrderResult(BaseModel):
    """Outcome of one account's submission attempt."""

    account: str
    success: bool
    data: Optional[Any] = None
    message: Optional[str] = None
    error: Optional[str] = None
    code: Optional[int] = None

    @classmethod
    def placed(cls, account: str, data: Any) -> "AccountOrderResult":
        return cls(account=account, success=True, data=data, message="Order placed successfully")

    @classmethod
    def failed(cls, account: str, error: str, code: Optional[int] = None) -> "AccountOrderResult":
        return cls(account=account, success=False, error=error, code=code)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


@dataclass
class DispatchOutcome:
    """Aggregate of a fan-out across accounts.

    ``success`` is true when at least one account succeeded; callers that
    need per-account guarantees must inspect ``results``.
    """

    results: List[AccountOrderResult]

    @property
    def success(self) -> bool:
        return any(result.success for result in self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.success)
