"""Exception hierarchy for the signal gateway.

Only the market/position reader raises ``ExchangeError``; the HTTP
transport itself never raises and reports failures through the uniform
``ApiResult`` record instead.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for all gateway errors."""


class OrderValidationError(GatewayError, ValueError):
    """Raised when an inbound signal cannot be turned into an order."""


class ConfigError(GatewayError):
    """Raised when the environment holds an unusable setting."""


class ExchangeError(GatewayError):
    """A non-zero ``retCode`` returned by the exchange."""

    def __init__(self, ret_code: int, ret_msg: str) -> None:
        super().__init__(f"Bybit error {ret_code}: {ret_msg}")
        self.ret_code = ret_code
        self.ret_msg = ret_msg
