"""
Bybit signal gateway.

Receives trading-signal webhooks and turns each one into signed Bybit v5
orders across every configured account: any open position on the symbol
is flattened first, take-profit / stop-loss percentages are resolved to
absolute prices, and the per-account outcomes are aggregated into a
single response.
"""

__version__ = "0.1.0"
