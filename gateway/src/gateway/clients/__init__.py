"""
Client utilities for interacting with the exchange.

This package provides the request signer, the Bybit REST transport that
normalises every response into an ``ApiResult``, and a paper client that
simulates the same endpoints for dry runs.
"""

from .http_exchange import BybitHttpClient  # noqa: F401
from .paper_exchange import PaperExchangeClient  # noqa: F401
from .signer import SignedRequest, canonical_query, sign  # noqa: F401
