"""Service layer for the gateway.

This package exposes the per-account order pipeline (market reader,
position flattener, order submitter), the multi-account dispatcher and
the ambient event store and metrics services.
"""

from .dispatcher import OrderDispatcher  # noqa: F401
from .event_store import EventStore  # noqa: F401
from .flattener import PositionFlattener  # noqa: F401
from .market_reader import MarketReader  # noqa: F401
from .metrics_service import OrderMetrics  # noqa: F401
from .order_submitter import OrderSubmitter  # noqa: F401
