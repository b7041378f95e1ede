"""Append-only event log for webhook requests and their outcomes.

Each call to ``log`` appends one JSON Lines record::

    {"ts": <unix seconds>, "type": "<event type>", "data": {...}}

File writes are performed via ``asyncio.to_thread`` to avoid blocking the
event loop, and concurrent writers are serialised with an ``asyncio.Lock``
so records never interleave.  Enable it by setting ``EVENT_STORE_PATH``.
Rotation is left to the host (e.g. logrotate with ``copytruncate``).
"""

from __future__ import annotations

import asyncio
import json
import os
import time
from typing import Any, Dict, List


class EventStore:
    """Append-only JSON Lines event logger."""

    def __init__(self, path: str) -> None:
        self.path = os.path.abspath(path)
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        self._lock = asyncio.Lock()

    async def log(self, event_type: str, data: Dict[str, Any]) -> None:
        """Append an event to the log file.

        Args:
            event_type: A string identifying the type of event.
            data: Event payload.  Values that are not JSON serialisable
                (e.g. ``Decimal``) are written as strings.
        """
        record = {"ts": time.time(), "type": event_type, "data": data}
        line = json.dumps(record, ensure_ascii=False, default=str) + "\n"
        async with self._lock:
            await asyncio.to_thread(self._append_to_file, line)

    def _append_to_file(self, line: str) -> None:
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line)

    def read_all(self) -> List[Dict[str, Any]]:
        """Return every record written so far, oldest first."""
        if not os.path.exists(self.path):
            return []
        with open(self.path, encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]
