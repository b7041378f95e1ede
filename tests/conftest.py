"""Pytest configuration for path setup.

The test suite requires access to the ``gateway`` package located under
``gateway/src`` and to the shared fakes in ``tests/helpers``.  When pytest
is executed without the project installed, neither is on ``sys.path``.
This file ensures both are available for imports during test collection.
"""

from __future__ import annotations

import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
TESTS = Path(__file__).resolve().parent

for path in (ROOT / "gateway" / "src", TESTS / "helpers"):
    path_str = str(path)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)
