"""
Multi-account fan-out.

One webhook becomes one submission per configured account.  Accounts are
processed concurrently and independently: an exception raised inside one
account's pipeline is turned into that account's failed result and never
affects its siblings.

The aggregate is successful when at least one account succeeded.  Callers
that need every account to succeed must inspect the per-account results.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional, Sequence

from ..models import AccountCredential, AccountOrderResult, DispatchOutcome, OrderRequest

logger = logging.getLogger(__name__)


class OrderDispatcher:
    def __init__(self, submitter, accounts: Sequence[AccountCredential], metrics=None) -> None:
        self.submitter = submitter
        self.accounts = tuple(accounts)
        self.metrics = metrics

    async def _submit_one(self, credential: AccountCredential, order: OrderRequest) -> AccountOrderResult:
        started = time.perf_counter()
        try:
            result = await self.submitter.submit(credential, order)
        except Exception as exc:
            logger.exception("%s: unexpected error while submitting %s", credential.name, order.symbol)
            result = AccountOrderResult.failed(credential.name, str(exc) or type(exc).__name__)
        if self.metrics is not None:
            self.metrics.record_order(credential.name, result.success, time.perf_counter() - started)
        return result

    async def dispatch(self, order: OrderRequest) -> DispatchOutcome:
        """Submit ``order`` on every account; results keep account order."""
        if not self.accounts:
            return DispatchOutcome(results=[])
        results = await asyncio.gather(*(self._submit_one(account, order) for account in self.accounts))
        outcome = DispatchOutcome(results=list(results))
        logger.info(
            "%s %s %s: %d/%d account(s) succeeded",
            order.side.value,
            order.order_type.value,
            order.symbol,
            outcome.succeeded,
            len(outcome.results),
        )
        return outcome
