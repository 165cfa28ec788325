"""Epoch keeper — closes due epochs on a fixed interval."""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..models import Tranche
from .pool import TranchedPool

logger = logging.getLogger(__name__)


class EpochKeeper:
    """Pays pending lender yield and closes the epoch once its end time passes."""

    def __init__(self, pool: TranchedPool, check_interval_minutes: int = 60) -> None:
        self._pool = pool
        self._interval = check_interval_minutes

    async def check_and_close(self, now: datetime | None = None) -> bool:
        """Close the current epoch if it is due. Returns True when one was closed."""
        if not self._pool.is_epoch_due(now):
            return False

        for tranche in Tranche:
            if self._pool.has_unprocessed_profit(tranche):
                await self._pool.process_yield_for_lenders(tranche, now)

        epoch_id = self._pool.current_epoch_id
        senior, junior = await self._pool.close_epoch(now)
        logger.info(
            "Closed epoch %d: senior %d/%d shares, junior %d/%d shares",
            epoch_id,
            senior.shares_processed,
            senior.shares_requested,
            junior.shares_processed,
            junior.shares_requested,
        )
        return True

    async def run_continuous(self, check_interval_minutes: int | None = None) -> None:
        """Run the keeper loop until cancelled."""
        interval = check_interval_minutes or self._interval
        logger.info("Starting epoch keeper (checking every %d minutes)", interval)

        while True:
            try:
                await self.check_and_close()
                await asyncio.sleep(interval * 60)
            except Exception as e:
                logger.error("Error in keeper loop: %s", e)
                await asyncio.sleep(60)
