"""Epoch state machine and redemption settlement."""
from __future__ import annotations

import logging
from datetime import datetime

from ..errors import EpochNotEnded, PoolClosed, PoolNotEnabled, UnprocessedProfitPending
from ..events import EventLog
from ..interfaces.liquidity import LiquiditySource
from ..models import Epoch, EpochState, Tranche, TrancheFulfillment
from ..period_calendar import Calendar, PayPeriodDuration
from ..redemption import RedemptionLedger, TrancheVault
from ..waterfall import WaterfallDistributor
from .fulfillment import TrancheQueue, compute_fulfillment

logger = logging.getLogger(__name__)


class EpochManager:
    """Drives OPEN -> CLOSING -> OPEN transitions, and CLOSED after pool closure.

    Closing an epoch prices each tranche's outstanding redemption shares,
    pays what liquidity and the leverage ratio allow, burns the processed
    shares, reserves the processed amount in the liquidity source for
    disbursement and rolls the unfulfilled remainder into the next epoch.
    """

    def __init__(
        self,
        distributor: WaterfallDistributor,
        vaults: dict[Tranche, TrancheVault],
        ledgers: dict[Tranche, RedemptionLedger],
        liquidity: LiquiditySource,
        calendar: Calendar,
        period: PayPeriodDuration = PayPeriodDuration.MONTHLY,
        max_senior_junior_ratio: int = 4,
        events: EventLog | None = None,
    ) -> None:
        self._distributor = distributor
        self._vaults = vaults
        self._ledgers = ledgers
        self._liquidity = liquidity
        self._calendar = calendar
        self._period = period
        self._max_ratio = max_senior_junior_ratio
        self.events = events or distributor.events
        self.current_epoch: Epoch | None = None
        self.state = EpochState.OPEN

    @property
    def current_epoch_id(self) -> int:
        return self.current_epoch.id if self.current_epoch else 0

    def start_new_epoch(self, now: datetime | None = None) -> Epoch:
        """Open the next epoch; its end time is the next period boundary."""
        now = now or self._calendar.now()
        epoch = Epoch(
            id=self.current_epoch_id + 1,
            end_time=Calendar.next_period_start(now, self._period),
        )
        if self.current_epoch is None:
            for ledger in self._ledgers.values():
                ledger.open_epoch(epoch.id)
        self.current_epoch = epoch
        self.state = EpochState.OPEN
        self.events.emit("NewEpochStarted", epoch_id=epoch.id, end_time=epoch.end_time)
        logger.info("Epoch %d started, ends %s", epoch.id, epoch.end_time.isoformat())
        return epoch

    def is_due(self, now: datetime) -> bool:
        return (
            self.current_epoch is not None
            and self.state is EpochState.OPEN
            and now >= self.current_epoch.end_time
        )

    def _check_can_close(self, now: datetime, final: bool) -> Epoch:
        if self.state is EpochState.CLOSED:
            raise PoolClosed("Pool is closed; no further epochs")
        if self.current_epoch is None:
            raise PoolNotEnabled("No epoch has been started")
        if not final and now < self.current_epoch.end_time:
            raise EpochNotEnded(
                f"Epoch {self.current_epoch.id} ends at "
                f"{self.current_epoch.end_time.isoformat()}"
            )
        for tranche, vault in self._vaults.items():
            if vault.has_unprocessed_profit():
                raise UnprocessedProfitPending(
                    f"{tranche.name.lower()} tranche has {vault.unprocessed_profit} "
                    "unprocessed profit"
                )
        return self.current_epoch

    def _queue(self, tranche: Tranche, epoch_id: int) -> TrancheQueue:
        vault = self._vaults[tranche]
        return TrancheQueue(
            shares_requested=self._ledgers[tranche].outstanding_shares(epoch_id),
            total_supply=vault.total_supply,
            total_assets=vault.total_assets(),
        )

    async def close_epoch(
        self, now: datetime | None = None, final: bool = False
    ) -> tuple[TrancheFulfillment, TrancheFulfillment]:
        """Settle the current epoch.

        Args:
            now: Settlement time; defaults to the calendar's clock.
            final: Pool closure settlement. Skips the end-time check and
                the junior ratio cap, and leaves the manager CLOSED.

        Returns:
            (senior_fulfillment, junior_fulfillment)
        """
        now = now or self._calendar.now()
        epoch = self._check_can_close(now, final)

        self.state = EpochState.CLOSING
        try:
            available = await self._liquidity.available_liquidity()
        except Exception:
            self.state = EpochState.OPEN
            raise

        senior, junior = compute_fulfillment(
            self._queue(Tranche.SENIOR, epoch.id),
            self._queue(Tranche.JUNIOR, epoch.id),
            self._distributor.assets,
            available,
            self._max_ratio,
            ignore_ratio=final,
        )

        today = now.date()
        next_epoch_id = epoch.id + 1
        for tranche, result in ((Tranche.SENIOR, senior), (Tranche.JUNIOR, junior)):
            if result.shares_processed or result.amount_processed:
                self._distributor.remove_tranche_assets(
                    tranche, result.amount_processed, today
                )
                self._vaults[tranche].burn_redemption_shares(result.shares_processed)
            self._ledgers[tranche].close_epoch(
                epoch.id, result.shares_processed, result.amount_processed, next_epoch_id
            )

        self.events.emit(
            "EpochClosed",
            epoch_id=epoch.id,
            final=final,
        )
        self.events.emit(
            "EpochProcessed",
            epoch_id=epoch.id,
            senior_total_assets=self._distributor.assets.senior_total_assets,
            junior_total_assets=self._distributor.assets.junior_total_assets,
            senior_shares_requested=senior.shares_requested,
            senior_shares_processed=senior.shares_processed,
            senior_amount_processed=senior.amount_processed,
            junior_shares_requested=junior.shares_requested,
            junior_shares_processed=junior.shares_processed,
            junior_amount_processed=junior.amount_processed,
        )

        if final:
            self.current_epoch = Epoch(id=next_epoch_id, end_time=now)
            self.state = EpochState.CLOSED
            logger.info("Epoch %d settled; pool closed", epoch.id)
        else:
            self.start_new_epoch(now)

        total = senior.amount_processed + junior.amount_processed
        if total:
            await self._liquidity.reserve(total)
        return senior, junior
