"""Tranche split strategies.

Both strategies share loss and recovery ordering: the junior tranche
absorbs loss first and the senior tranche recovers first. They differ only
in how profit is split.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date

from ..config import POLICY_FIXED_SENIOR_YIELD, POLICY_RISK_ADJUSTED, PoolSettings
from ..constants import BP_FACTOR, DAYS_IN_A_YEAR
from ..models import SeniorYieldTracker, TrancheAssets
from ..period_calendar import Calendar

logger = logging.getLogger(__name__)


class BaseTranchesPolicy:
    """Loss and recovery ordering common to every policy."""

    def distribute_profit(
        self, profit: int, assets: TrancheAssets, today: date
    ) -> tuple[int, int]:
        raise NotImplementedError

    def distribute_loss(
        self, loss: int, assets: TrancheAssets
    ) -> tuple[TrancheAssets, tuple[int, int]]:
        """Junior absorbs up to its full balance, senior takes the rest.

        Senior is floored at zero; loss beyond both tranches is dropped by
        the caller.
        """
        junior_loss = min(loss, assets.junior_total_assets)
        senior_loss = min(loss - junior_loss, assets.senior_total_assets)
        new_assets = TrancheAssets(
            senior_total_assets=assets.senior_total_assets - senior_loss,
            junior_total_assets=assets.junior_total_assets - junior_loss,
        )
        return new_assets, (senior_loss, junior_loss)

    def distribute_recovery(
        self, recovery: int, assets: TrancheAssets, losses: tuple[int, int]
    ) -> tuple[int, TrancheAssets, tuple[int, int]]:
        """Senior recovers first up to its recorded loss, then junior.

        Returns:
            (recovery_remainder, new_assets, remaining_losses)
        """
        senior_loss, junior_loss = losses
        senior_recovery = min(recovery, senior_loss)
        recovery -= senior_recovery
        junior_recovery = min(recovery, junior_loss)
        recovery -= junior_recovery

        new_assets = TrancheAssets(
            senior_total_assets=assets.senior_total_assets + senior_recovery,
            junior_total_assets=assets.junior_total_assets + junior_recovery,
        )
        return (
            recovery,
            new_assets,
            (senior_loss - senior_recovery, junior_loss - junior_recovery),
        )

    def refresh_yield_tracker(self, assets: TrancheAssets, today: date) -> None:
        """No-op for policies without a yield tracker."""


class RiskAdjustedTranchesPolicy(BaseTranchesPolicy):
    """Pro-rata profit split with a risk adjustment moved from senior to junior.

    senior = profit * senior_assets / total_assets
    senior -= senior * risk_adjustment_bps / 10000
    """

    def __init__(self, risk_adjustment_bps: int) -> None:
        self.risk_adjustment_bps = risk_adjustment_bps

    def distribute_profit(
        self, profit: int, assets: TrancheAssets, today: date
    ) -> tuple[int, int]:
        total = assets.total
        if profit <= 0 or total == 0:
            return 0, max(profit, 0)

        senior_profit = profit * assets.senior_total_assets // total
        adjustment = senior_profit * self.risk_adjustment_bps // BP_FACTOR
        senior_profit -= adjustment
        return senior_profit, profit - senior_profit


class FixedSeniorYieldTranchesPolicy(BaseTranchesPolicy):
    """Senior earns a fixed simple yield; everything above it goes to junior.

    Yield accrues on the tracker's principal base using 30/360 day counts:

        accrued = total_assets * fixed_yield_bps * days / (10000 * 360)

    Profit that cannot cover the accrued yield leaves the shortfall in
    ``unpaid_yield`` to be paid from later profit.
    """

    def __init__(
        self,
        fixed_yield_bps: int,
        tracker: SeniorYieldTracker | None = None,
    ) -> None:
        self.fixed_yield_bps = fixed_yield_bps
        self.tracker = tracker or SeniorYieldTracker()

    def _accrue(self, today: date) -> SeniorYieldTracker:
        tracker = self.tracker
        if tracker.last_updated_date is None:
            return replace(tracker, last_updated_date=today)
        if today <= tracker.last_updated_date:
            return tracker

        days = Calendar.days_diff(tracker.last_updated_date, today)
        accrued = (
            tracker.total_assets
            * self.fixed_yield_bps
            * days
            // (BP_FACTOR * DAYS_IN_A_YEAR)
        )
        return replace(
            tracker,
            unpaid_yield=tracker.unpaid_yield + accrued,
            last_updated_date=today,
        )

    def distribute_profit(
        self, profit: int, assets: TrancheAssets, today: date
    ) -> tuple[int, int]:
        tracker = self._accrue(today)
        senior_profit = min(max(profit, 0), tracker.unpaid_yield)
        self.tracker = replace(tracker, unpaid_yield=tracker.unpaid_yield - senior_profit)
        if self.tracker.unpaid_yield:
            logger.debug("Senior yield shortfall carried: %d", self.tracker.unpaid_yield)
        return senior_profit, max(profit, 0) - senior_profit

    def refresh_yield_tracker(self, assets: TrancheAssets, today: date) -> None:
        """Accrue up to today, then re-base on the current senior assets."""
        tracker = self._accrue(today)
        if tracker.total_assets != assets.senior_total_assets:
            tracker = replace(tracker, total_assets=assets.senior_total_assets)
        self.tracker = tracker


def build_policy(settings: PoolSettings) -> BaseTranchesPolicy:
    """Instantiate the tranches policy named in the pool settings."""
    if settings.tranches_policy == POLICY_RISK_ADJUSTED:
        return RiskAdjustedTranchesPolicy(settings.tranches_risk_adjustment_bps)
    if settings.tranches_policy == POLICY_FIXED_SENIOR_YIELD:
        return FixedSeniorYieldTranchesPolicy(settings.fixed_senior_yield_bps)
    raise ValueError(f"Unknown tranches policy '{settings.tranches_policy}'")
