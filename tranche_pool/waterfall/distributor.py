"""Waterfall distributor — one credit event in, new tranche and cover balances out."""
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace
from datetime import date

from ..errors import Unauthorized
from ..events import EventLog
from ..interfaces.tranches_policy import TranchesPolicy
from ..models import (
    Caller,
    FirstLossCover,
    LossDistribution,
    ProfitDistribution,
    RecoveryDistribution,
    Tranche,
    TrancheAssets,
)
from . import first_loss

logger = logging.getLogger(__name__)

_PNL_CALLERS = frozenset({Caller.CREDIT, Caller.CREDIT_MANAGER})
_RECOVERY_CALLERS = frozenset({Caller.CREDIT})


class WaterfallDistributor:
    """Owns tranche assets, tranche losses and the first loss cover stack.

    For any sequence of events the combined value of tranches and covers
    changes by exactly ``profit - applied_loss + applied_recovery``.
    """

    def __init__(
        self,
        policy: TranchesPolicy,
        covers: Sequence[FirstLossCover] = (),
        events: EventLog | None = None,
        assets: TrancheAssets | None = None,
    ) -> None:
        self.policy = policy
        self.covers: tuple[FirstLossCover, ...] = tuple(covers)
        self.assets = assets or TrancheAssets()
        # Loss recorded per tranche and not yet recovered: (senior, junior)
        self.tranche_losses: tuple[int, int] = (0, 0)
        self.events = events or EventLog()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def tranche_total_assets(self, tranche: Tranche) -> int:
        return self.assets.of(tranche)

    def total_assets(self) -> int:
        return self.assets.total

    def total_value(self) -> int:
        """Tranche assets plus every cover's assets."""
        return self.assets.total + first_loss.total_cover_assets(self.covers)

    def cover(self, name: str) -> FirstLossCover:
        for cover in self.covers:
            if cover.name == name:
                return cover
        raise KeyError(f"Unknown first loss cover '{name}'")

    # ------------------------------------------------------------------
    # Credit events
    # ------------------------------------------------------------------

    def distribute_profit(
        self, caller: Caller, profit: int, today: date
    ) -> ProfitDistribution:
        """Policy split, then covers take their share of the junior candidate."""
        if caller not in _PNL_CALLERS:
            raise Unauthorized(f"{caller.value} cannot distribute profit")

        before = self.assets
        senior_profit, junior_candidate = self.policy.distribute_profit(
            profit, before, today
        )
        junior_profit, self.covers, cover_profits = first_loss.absorb_profit(
            junior_candidate, before.junior_total_assets, self.covers
        )
        self.assets = TrancheAssets(
            senior_total_assets=before.senior_total_assets + senior_profit,
            junior_total_assets=before.junior_total_assets + junior_profit,
        )

        self.events.emit(
            "ProfitDistributed",
            profit=profit,
            senior_total_assets_before=before.senior_total_assets,
            junior_total_assets_before=before.junior_total_assets,
            senior_total_assets=self.assets.senior_total_assets,
            junior_total_assets=self.assets.junior_total_assets,
            cover_profits=cover_profits,
        )
        return ProfitDistribution(
            profit=profit,
            senior_profit=senior_profit,
            junior_profit=junior_profit,
            cover_profits=cover_profits,
        )

    def distribute_loss(self, caller: Caller, loss: int, today: date) -> LossDistribution:
        """Covers absorb first, then junior, then senior."""
        if caller not in _PNL_CALLERS:
            raise Unauthorized(f"{caller.value} cannot distribute loss")

        before = self.assets
        remaining, self.covers, cover_losses = first_loss.absorb_loss(loss, self.covers)
        senior_loss = junior_loss = uncovered = 0

        if remaining > 0:
            self.assets, (senior_loss, junior_loss) = self.policy.distribute_loss(
                remaining, before
            )
            uncovered = remaining - senior_loss - junior_loss
            if uncovered:
                logger.warning(
                    "Loss of %d exceeds tranche and cover capacity; %d not tracked",
                    loss,
                    uncovered,
                )
            self.tranche_losses = (
                self.tranche_losses[Tranche.SENIOR] + senior_loss,
                self.tranche_losses[Tranche.JUNIOR] + junior_loss,
            )
            self.policy.refresh_yield_tracker(self.assets, today)

        self.events.emit(
            "LossDistributed",
            loss=loss,
            tranche_loss=remaining,
            senior_total_assets_before=before.senior_total_assets,
            junior_total_assets_before=before.junior_total_assets,
            senior_total_assets=self.assets.senior_total_assets,
            junior_total_assets=self.assets.junior_total_assets,
            senior_loss=self.tranche_losses[Tranche.SENIOR],
            junior_loss=self.tranche_losses[Tranche.JUNIOR],
            cover_losses=cover_losses,
            uncovered_loss=uncovered,
        )
        return LossDistribution(
            loss=loss,
            senior_loss=senior_loss,
            junior_loss=junior_loss,
            cover_losses=cover_losses,
            uncovered_loss=uncovered,
        )

    def distribute_loss_recovery(
        self, caller: Caller, recovery: int, today: date
    ) -> RecoveryDistribution:
        """Tranches recover first (senior, junior), then covers in reverse order."""
        if caller not in _RECOVERY_CALLERS:
            raise Unauthorized(f"{caller.value} cannot distribute loss recovery")

        before = self.assets
        remaining, self.assets, self.tranche_losses = self.policy.distribute_recovery(
            recovery, before, self.tranche_losses
        )
        remaining, self.covers, cover_recoveries = first_loss.absorb_recovery(
            remaining, self.covers
        )
        if remaining:
            logger.warning("Recovery of %d exceeds recorded losses by %d", recovery, remaining)
        if self.assets != before:
            self.policy.refresh_yield_tracker(self.assets, today)

        senior_recovery = self.assets.senior_total_assets - before.senior_total_assets
        junior_recovery = self.assets.junior_total_assets - before.junior_total_assets
        self.events.emit(
            "LossRecoveryDistributed",
            recovery=recovery,
            tranche_recovery=senior_recovery + junior_recovery,
            senior_total_assets=self.assets.senior_total_assets,
            junior_total_assets=self.assets.junior_total_assets,
            senior_loss=self.tranche_losses[Tranche.SENIOR],
            junior_loss=self.tranche_losses[Tranche.JUNIOR],
            cover_recoveries=cover_recoveries,
            unapplied=remaining,
        )
        return RecoveryDistribution(
            recovery=recovery,
            senior_recovery=senior_recovery,
            junior_recovery=junior_recovery,
            cover_recoveries=cover_recoveries,
            unapplied=remaining,
        )

    # ------------------------------------------------------------------
    # Capital movements (deposits, redemptions, yield payouts)
    # ------------------------------------------------------------------

    def add_tranche_assets(self, tranche: Tranche, amount: int, today: date) -> None:
        self.assets = self.assets.with_tranche(tranche, self.assets.of(tranche) + amount)
        if tranche is Tranche.SENIOR:
            self.policy.refresh_yield_tracker(self.assets, today)

    def remove_tranche_assets(self, tranche: Tranche, amount: int, today: date) -> None:
        current = self.assets.of(tranche)
        if amount > current:
            raise ValueError(f"Cannot remove {amount} from tranche holding {current}")
        self.assets = self.assets.with_tranche(tranche, current - amount)
        if tranche is Tranche.SENIOR:
            self.policy.refresh_yield_tracker(self.assets, today)

    def add_cover_assets(self, name: str, amount: int) -> FirstLossCover:
        updated = []
        found: FirstLossCover | None = None
        for cover in self.covers:
            if cover.name == name:
                cover = replace(cover, total_assets=cover.total_assets + amount)
                found = cover
            updated.append(cover)
        if found is None:
            raise KeyError(f"Unknown first loss cover '{name}'")
        self.covers = tuple(updated)
        return found
