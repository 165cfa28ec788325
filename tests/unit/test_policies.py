"""Unit tests for the tranche split policies."""
from __future__ import annotations

from datetime import date

import pytest

from tranche_pool.config import POLICY_FIXED_SENIOR_YIELD, PoolSettings
from tranche_pool.models import TrancheAssets
from tranche_pool.waterfall import (
    FixedSeniorYieldTranchesPolicy,
    RiskAdjustedTranchesPolicy,
    build_policy,
)

TODAY = date(2024, 1, 1)


class TestRiskAdjustedProfit:
    def test_pro_rata_with_adjustment(self) -> None:
        policy = RiskAdjustedTranchesPolicy(2000)
        assets = TrancheAssets(senior_total_assets=5_000_000, junior_total_assets=2_000_000)
        # senior = 70_000 * 5/7 = 50_000; minus 20% = 40_000
        assert policy.distribute_profit(70_000, assets, TODAY) == (40_000, 30_000)

    def test_no_adjustment_is_pure_pro_rata(self) -> None:
        policy = RiskAdjustedTranchesPolicy(0)
        assets = TrancheAssets(senior_total_assets=5000, junior_total_assets=2000)
        assert policy.distribute_profit(7000, assets, TODAY) == (5000, 2000)

    def test_empty_tranches_send_everything_to_junior(self) -> None:
        policy = RiskAdjustedTranchesPolicy(2000)
        assert policy.distribute_profit(500, TrancheAssets(), TODAY) == (0, 500)

    def test_split_sums_to_profit(self) -> None:
        policy = RiskAdjustedTranchesPolicy(1234)
        assets = TrancheAssets(senior_total_assets=3_333_333, junior_total_assets=1_111_111)
        senior, junior = policy.distribute_profit(99_999, assets, TODAY)
        assert senior + junior == 99_999


class TestLossAndRecovery:
    def test_junior_absorbs_first(self) -> None:
        policy = RiskAdjustedTranchesPolicy(0)
        assets = TrancheAssets(senior_total_assets=1000, junior_total_assets=500)
        new_assets, losses = policy.distribute_loss(300, assets)
        assert new_assets == TrancheAssets(1000, 200)
        assert losses == (0, 300)

    def test_senior_takes_what_junior_cannot(self) -> None:
        policy = RiskAdjustedTranchesPolicy(0)
        assets = TrancheAssets(senior_total_assets=1000, junior_total_assets=500)
        new_assets, losses = policy.distribute_loss(800, assets)
        assert new_assets == TrancheAssets(700, 0)
        assert losses == (300, 500)

    def test_loss_beyond_both_floors_at_zero(self) -> None:
        policy = RiskAdjustedTranchesPolicy(0)
        assets = TrancheAssets(senior_total_assets=1000, junior_total_assets=500)
        new_assets, losses = policy.distribute_loss(2000, assets)
        assert new_assets == TrancheAssets(0, 0)
        assert losses == (1000, 500)

    def test_senior_recovers_first(self) -> None:
        policy = RiskAdjustedTranchesPolicy(0)
        remainder, new_assets, losses = policy.distribute_recovery(
            600, TrancheAssets(700, 0), (300, 500)
        )
        assert remainder == 0
        assert new_assets == TrancheAssets(1000, 300)
        assert losses == (0, 200)

    def test_recovery_beyond_losses_is_returned(self) -> None:
        policy = RiskAdjustedTranchesPolicy(0)
        remainder, new_assets, losses = policy.distribute_recovery(
            1000, TrancheAssets(700, 0), (300, 500)
        )
        assert remainder == 200
        assert new_assets == TrancheAssets(1000, 500)
        assert losses == (0, 0)


class TestFixedSeniorYield:
    def _policy(self) -> FixedSeniorYieldTranchesPolicy:
        policy = FixedSeniorYieldTranchesPolicy(1000)
        policy.refresh_yield_tracker(TrancheAssets(3_600_000, 1_000_000), TODAY)
        return policy

    def test_first_refresh_only_starts_the_clock(self) -> None:
        policy = self._policy()
        assert policy.tracker.total_assets == 3_600_000
        assert policy.tracker.last_updated_date == TODAY
        assert policy.tracker.unpaid_yield == 0

    def test_profit_pays_accrued_yield(self) -> None:
        policy = self._policy()
        # 30 days at 10% on 3.6M = 30_000
        senior, junior = policy.distribute_profit(
            50_000, TrancheAssets(3_600_000, 1_000_000), date(2024, 2, 1)
        )
        assert (senior, junior) == (30_000, 20_000)
        assert policy.tracker.unpaid_yield == 0

    def test_shortfall_is_carried(self) -> None:
        policy = self._policy()
        assets = TrancheAssets(3_600_000, 1_000_000)
        assert policy.distribute_profit(10_000, assets, date(2024, 2, 1)) == (10_000, 0)
        assert policy.tracker.unpaid_yield == 20_000

        assert policy.distribute_profit(25_000, assets, date(2024, 2, 1)) == (20_000, 5_000)
        assert policy.tracker.unpaid_yield == 0

    def test_refresh_rebases_on_senior_assets(self) -> None:
        policy = self._policy()
        policy.refresh_yield_tracker(TrancheAssets(1_800_000, 0), date(2024, 2, 1))
        assert policy.tracker.unpaid_yield == 30_000
        assert policy.tracker.total_assets == 1_800_000

    def test_tracker_date_never_moves_back(self) -> None:
        policy = self._policy()
        policy.refresh_yield_tracker(TrancheAssets(3_600_000, 0), date(2023, 12, 1))
        assert policy.tracker.last_updated_date == TODAY
        assert policy.tracker.unpaid_yield == 0


class TestBuildPolicy:
    def test_risk_adjusted(self, sample_settings: PoolSettings) -> None:
        policy = build_policy(sample_settings)
        assert isinstance(policy, RiskAdjustedTranchesPolicy)
        assert policy.risk_adjustment_bps == 2000

    def test_fixed_senior_yield(self) -> None:
        settings = PoolSettings(tranches_policy=POLICY_FIXED_SENIOR_YIELD, fixed_senior_yield_bps=800)
        policy = build_policy(settings)
        assert isinstance(policy, FixedSeniorYieldTranchesPolicy)
        assert policy.fixed_yield_bps == 800

    def test_unknown_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown tranches policy"):
            build_policy(PoolSettings(tranches_policy="waterfall"))
