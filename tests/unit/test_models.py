"""Unit tests for data models."""
from __future__ import annotations

import pytest

from tranche_pool.models import (
    FirstLossCover,
    LenderRedemptionRecord,
    RedemptionSummary,
    Tranche,
    TrancheAssets,
)


class TestTrancheAssets:
    def test_total_and_lookup(self) -> None:
        assets = TrancheAssets(senior_total_assets=700, junior_total_assets=300)
        assert assets.total == 1000
        assert assets.of(Tranche.SENIOR) == 700
        assert assets.of(Tranche.JUNIOR) == 300

    def test_with_tranche_returns_new_record(self) -> None:
        assets = TrancheAssets(senior_total_assets=700, junior_total_assets=300)
        updated = assets.with_tranche(Tranche.JUNIOR, 50)
        assert updated == TrancheAssets(700, 50)
        assert assets.junior_total_assets == 300

    def test_frozen(self) -> None:
        assets = TrancheAssets()
        with pytest.raises(AttributeError):
            assets.senior_total_assets = 1  # type: ignore[misc]


class TestFirstLossCover:
    def test_defaults(self) -> None:
        cover = FirstLossCover(name="borrower")
        assert cover.total_assets == 0
        assert cover.covered_loss == 0
        assert cover.risk_yield_multiplier_bps == 0


class TestRedemptionRecords:
    def test_withdrawable(self) -> None:
        record = LenderRedemptionRecord(amount_processed=150, amount_withdrawn=100)
        assert record.withdrawable == 50

    def test_summary_defaults(self) -> None:
        summary = RedemptionSummary(epoch_id=3)
        assert summary.shares_requested == 0
        assert summary.shares_processed == 0
        assert summary.amount_processed == 0

    def test_equality(self) -> None:
        assert RedemptionSummary(1, 10, 5, 6) == RedemptionSummary(1, 10, 5, 6)
