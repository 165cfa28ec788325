"""Unit tests for lazy lender reconciliation."""
from __future__ import annotations

from tranche_pool.models import LenderRedemptionRecord, RedemptionSummary
from tranche_pool.redemption import apply_summary, replay_epochs


def _record(**kwargs: int) -> LenderRedemptionRecord:
    return LenderRedemptionRecord(**kwargs)


class TestApplySummary:
    def test_partial_fulfillment_is_pro_rata(self) -> None:
        record = _record(last_updated_epoch_id=1, shares_requested=100, principal_requested=100)
        summary = RedemptionSummary(
            epoch_id=1, shares_requested=200, shares_processed=100, amount_processed=150
        )
        updated = apply_summary(record, summary)
        assert updated.shares_requested == 50
        assert updated.principal_requested == 50
        assert updated.amount_processed == 75

    def test_unprocessed_epoch_is_noop(self) -> None:
        record = _record(shares_requested=100, principal_requested=100)
        summary = RedemptionSummary(epoch_id=1, shares_requested=100)
        assert apply_summary(record, summary) == record


class TestReplayEpochs:
    def test_walks_every_closed_epoch(self) -> None:
        record = _record(last_updated_epoch_id=1, shares_requested=100, principal_requested=90)
        summaries = {
            1: RedemptionSummary(1, shares_requested=200, shares_processed=100, amount_processed=100),
            2: RedemptionSummary(2, shares_requested=100, shares_processed=100, amount_processed=120),
            3: RedemptionSummary(3),
        }
        updated = replay_epochs(record, summaries, current_epoch_id=3)

        # epoch 1 processes half (50 -> 50), epoch 2 the rest (50 -> 60)
        assert updated.shares_requested == 0
        assert updated.principal_requested == 0
        assert updated.amount_processed == 110
        assert updated.last_updated_epoch_id == 3

    def test_skipped_epochs_without_processing(self) -> None:
        record = _record(last_updated_epoch_id=1, shares_requested=40, principal_requested=40)
        summaries = {
            1: RedemptionSummary(1, shares_requested=40),
            2: RedemptionSummary(2, shares_requested=40),
            3: RedemptionSummary(3, shares_requested=40, shares_processed=10, amount_processed=12),
        }
        updated = replay_epochs(record, summaries, current_epoch_id=4)
        assert updated.shares_requested == 30
        assert updated.amount_processed == 12
        assert updated.last_updated_epoch_id == 4

    def test_open_epoch_is_not_applied(self) -> None:
        record = _record(last_updated_epoch_id=2, shares_requested=40, principal_requested=40)
        summaries = {2: RedemptionSummary(2, shares_requested=40)}
        assert replay_epochs(record, summaries, current_epoch_id=2) == record

    def test_stops_once_fully_processed(self) -> None:
        record = _record(last_updated_epoch_id=1, shares_requested=10, principal_requested=10)
        summaries = {
            1: RedemptionSummary(1, shares_requested=10, shares_processed=10, amount_processed=10),
            # A later epoch must not touch an empty record.
            2: RedemptionSummary(2, shares_requested=5, shares_processed=5, amount_processed=999),
        }
        updated = replay_epochs(record, summaries, current_epoch_id=3)
        assert updated.amount_processed == 10
        assert updated.last_updated_epoch_id == 3

    def test_withdrawn_amount_survives(self) -> None:
        record = _record(
            last_updated_epoch_id=1,
            shares_requested=10,
            principal_requested=10,
            amount_processed=20,
            amount_withdrawn=20,
        )
        summaries = {1: RedemptionSummary(1, shares_requested=10, shares_processed=10, amount_processed=11)}
        updated = replay_epochs(record, summaries, current_epoch_id=2)
        assert updated.withdrawable == 11
