"""Redemption ledger — per-epoch tranche aggregates plus per-lender records."""
from __future__ import annotations

import logging
from dataclasses import replace

from ..errors import InvalidCancellation, ZeroAmount
from ..models import LenderRedemptionRecord, RedemptionSummary, Tranche
from .replay import replay_epochs

logger = logging.getLogger(__name__)


class RedemptionLedger:
    """Redemption bookkeeping for one tranche.

    The open epoch's summary holds every share still waiting for
    fulfillment: new requests plus the remainder rolled forward when the
    previous epoch closed. Lender records are reconciled against closed
    summaries only when the lender next interacts.
    """

    def __init__(self, tranche: Tranche) -> None:
        self.tranche = tranche
        self.summaries: dict[int, RedemptionSummary] = {}
        self.records: dict[str, LenderRedemptionRecord] = {}

    # ------------------------------------------------------------------
    # Epoch aggregates
    # ------------------------------------------------------------------

    def open_epoch(self, epoch_id: int, carried_shares: int = 0) -> RedemptionSummary:
        summary = RedemptionSummary(epoch_id=epoch_id, shares_requested=carried_shares)
        self.summaries[epoch_id] = summary
        return summary

    def summary(self, epoch_id: int) -> RedemptionSummary:
        return self.summaries.get(epoch_id) or RedemptionSummary(epoch_id=epoch_id)

    def outstanding_shares(self, epoch_id: int) -> int:
        return self.summary(epoch_id).shares_requested

    def close_epoch(
        self,
        epoch_id: int,
        shares_processed: int,
        amount_processed: int,
        next_epoch_id: int,
    ) -> RedemptionSummary:
        """Freeze the closing epoch's summary and open the next one."""
        current = self.summary(epoch_id)
        if shares_processed > current.shares_requested:
            raise ValueError(
                f"Processed {shares_processed} shares of {current.shares_requested} requested"
            )
        closed = replace(
            current,
            shares_processed=shares_processed,
            amount_processed=amount_processed,
        )
        self.summaries[epoch_id] = closed
        self.open_epoch(next_epoch_id, closed.shares_requested - shares_processed)
        logger.info(
            "%s epoch %d closed: %d/%d shares processed for %d",
            self.tranche.name.lower(),
            epoch_id,
            shares_processed,
            closed.shares_requested,
            amount_processed,
        )
        return closed

    # ------------------------------------------------------------------
    # Lender records
    # ------------------------------------------------------------------

    def latest_record(self, lender: str, epoch_id: int) -> LenderRedemptionRecord:
        """Reconciled view of a lender's record; nothing is written."""
        record = self.records.get(lender) or LenderRedemptionRecord(
            last_updated_epoch_id=epoch_id
        )
        return replay_epochs(record, self.summaries, epoch_id)

    def _store(self, lender: str, record: LenderRedemptionRecord) -> None:
        settled = (
            record.shares_requested == 0
            and record.principal_requested == 0
            and record.amount_processed == record.amount_withdrawn
        )
        if settled:
            self.records.pop(lender, None)
        else:
            self.records[lender] = record

    def add_request(
        self, lender: str, shares: int, principal: int, epoch_id: int
    ) -> LenderRedemptionRecord:
        if shares <= 0:
            raise ZeroAmount("Redemption request must be for a positive number of shares")

        record = self.latest_record(lender, epoch_id)
        record = replace(
            record,
            shares_requested=record.shares_requested + shares,
            principal_requested=record.principal_requested + principal,
        )
        self._store(lender, record)

        summary = self.summary(epoch_id)
        self.summaries[epoch_id] = replace(
            summary, shares_requested=summary.shares_requested + shares
        )
        return record

    def cancellable_shares(self, lender: str, epoch_id: int) -> int:
        return self.latest_record(lender, epoch_id).shares_requested

    def cancel_request(self, lender: str, shares: int, epoch_id: int) -> int:
        """Cancel open-epoch shares; returns the principal handed back.

        Raises:
            InvalidCancellation: more shares than the lender has outstanding.
        """
        if shares <= 0:
            raise ZeroAmount("Cancellation must be for a positive number of shares")

        record = self.latest_record(lender, epoch_id)
        if shares > record.shares_requested:
            raise InvalidCancellation(
                f"{lender} has {record.shares_requested} cancellable shares, "
                f"cannot cancel {shares}"
            )

        principal = record.principal_requested * shares // record.shares_requested
        record = replace(
            record,
            shares_requested=record.shares_requested - shares,
            principal_requested=record.principal_requested - principal,
        )
        self._store(lender, record)

        summary = self.summary(epoch_id)
        self.summaries[epoch_id] = replace(
            summary, shares_requested=max(summary.shares_requested - shares, 0)
        )
        return principal

    def withdrawable_assets(self, lender: str, epoch_id: int) -> int:
        return self.latest_record(lender, epoch_id).withdrawable

    def mark_withdrawn(self, lender: str, epoch_id: int) -> int:
        """Reconcile and mark everything processed as withdrawn; returns the amount."""
        record = self.latest_record(lender, epoch_id)
        amount = record.withdrawable
        self._store(lender, replace(record, amount_withdrawn=record.amount_processed))
        return amount
