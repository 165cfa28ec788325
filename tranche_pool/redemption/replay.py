"""Lazy lender reconciliation — replays closed epoch summaries onto one record.

Closing an epoch only writes the tranche-wide summary. A lender's record is
brought up to date the next time that lender interacts, by applying each
closed epoch's fulfillment ratio to the shares the lender still had
outstanding. The cost of skipped epochs is paid by the lender who skipped
them.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace

from ..models import LenderRedemptionRecord, RedemptionSummary


def apply_summary(
    record: LenderRedemptionRecord, summary: RedemptionSummary
) -> LenderRedemptionRecord:
    """Apply one closed epoch's fulfillment ratio to a lender record.

    processed_shares = lender_shares * shares_processed / shares_requested
    processed_amount = lender_shares * amount_processed / shares_requested
    """
    if (
        record.shares_requested == 0
        or summary.shares_requested == 0
        or summary.shares_processed == 0
    ):
        return record

    lender_shares = record.shares_requested
    shares_processed = min(
        lender_shares * summary.shares_processed // summary.shares_requested,
        lender_shares,
    )
    amount_processed = lender_shares * summary.amount_processed // summary.shares_requested
    principal_processed = record.principal_requested * shares_processed // lender_shares

    return replace(
        record,
        shares_requested=lender_shares - shares_processed,
        principal_requested=record.principal_requested - principal_processed,
        amount_processed=record.amount_processed + amount_processed,
    )


def replay_epochs(
    record: LenderRedemptionRecord,
    summaries: Mapping[int, RedemptionSummary],
    current_epoch_id: int,
) -> LenderRedemptionRecord:
    """Bring a record up to ``current_epoch_id``.

    Walks the closed epochs from the record's last update up to, but not
    including, the current (open) epoch, stopping early once the lender has
    no outstanding shares.
    """
    epoch_id = record.last_updated_epoch_id
    while epoch_id < current_epoch_id and record.shares_requested > 0:
        summary = summaries.get(epoch_id)
        if summary is not None:
            record = apply_summary(record, summary)
        epoch_id += 1

    if record.last_updated_epoch_id != current_epoch_id:
        record = replace(record, last_updated_epoch_id=current_epoch_id)
    return record
