"""Redemption fulfillment for one epoch close.

Pure arithmetic: given what each tranche asked to redeem, what the pool
safe can pay and the senior:junior leverage ratio, decide how much of each
request is processed. Senior is served first; junior is served from what
is left, and only as far as the remaining senior assets stay within the
ratio.
"""
from __future__ import annotations

from dataclasses import dataclass

from ..models import TrancheAssets, TrancheFulfillment


@dataclass(frozen=True)
class TrancheQueue:
    """Outstanding redemption shares plus the tranche's share price inputs."""

    shares_requested: int = 0
    total_supply: int = 0
    total_assets: int = 0

    def to_assets(self, shares: int) -> int:
        if self.total_supply == 0:
            return shares
        return shares * self.total_assets // self.total_supply

    def to_shares(self, assets: int) -> int:
        if self.total_supply == 0 or self.total_assets == 0:
            return assets
        return assets * self.total_supply // self.total_assets


def min_junior_assets(senior_total_assets: int, max_senior_junior_ratio: int) -> int:
    """Smallest junior balance that keeps senior within the ratio (rounded up)."""
    if max_senior_junior_ratio <= 0:
        return 0
    return -(-senior_total_assets // max_senior_junior_ratio)


def _fulfill(queue: TrancheQueue, limit: int) -> TrancheFulfillment:
    if queue.shares_requested == 0:
        return TrancheFulfillment()

    requested_amount = queue.to_assets(queue.shares_requested)
    amount = max(min(requested_amount, limit), 0)
    if amount == requested_amount:
        shares = queue.shares_requested
    else:
        shares = min(queue.to_shares(amount), queue.shares_requested)
    return TrancheFulfillment(
        shares_requested=queue.shares_requested,
        shares_processed=shares,
        amount_processed=amount,
    )


def compute_fulfillment(
    senior: TrancheQueue,
    junior: TrancheQueue,
    assets: TrancheAssets,
    available: int,
    max_senior_junior_ratio: int,
    ignore_ratio: bool = False,
) -> tuple[TrancheFulfillment, TrancheFulfillment]:
    """Process senior then junior redemption requests.

    Args:
        senior / junior: Outstanding shares and pricing per tranche.
        assets: Tranche totals before settlement.
        available: Liquidity the pool safe can pay out now.
        max_senior_junior_ratio: 0 disables the junior ratio cap.
        ignore_ratio: Final settlement at pool closure pays junior without
            the ratio cap.

    Returns:
        (senior_fulfillment, junior_fulfillment)
    """
    senior_result = _fulfill(senior, available)
    available -= senior_result.amount_processed
    senior_after = assets.senior_total_assets - senior_result.amount_processed

    limit = available
    if not ignore_ratio and max_senior_junior_ratio > 0:
        floor = min_junior_assets(senior_after, max_senior_junior_ratio)
        limit = min(limit, max(assets.junior_total_assets - floor, 0))

    junior_result = _fulfill(junior, limit)
    return senior_result, junior_result
