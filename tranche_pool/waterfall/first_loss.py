"""First loss cover stack — pure functions, no I/O.

Covers are passed and returned as tuples in priority order: index 0
absorbs loss first and is repaid last.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from ..constants import BP_FACTOR
from ..models import FirstLossCover


def profit_weight(cover: FirstLossCover) -> int:
    """Weight of a cover when sharing profit with the junior tranche.

    weight = total_assets * risk_yield_multiplier_bps / 10000
    """
    return cover.total_assets * cover.risk_yield_multiplier_bps // BP_FACTOR


def absorb_profit(
    profit: int,
    junior_total_assets: int,
    covers: Sequence[FirstLossCover],
) -> tuple[int, tuple[FirstLossCover, ...], tuple[int, ...]]:
    """Split the junior profit candidate between the junior tranche and covers.

    Each cover takes ``profit * weight / total_weight`` where the junior
    tranche weighs its total assets. A cover never grows beyond
    ``cover_cap_per_loss``; whatever the cap turns away carries to the next
    cover and finally to the junior tranche.

    Returns:
        (junior_profit, updated_covers, per_cover_profit)
    """
    covers = tuple(covers)
    zero = (0,) * len(covers)
    if profit <= 0 or not covers:
        return max(profit, 0), covers, zero

    weights = [profit_weight(c) for c in covers]
    total_weight = junior_total_assets + sum(weights)
    if total_weight == 0:
        return profit, covers, zero

    updated: list[FirstLossCover] = []
    amounts: list[int] = []
    carry = 0
    for cover, weight in zip(covers, weights):
        if cover.risk_yield_multiplier_bps == 0:
            updated.append(cover)
            amounts.append(0)
            continue

        share = profit * weight // total_weight + carry
        headroom = max(cover.cover_cap_per_loss - cover.total_assets, 0)
        taken = min(share, headroom)
        carry = share - taken

        updated.append(replace(cover, total_assets=cover.total_assets + taken))
        amounts.append(taken)

    return profit - sum(amounts), tuple(updated), tuple(amounts)


def absorb_loss(
    loss: int, covers: Sequence[FirstLossCover]
) -> tuple[int, tuple[FirstLossCover, ...], tuple[int, ...]]:
    """Let each cover, in priority order, absorb part of the loss.

    covered = min(remaining * cover_rate_per_loss_bps / 10000,
                  cover_cap_per_loss, total_assets)

    Returns:
        (loss_remainder, updated_covers, per_cover_loss)
    """
    remaining = max(loss, 0)
    updated: list[FirstLossCover] = []
    amounts: list[int] = []

    for cover in covers:
        covered = min(
            remaining * cover.cover_rate_per_loss_bps // BP_FACTOR,
            cover.cover_cap_per_loss,
            cover.total_assets,
        )
        remaining -= covered
        updated.append(
            replace(
                cover,
                total_assets=cover.total_assets - covered,
                covered_loss=cover.covered_loss + covered,
            )
        )
        amounts.append(covered)

    return remaining, tuple(updated), tuple(amounts)


def absorb_recovery(
    recovery: int, covers: Sequence[FirstLossCover]
) -> tuple[int, tuple[FirstLossCover, ...], tuple[int, ...]]:
    """Repay covers in reverse priority order, each up to its covered loss.

    Returns:
        (recovery_remainder, updated_covers, per_cover_recovery) with the
        per-cover tuple in priority order.
    """
    remaining = max(recovery, 0)
    covers = tuple(covers)
    updated = list(covers)
    amounts = [0] * len(covers)

    for index in reversed(range(len(covers))):
        cover = covers[index]
        recovered = min(remaining, cover.covered_loss)
        if recovered == 0:
            continue
        remaining -= recovered
        amounts[index] = recovered
        updated[index] = replace(
            cover,
            total_assets=cover.total_assets + recovered,
            covered_loss=cover.covered_loss - recovered,
        )

    return remaining, tuple(updated), tuple(amounts)


def total_cover_assets(covers: Sequence[FirstLossCover]) -> int:
    return sum(c.total_assets for c in covers)
