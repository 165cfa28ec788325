"""Tranches policy protocol — senior/junior split of profit, loss and recovery."""
from datetime import date
from typing import Protocol

from ..models import TrancheAssets


class TranchesPolicy(Protocol):
    """Abstract interface shared by every tranche split strategy."""

    def distribute_profit(
        self, profit: int, assets: TrancheAssets, today: date
    ) -> tuple[int, int]: ...

    def distribute_loss(
        self, loss: int, assets: TrancheAssets
    ) -> tuple[TrancheAssets, tuple[int, int]]: ...

    def distribute_recovery(
        self, recovery: int, assets: TrancheAssets, losses: tuple[int, int]
    ) -> tuple[int, TrancheAssets, tuple[int, int]]: ...

    def refresh_yield_tracker(self, assets: TrancheAssets, today: date) -> None: ...
