"""Data models — all frozen (immutable).

State changes produce new records via ``dataclasses.replace``; amounts are
integers in the underlying token's smallest unit.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum, IntEnum
from typing import Any


class Tranche(IntEnum):
    SENIOR = 0
    JUNIOR = 1


class Caller(str, Enum):
    """Capability presented by whoever invokes a privileged pool operation."""

    CREDIT = "credit"
    CREDIT_MANAGER = "credit_manager"
    POOL_OWNER = "pool_owner"
    POOL_OPERATOR = "pool_operator"
    KEEPER = "keeper"
    LENDER = "lender"


class EpochState(str, Enum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass(frozen=True)
class TrancheAssets:
    """Lender-attributable assets per tranche."""

    senior_total_assets: int = 0
    junior_total_assets: int = 0

    @property
    def total(self) -> int:
        return self.senior_total_assets + self.junior_total_assets

    def of(self, tranche: Tranche) -> int:
        if tranche is Tranche.SENIOR:
            return self.senior_total_assets
        return self.junior_total_assets

    def with_tranche(self, tranche: Tranche, amount: int) -> TrancheAssets:
        if tranche is Tranche.SENIOR:
            return replace(self, senior_total_assets=amount)
        return replace(self, junior_total_assets=amount)


@dataclass(frozen=True)
class FirstLossCover:
    """One loss-absorbing reserve in the cover stack."""

    name: str
    total_assets: int = 0
    cover_cap_per_loss: int = 0
    cover_rate_per_loss_bps: int = 0
    risk_yield_multiplier_bps: int = 0
    # Loss absorbed and not yet recovered; caps later recovery.
    covered_loss: int = 0
    min_liquidity: int = 0


@dataclass(frozen=True)
class SeniorYieldTracker:
    total_assets: int = 0
    last_updated_date: date | None = None
    unpaid_yield: int = 0


@dataclass(frozen=True)
class RedemptionSummary:
    """Tranche-wide redemption aggregate for one epoch."""

    epoch_id: int
    shares_requested: int = 0
    shares_processed: int = 0
    amount_processed: int = 0


@dataclass(frozen=True)
class LenderRedemptionRecord:
    last_updated_epoch_id: int = 0
    shares_requested: int = 0
    principal_requested: int = 0
    amount_processed: int = 0
    amount_withdrawn: int = 0

    @property
    def withdrawable(self) -> int:
        return self.amount_processed - self.amount_withdrawn


@dataclass(frozen=True)
class DepositRecord:
    principal: int = 0
    reinvest_yield: bool = True


@dataclass(frozen=True)
class Epoch:
    id: int
    end_time: datetime


@dataclass(frozen=True)
class ProfitDistribution:
    profit: int
    senior_profit: int
    junior_profit: int
    cover_profits: tuple[int, ...] = ()


@dataclass(frozen=True)
class LossDistribution:
    loss: int
    senior_loss: int
    junior_loss: int
    cover_losses: tuple[int, ...] = ()
    # Loss beyond every cover and tranche; floored away, not tracked further.
    uncovered_loss: int = 0


@dataclass(frozen=True)
class RecoveryDistribution:
    recovery: int
    senior_recovery: int
    junior_recovery: int
    cover_recoveries: tuple[int, ...] = ()
    unapplied: int = 0


@dataclass(frozen=True)
class TrancheFulfillment:
    shares_requested: int = 0
    shares_processed: int = 0
    amount_processed: int = 0


@dataclass(frozen=True)
class PoolEvent:
    """Notification emitted by every state-changing pool operation."""

    name: str
    data: dict[str, Any] = field(default_factory=dict)
