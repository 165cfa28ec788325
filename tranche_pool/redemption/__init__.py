"""Redemption requests, lender reconciliation and tranche share accounting."""
from .ledger import RedemptionLedger
from .replay import apply_summary, replay_epochs
from .vault import TrancheVault

__all__ = ["RedemptionLedger", "TrancheVault", "apply_summary", "replay_epochs"]
