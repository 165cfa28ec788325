"""Protocol interfaces for the tranched pool."""
from .liquidity import LiquiditySource
from .notifier import Notifier
from .tranches_policy import TranchesPolicy

__all__ = ["LiquiditySource", "Notifier", "TranchesPolicy"]
