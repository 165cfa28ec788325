"""Profit, loss and loss recovery waterfall."""
from .distributor import WaterfallDistributor
from .policies import (
    FixedSeniorYieldTranchesPolicy,
    RiskAdjustedTranchesPolicy,
    build_policy,
)

__all__ = [
    "WaterfallDistributor",
    "RiskAdjustedTranchesPolicy",
    "FixedSeniorYieldTranchesPolicy",
    "build_policy",
]
