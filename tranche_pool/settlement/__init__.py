"""Epoch-based redemption settlement."""
from .epoch_manager import EpochManager
from .fulfillment import TrancheQueue, compute_fulfillment, min_junior_assets

__all__ = ["EpochManager", "TrancheQueue", "compute_fulfillment", "min_junior_assets"]
