"""Service modules"""
from .pool import TranchedPool
from .keeper import EpochKeeper

__all__ = ["TranchedPool", "EpochKeeper"]
