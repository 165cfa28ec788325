"""Liquidity sources."""
from .pool_safe import PoolSafe

__all__ = ["PoolSafe"]
