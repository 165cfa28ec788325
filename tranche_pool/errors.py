"""Pool exceptions.

Every check that can raise one of these runs before any state is touched,
so a raised error always leaves the pool exactly as it was.
"""
from __future__ import annotations


class PoolError(Exception):
    """Base class for all pool errors."""


class Unauthorized(PoolError):
    """The caller is not allowed to invoke this operation."""


class ZeroAmount(PoolError):
    """An amount or share count of zero was passed where a positive one is required."""


class InsufficientFirstLossCover(PoolError):
    """A first loss cover holds less than its configured minimum."""


class InsufficientLiquidity(PoolError):
    """Required liquidity is missing.

    Raised when an admin lender has not deposited the required junior
    liquidity, or when the pool safe cannot cover a post-closure withdrawal.
    """


class RatioExceeded(PoolError):
    """A senior deposit would push senior:junior beyond the configured maximum."""


class UnprocessedProfitPending(PoolError):
    """A tranche still owes yield to lenders who do not reinvest."""


class InvalidCancellation(PoolError):
    """A lender tried to cancel more shares than are outstanding in the open epoch."""


class InsufficientShares(PoolError):
    """A lender tried to redeem more shares than they hold."""


class EpochNotEnded(PoolError):
    """The current epoch cannot be closed before its end time."""


class PoolNotEnabled(PoolError):
    """The pool has not been enabled yet."""


class PoolClosed(PoolError):
    """The pool has been permanently closed."""


class PoolNotClosed(PoolError):
    """The operation is only available once the pool has been closed."""
