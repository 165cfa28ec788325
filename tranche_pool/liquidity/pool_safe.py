"""In-memory pool safe — token balance backing the pool."""
from __future__ import annotations

import logging

from ..errors import ZeroAmount

logger = logging.getLogger(__name__)


class PoolSafe:
    """Holds pool liquidity and the amounts set aside for redemptions.

    ``reserved`` is money owed to redeeming lenders; it is excluded from
    ``available_liquidity`` until released to them.
    """

    def __init__(self, balance: int = 0) -> None:
        self.balance = balance
        self.reserved = 0
        self.received: dict[str, int] = {}
        self.paid: dict[str, int] = {}

    async def available_liquidity(self) -> int:
        return self.balance - self.reserved

    async def deposit(self, sender: str, amount: int) -> None:
        if amount <= 0:
            raise ZeroAmount("Deposit amount must be positive")
        self.balance += amount
        self.received[sender] = self.received.get(sender, 0) + amount

    async def withdraw(self, recipient: str, amount: int) -> None:
        available = await self.available_liquidity()
        if amount > available:
            raise ValueError(f"Withdrawal of {amount} exceeds available liquidity {available}")
        self.balance -= amount
        self.paid[recipient] = self.paid.get(recipient, 0) + amount

    async def reserve(self, amount: int) -> None:
        available = await self.available_liquidity()
        if amount > available:
            raise ValueError(f"Cannot reserve {amount}; only {available} available")
        self.reserved += amount
        logger.debug("Reserved %d for redemptions (total %d)", amount, self.reserved)

    async def release(self, recipient: str, amount: int) -> None:
        if amount > self.reserved:
            raise ValueError(f"Cannot release {amount}; only {self.reserved} reserved")
        self.reserved -= amount
        self.balance -= amount
        self.paid[recipient] = self.paid.get(recipient, 0) + amount
