"""Liquidity source protocol — the pool safe holding lender funds."""
from typing import Protocol


class LiquiditySource(Protocol):
    """Abstract interface for the token account backing the pool."""

    async def available_liquidity(self) -> int: ...

    async def deposit(self, sender: str, amount: int) -> None: ...

    async def withdraw(self, recipient: str, amount: int) -> None: ...

    async def reserve(self, amount: int) -> None: ...

    async def release(self, recipient: str, amount: int) -> None: ...
