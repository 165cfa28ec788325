"""Notifier protocol — pool event delivery."""
from typing import Protocol

from ..models import PoolEvent


class Notifier(Protocol):
    """Abstract interface for publishing pool events."""

    async def send_event(self, event: PoolEvent) -> bool: ...
