"""In-memory event log shared by the pool components."""
from __future__ import annotations

import logging
from typing import Any

from .models import PoolEvent

logger = logging.getLogger(__name__)


class EventLog:
    """Collects events; the pool service drains the outbox after each operation."""

    def __init__(self) -> None:
        self.history: list[PoolEvent] = []
        self._outbox: list[PoolEvent] = []

    def emit(self, name: str, **data: Any) -> PoolEvent:
        event = PoolEvent(name=name, data=data)
        self.history.append(event)
        self._outbox.append(event)
        logger.debug("Event %s %s", name, data)
        return event

    def drain(self) -> list[PoolEvent]:
        pending, self._outbox = self._outbox, []
        return pending

    def named(self, name: str) -> list[PoolEvent]:
        return [e for e in self.history if e.name == name]
