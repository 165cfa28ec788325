"""Calendar — "now", 30/360 day counts and period boundaries."""
from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, timezone
from enum import Enum

from .constants import DAYS_IN_A_MONTH


class PayPeriodDuration(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMI_ANNUALLY = "semi_annually"

    @property
    def months(self) -> int:
        return {"monthly": 1, "quarterly": 3, "semi_annually": 6}[self.value]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Calendar:
    """Date arithmetic for the pool.

    Args:
        clock: Zero-argument callable returning an aware ``datetime``.
            Defaults to the system clock in UTC; tests inject a fixed one.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or _utcnow

    def now(self) -> datetime:
        return self._clock()

    def today(self) -> date:
        return self._clock().date()

    @staticmethod
    def days_diff(start: date, end: date) -> int:
        """Days between two dates under the 30/360 convention.

        Day 31 counts as day 30, so every full month is exactly 30 days.
        Returns 0 when ``end`` is not after ``start``.
        """
        if end <= start:
            return 0
        start_day = min(start.day, DAYS_IN_A_MONTH)
        end_day = min(end.day, DAYS_IN_A_MONTH)
        months = (end.year - start.year) * 12 + (end.month - start.month)
        return months * DAYS_IN_A_MONTH + end_day - start_day

    @staticmethod
    def next_period_start(when: datetime, period: PayPeriodDuration) -> datetime:
        """Start of the next period boundary strictly after ``when``.

        Periods are aligned to the calendar year: quarters start in
        January, April, July and October; half-years in January and July.
        """
        step = period.months
        month_index = when.month - 1
        next_index = (month_index // step + 1) * step
        year = when.year + next_index // 12
        month = next_index % 12 + 1
        return datetime(year, month, 1, tzinfo=when.tzinfo or timezone.utc)
