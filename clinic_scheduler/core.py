# clinic_scheduler/core.py
"""
Value types and interval arithmetic shared by the slot generator and
admission control.

Intervals are closed-open: [start, end).
"""

from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Optional


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return start_a < end_b and end_a > start_b


class OverlapKind(str, Enum):
    STARTS_DURING = "starts_during"  # new starts inside existing
    ENDS_DURING = "ends_during"  # new ends inside existing
    CONTAINS = "contains"  # new covers existing entirely


def classify_overlap(
    new_start: datetime,
    new_end: datetime,
    existing_start: datetime,
    existing_end: datetime,
) -> Optional[OverlapKind]:
    """
    Name the way a proposed interval collides with an existing one.

    The three cases are checked in the order admission queries them and
    together cover exactly what `overlaps` accepts for non-empty intervals.
    Returns None when the two intervals are disjoint.
    """
    if existing_start <= new_start < existing_end:
        return OverlapKind.STARTS_DURING
    if existing_start < new_end <= existing_end:
        return OverlapKind.ENDS_DURING
    if new_start <= existing_start and new_end >= existing_end:
        return OverlapKind.CONTAINS
    return None


def to_local_naive(value: datetime) -> datetime:
    # The calendar stores naive local wall-clock times
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def sunday_weekday(day: date) -> int:
    """Weekday numbered 0=Sunday ... 6=Saturday, as rules store it."""
    return day.isoweekday() % 7


def days_touched(start: datetime, end: datetime) -> list[date]:
    # An interval ending exactly at midnight does not touch the next day
    last = (end - timedelta(microseconds=1)).date()
    days = []
    day = start.date()
    while day <= last:
        days.append(day)
        day += timedelta(days=1)
    return days


@dataclass(frozen=True, order=True)
class TimeSlot:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class Standing:
    """Default rule: applies on every date."""

    def covers(self, day: date) -> bool:
        return True


@dataclass(frozen=True)
class Bounded:
    """Rule limited to a date range; a missing bound is open on that side."""
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None

    def covers(self, day: date) -> bool:
        if self.effective_from is not None and day < self.effective_from:
            return False
        if self.effective_to is not None and day > self.effective_to:
            return False
        return True


@dataclass(frozen=True)
class SchedulingPolicy:
    slot_length_minutes: int = 30
    buffer_minutes: int = 5
    block_public_holidays: bool = False

    def with_overrides(
        self,
        slot_length_minutes: Optional[int] = None,
        buffer_minutes: Optional[int] = None,
    ) -> "SchedulingPolicy":
        changes = {}
        if slot_length_minutes is not None:
            changes["slot_length_minutes"] = slot_length_minutes
        if buffer_minutes is not None:
            changes["buffer_minutes"] = buffer_minutes
        return replace(self, **changes)
