# clinic_scheduler/slots.py
"""
Slot generation.

Turns a day's working-hours rules into fixed-length candidate windows,
then drops the ones that collide with existing bookings (widened by the
buffer). Time-off and public holidays block the whole day.

Does NOT contain:
✗ Admission of new bookings (see admission.py)
✗ Any write to the calendar
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlmodel import Session

from clinic_scheduler.core import SchedulingPolicy, TimeSlot, overlaps, sunday_weekday
from clinic_scheduler.errors import InvalidInterval
from clinic_scheduler.holidays import is_public_holiday
from clinic_scheduler.models import AppointmentStatus
from clinic_scheduler.store import CalendarSnapshot, day_bounds, load_snapshot

logger = logging.getLogger(__name__)

SEARCH_HORIZON_DAYS = 30


def generate_slots(
    day: date,
    snapshot: CalendarSnapshot,
    policy: SchedulingPolicy,
    slot_length_minutes: Optional[int] = None,
    buffer_minutes: Optional[int] = None,
) -> list[TimeSlot]:
    """
    Bookable slots for `day`, in chronological order.

    Explicit `slot_length_minutes` / `buffer_minutes` win over the policy.
    An empty list means no availability, never an error.
    """
    # Step 1: Resolve effective lengths
    policy = policy.with_overrides(slot_length_minutes, buffer_minutes)
    if policy.slot_length_minutes <= 0:
        raise InvalidInterval("Slot length must be a positive number of minutes")
    if policy.buffer_minutes < 0:
        raise InvalidInterval("Buffer time cannot be negative")

    slot_delta = timedelta(minutes=policy.slot_length_minutes)
    buffer_delta = timedelta(minutes=policy.buffer_minutes)

    # Step 2: Red days
    if policy.block_public_holidays and is_public_holiday(day):
        return []

    # Step 3: Rules for this weekday that are in effect on this date
    weekday = sunday_weekday(day)
    rules = [
        rule for rule in snapshot.rules
        if rule.weekday == weekday and rule.effective_range().covers(day)
    ]
    if not rules:
        return []

    # Step 4: Any time-off touching the day blocks all of it
    day_start, day_end = day_bounds(day)
    for time_off in snapshot.time_offs:
        if time_off.start_datetime <= day_end and time_off.end_datetime > day_start:
            return []

    # Step 5: Step through each rule independently, anchored at its own start
    candidates: list[TimeSlot] = []
    for rule in rules:
        cursor = datetime.combine(day, rule.start_time)
        rule_end = datetime.combine(day, rule.end_time)

        while cursor + slot_delta <= rule_end:
            candidates.append(TimeSlot(start=cursor, end=cursor + slot_delta))
            cursor += slot_delta + buffer_delta

    # Step 6: Remove slots inside a buffer-widened booking
    busy = [
        (appt.start_time - buffer_delta, appt.end_time + buffer_delta)
        for appt in snapshot.appointments
        if appt.status != AppointmentStatus.CANCELLED
    ]

    available = [
        slot for slot in candidates
        if not any(overlaps(slot.start, slot.end, busy_start, busy_end) for busy_start, busy_end in busy)
    ]

    # Step 7: sorted() is stable, so slots from overlapping rules stay side by side
    return sorted(available, key=lambda slot: slot.start)


def slots_for_date(
    session: Session,
    day: date,
    policy: SchedulingPolicy,
    slot_length_minutes: Optional[int] = None,
    buffer_minutes: Optional[int] = None,
) -> list[TimeSlot]:
    buffer = policy.buffer_minutes if buffer_minutes is None else buffer_minutes
    snapshot = load_snapshot(session, day, pad_minutes=max(buffer, 0))
    return generate_slots(day, snapshot, policy, slot_length_minutes, buffer_minutes)


def find_next_available_slot(
    session: Session,
    now: datetime,
    policy: SchedulingPolicy,
    horizon_days: int = SEARCH_HORIZON_DAYS,
) -> Optional[TimeSlot]:
    """First slot starting strictly after `now` within the horizon (today included)."""
    today = now.date()
    last_day = today + timedelta(days=horizon_days - 1)
    snapshot = load_snapshot(session, today, last_day, pad_minutes=policy.buffer_minutes)

    for offset in range(horizon_days):
        day = today + timedelta(days=offset)
        for slot in generate_slots(day, snapshot, policy):
            if slot.start > now:
                return slot

    logger.info("No available slot within %d days of %s", horizon_days, now.isoformat())
    return None
