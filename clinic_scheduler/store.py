# clinic_scheduler/store.py
"""
Read side of the calendar: rules, time-off, active appointments and the
scheduling policy, loaded as plain snapshots for the slot generator.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import aliased
from sqlmodel import Session, select

from clinic_scheduler.config import Settings, get_settings
from clinic_scheduler.core import SchedulingPolicy
from clinic_scheduler.errors import StoreUnavailable
from clinic_scheduler.models import (
    Appointment,
    AppointmentStatus,
    SchedulingSettings,
    TimeOff,
    WorkingHoursRule,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalendarSnapshot:
    rules: list = field(default_factory=list)
    time_offs: list = field(default_factory=list)
    appointments: list = field(default_factory=list)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


def load_snapshot(
    session: Session,
    first_day: date,
    last_day: Optional[date] = None,
    pad_minutes: int = 0,
) -> CalendarSnapshot:
    """
    Read everything slot generation needs for [first_day, last_day].

    Appointments are padded by `pad_minutes` on both sides so a buffer
    around a booking just outside the window is still seen.
    """
    last_day = last_day or first_day
    window_start = datetime.combine(first_day, time.min)
    window_end = datetime.combine(last_day + timedelta(days=1), time.min)
    pad = timedelta(minutes=pad_minutes)

    try:
        rules = session.exec(
            select(WorkingHoursRule).order_by(WorkingHoursRule.weekday, WorkingHoursRule.start_time)
        ).all()

        time_offs = session.exec(
            select(TimeOff)
            .where(TimeOff.start_datetime < window_end)
            .where(TimeOff.end_datetime > window_start)
        ).all()

        appointments = session.exec(
            select(Appointment)
            .where(Appointment.status != AppointmentStatus.CANCELLED)
            .where(Appointment.start_time < window_end + pad)
            .where(Appointment.end_time > window_start - pad)
            .order_by(Appointment.start_time)
        ).all()
    except OperationalError as exc:
        logger.error("Calendar read failed: %s", exc)
        raise StoreUnavailable("Calendar store is unavailable") from exc

    return CalendarSnapshot(rules=list(rules), time_offs=list(time_offs), appointments=list(appointments))


def load_policy(session: Session, settings: Optional[Settings] = None) -> SchedulingPolicy:
    settings = settings or get_settings()
    try:
        row = session.exec(select(SchedulingSettings)).first()
    except OperationalError as exc:
        logger.error("Settings read failed: %s", exc)
        raise StoreUnavailable("Settings store is unavailable") from exc

    if row is None:
        return SchedulingPolicy(
            slot_length_minutes=settings.default_slot_length,
            buffer_minutes=settings.default_buffer_time,
            block_public_holidays=settings.block_public_holidays,
        )
    return SchedulingPolicy(
        slot_length_minutes=row.slot_length,
        buffer_minutes=row.buffer_time,
        block_public_holidays=row.block_red_days,
    )


def find_overlapping_appointments(session: Session, limit: int = 20) -> list[tuple[int, int]]:
    """Pairs of active appointment ids whose intervals overlap."""
    a = aliased(Appointment)
    b = aliased(Appointment)
    rows = session.exec(
        select(a.id, b.id)
        .where(a.id < b.id)
        .where(a.status != AppointmentStatus.CANCELLED)
        .where(b.status != AppointmentStatus.CANCELLED)
        .where(a.start_time < b.end_time)
        .where(a.end_time > b.start_time)
        .limit(limit)
    ).all()
    return [(row[0], row[1]) for row in rows]
