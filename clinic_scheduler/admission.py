# clinic_scheduler/admission.py
"""
Booking admission control.

Every write that claims calendar time (new booking, reschedule, time-off)
first locks the calendar days it touches by upserting their AdmissionLock
rows. The database holds those row locks until commit, so check-then-insert
is atomic against every other writer on the same days, whichever process
it runs in. Days are always locked in ascending order.
"""

import logging
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy import and_, or_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel import Session, select

from clinic_scheduler.audit import record_audit
from clinic_scheduler.core import classify_overlap, days_touched
from clinic_scheduler.errors import (
    AppointmentClosed,
    BookingConflict,
    InvalidInterval,
    NotFound,
    SchedulingError,
    StoreUnavailable,
)
from clinic_scheduler.models import AdmissionLock, Appointment, AppointmentStatus, Client, TimeOff
from clinic_scheduler.status import TERMINAL_STATUSES

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}

_UNSET = object()


def lock_days(session: Session, days: Iterable[date]) -> None:
    dialect = session.get_bind().dialect.name
    insert = _UPSERT_DIALECTS.get(dialect)
    if insert is None:
        raise StoreUnavailable(f"Admission locking is not supported on {dialect}")

    table = AdmissionLock.__table__
    for day in sorted(set(days)):
        stmt = insert(table).values(day=day, version=1)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.day],
            set_={"version": table.c.version + 1},
        )
        session.exec(stmt)


def find_conflicting_appointment(
    session: Session,
    start: datetime,
    end: datetime,
    exclude_id: Optional[int] = None,
) -> Optional[Appointment]:
    stmt = (
        select(Appointment)
        .where(Appointment.status != AppointmentStatus.CANCELLED)
        .where(
            or_(
                # new starts during existing
                and_(Appointment.start_time <= start, Appointment.end_time > start),
                # new ends during existing
                and_(Appointment.start_time < end, Appointment.end_time >= end),
                # new fully contains existing
                and_(Appointment.start_time >= start, Appointment.end_time <= end),
            )
        )
        .order_by(Appointment.start_time)
    )
    if exclude_id is not None:
        stmt = stmt.where(Appointment.id != exclude_id)
    return session.exec(stmt).first()


def find_blocking_time_off(session: Session, start: datetime, end: datetime) -> Optional[TimeOff]:
    return session.exec(
        select(TimeOff)
        .where(TimeOff.start_datetime < end)
        .where(TimeOff.end_datetime > start)
    ).first()


def _ensure_free(session: Session, start: datetime, end: datetime, exclude_id: Optional[int] = None) -> None:
    existing = find_conflicting_appointment(session, start, end, exclude_id)
    if existing is not None:
        kind = classify_overlap(start, end, existing.start_time, existing.end_time)
        logger.info(
            "Rejected %s - %s: %s appointment %s (%s - %s)",
            start.isoformat(), end.isoformat(), kind.value, existing.id,
            existing.start_time.isoformat(), existing.end_time.isoformat(),
        )
        raise BookingConflict("Time slot is already booked")

    time_off = find_blocking_time_off(session, start, end)
    if time_off is not None:
        logger.info("Rejected %s - %s: inside time off %s", start.isoformat(), end.isoformat(), time_off.id)
        raise BookingConflict("Time slot falls within time off")


def admit_booking(
    session: Session,
    client_id: int,
    start: datetime,
    end: datetime,
    appointment_type: Optional[str] = None,
    note: Optional[str] = None,
) -> Appointment:
    # 1) Validate interval
    if start >= end:
        raise InvalidInterval("End time must be after start time")

    try:
        # 2) Serialize against other writers on the same days
        lock_days(session, days_touched(start, end))

        # 3) Client must exist
        if session.get(Client, client_id) is None:
            raise NotFound("Client not found")

        # 4) Reject overlaps with active appointments and time off
        _ensure_free(session, start, end)

        # 5) Create and save appointment
        appt = Appointment(
            client_id=client_id,
            start_time=start,
            end_time=end,
            status=AppointmentStatus.BOOKED,
            appointment_type=appointment_type,
            note=note,
        )
        session.add(appt)
        session.flush()  # fills appt.id
        record_audit(session, "Appointment", appt.id, "CREATE")
        session.commit()
    except SchedulingError:
        session.rollback()
        raise
    except IntegrityError as exc:
        session.rollback()
        raise BookingConflict("Appointment could not be stored") from exc
    except OperationalError as exc:
        session.rollback()
        logger.error("Admission for client %s failed: %s", client_id, exc)
        raise StoreUnavailable("Appointment store is unavailable") from exc

    session.refresh(appt)
    logger.info("Admitted appointment %s: %s - %s", appt.id, start.isoformat(), end.isoformat())
    return appt


def update_booking(
    session: Session,
    appointment_id: int,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    note=_UNSET,
) -> Appointment:
    """Reschedule and/or edit the note of a still-open appointment."""
    if (start is None) != (end is None):
        raise InvalidInterval("start_time and end_time must be provided together")
    if start is not None and start >= end:
        raise InvalidInterval("End time must be after start time")

    try:
        if start is not None:
            lock_days(session, days_touched(start, end))

        appt = session.get(Appointment, appointment_id)
        if appt is None:
            raise NotFound("Appointment not found")
        if appt.status in TERMINAL_STATUSES:
            raise AppointmentClosed(f"Appointment is {appt.status.value} and can no longer be changed")

        if start is not None:
            _ensure_free(session, start, end, exclude_id=appt.id)
            appt.start_time = start
            appt.end_time = end
        if note is not _UNSET:
            appt.note = note

        session.add(appt)
        record_audit(session, "Appointment", appt.id, "UPDATE")
        session.commit()
    except SchedulingError:
        session.rollback()
        raise
    except OperationalError as exc:
        session.rollback()
        logger.error("Update of appointment %s failed: %s", appointment_id, exc)
        raise StoreUnavailable("Appointment store is unavailable") from exc

    session.refresh(appt)
    return appt


def add_time_off(
    session: Session,
    start: datetime,
    end: datetime,
    reason: Optional[str] = None,
) -> TimeOff:
    if start >= end:
        raise InvalidInterval("Invalid time range")

    try:
        lock_days(session, days_touched(start, end))

        blocking = session.exec(
            select(Appointment)
            .where(Appointment.status != AppointmentStatus.CANCELLED)
            .where(Appointment.start_time < end)
            .where(Appointment.end_time > start)
        ).first()
        if blocking is not None:
            raise BookingConflict("Cannot block over an existing appointment")

        time_off = TimeOff(start_datetime=start, end_datetime=end, reason=reason or None)
        session.add(time_off)
        session.flush()
        record_audit(session, "TimeOff", time_off.id, "CREATE")
        session.commit()
    except SchedulingError:
        session.rollback()
        raise
    except OperationalError as exc:
        session.rollback()
        logger.error("Time off %s - %s failed: %s", start.isoformat(), end.isoformat(), exc)
        raise StoreUnavailable("Calendar store is unavailable") from exc

    session.refresh(time_off)
    return time_off


def remove_time_off(session: Session, time_off_id: int) -> None:
    time_off = session.get(TimeOff, time_off_id)
    if time_off is None:
        raise NotFound("TimeOff not found")

    try:
        session.delete(time_off)
        record_audit(session, "TimeOff", time_off_id, "DELETE")
        session.commit()
    except OperationalError as exc:
        session.rollback()
        logger.error("Deleting time off %s failed: %s", time_off_id, exc)
        raise StoreUnavailable("Calendar store is unavailable") from exc
