# clinic_scheduler/status.py

import logging

from sqlalchemy import update
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from clinic_scheduler.audit import record_audit
from clinic_scheduler.errors import InvalidTransition, NotFound, StoreUnavailable
from clinic_scheduler.models import Appointment, AppointmentStatus

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    AppointmentStatus.BOOKED: {
        AppointmentStatus.ARRIVED,
        AppointmentStatus.NO_SHOW,
        AppointmentStatus.CANCELLED,
    },
    AppointmentStatus.ARRIVED: {
        AppointmentStatus.COMPLETED,
        AppointmentStatus.NO_SHOW,
    },
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.NO_SHOW: set(),
    AppointmentStatus.CANCELLED: set(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

# Request actions accepted by the status endpoint
ACTIONS = {
    "arrived": AppointmentStatus.ARRIVED,
    "completed": AppointmentStatus.COMPLETED,
    "no_show": AppointmentStatus.NO_SHOW,
    "cancelled": AppointmentStatus.CANCELLED,
}


def is_allowed_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    if current == target:
        return True
    return target in ALLOWED_TRANSITIONS.get(current, set())


def change_status(session: Session, appointment_id: int, target: AppointmentStatus) -> Appointment:
    """
    Move an appointment to `target`, enforcing the transition table.

    The write is a compare-and-set on the status read just before, so two
    racing changes cannot both apply from the same starting state. The loser
    re-reads and is judged against the status that actually won. That loop
    ends because the transition graph has no cycles.
    """
    try:
        while True:
            appt = session.get(Appointment, appointment_id)
            if appt is None:
                raise NotFound("Appointment not found")

            current = appt.status
            if not is_allowed_transition(current, target):
                logger.info("Rejected transition %s -> %s for appointment %s", current.value, target.value, appointment_id)
                raise InvalidTransition(current, target)

            if current == target:
                return appt

            result = session.exec(
                update(Appointment)
                .where(Appointment.id == appointment_id)
                .where(Appointment.status == current)
                .values(status=target)
            )
            if result.rowcount == 1:
                break

            # Someone else moved it first
            session.rollback()

        record_audit(session, "Appointment", appointment_id, f"STATUS_{target.value}")
        session.commit()
    except OperationalError as exc:
        session.rollback()
        logger.error("Status change for appointment %s failed: %s", appointment_id, exc)
        raise StoreUnavailable("Appointment store is unavailable") from exc

    session.refresh(appt)
    logger.info("Appointment %s: %s -> %s", appointment_id, current.value, target.value)
    return appt
