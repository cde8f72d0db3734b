# clinic_scheduler/routers/appointments_routes.py

import logging
from datetime import datetime, timedelta, date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from clinic_scheduler.admission import admit_booking, update_booking
from clinic_scheduler.db import get_session
from clinic_scheduler.deps import get_now
from clinic_scheduler.errors import StoreUnavailable
from clinic_scheduler.models import Appointment, AppointmentStatus
from clinic_scheduler.schemas import (
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentResponse,
    AppointmentStatusChange,
    AppointmentUpdate,
    NextAppointmentResponse,
)
from clinic_scheduler.status import ACTIONS, change_status

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/appointments",
    tags=["appointments"],
)


@router.post("", response_model=AppointmentResponse, status_code=201)
def create_appointment(
    appt: AppointmentCreate,
    session: Session = Depends(get_session),
):
    db_appt = admit_booking(
        session,
        client_id=appt.client_id,
        start=appt.start_time,
        end=appt.end_time,
        appointment_type=appt.appointment_type,
        note=appt.note,
    )
    return {"appointment": db_appt}


@router.get("", response_model=AppointmentListResponse)
def list_appointments(
    on_date: Optional[date] = None,
    client_id: Optional[int] = None,
    session: Session = Depends(get_session),
):
    stmt = select(Appointment)

    if client_id is not None:
        stmt = stmt.where(Appointment.client_id == client_id)

    if on_date is not None:
        day_start_dt = datetime.combine(on_date, datetime.min.time())
        day_end_dt = day_start_dt + timedelta(days=1)
        stmt = stmt.where(Appointment.start_time >= day_start_dt).where(Appointment.start_time < day_end_dt)
        stmt = stmt.order_by(Appointment.start_time)
    else:
        stmt = stmt.order_by(Appointment.start_time.desc())

    try:
        appts = session.exec(stmt).all()
    except OperationalError as exc:
        logger.error("Listing appointments failed: %s", exc)
        raise StoreUnavailable("Appointment store is unavailable") from exc
    return {"appointments": appts}


@router.get("/next", response_model=NextAppointmentResponse)
def next_appointment(
    session: Session = Depends(get_session),
    now: datetime = Depends(get_now),
):
    try:
        appt = session.exec(
            select(Appointment)
            .where(Appointment.start_time >= now)
            .where(Appointment.status != AppointmentStatus.CANCELLED)
            .order_by(Appointment.start_time)
        ).first()
    except OperationalError as exc:
        logger.error("Next appointment lookup failed: %s", exc)
        raise StoreUnavailable("Appointment store is unavailable") from exc
    return {"appointment": appt}


@router.get("/{appt_id}", response_model=AppointmentResponse)
def get_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
):
    try:
        appt = session.get(Appointment, appt_id)
    except OperationalError as exc:
        logger.error("Reading appointment %s failed: %s", appt_id, exc)
        raise StoreUnavailable("Appointment store is unavailable") from exc
    if appt is None:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return {"appointment": appt}


@router.patch("/{appt_id}", response_model=AppointmentResponse)
def edit_appointment(
    appt_id: int,
    changes: AppointmentUpdate,
    session: Session = Depends(get_session),
):
    fields = changes.model_dump(exclude_unset=True)
    extra = {"note": fields["note"]} if "note" in fields else {}

    appt = update_booking(
        session,
        appt_id,
        start=changes.start_time,
        end=changes.end_time,
        **extra,
    )
    return {"appointment": appt}


@router.post("/{appt_id}/status", response_model=AppointmentResponse)
def update_status(
    appt_id: int,
    change: AppointmentStatusChange,
    session: Session = Depends(get_session),
):
    appt = change_status(session, appt_id, ACTIONS[change.action.value])
    return {"appointment": appt}


@router.patch("/{appt_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appt_id: int,
    session: Session = Depends(get_session),
):
    appt = change_status(session, appt_id, AppointmentStatus.CANCELLED)
    return {"appointment": appt}
