# clinic_scheduler/routers/time_off_routes.py

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from clinic_scheduler.admission import add_time_off, remove_time_off
from clinic_scheduler.core import to_local_naive
from clinic_scheduler.db import get_session
from clinic_scheduler.errors import InvalidInterval
from clinic_scheduler.models import TimeOff
from clinic_scheduler.schemas import TimeOffCreate, TimeOffListResponse, TimeOffPublic

router = APIRouter(
    prefix="/time-off",
    tags=["time-off"],
)


@router.get("", response_model=TimeOffListResponse)
def list_time_off(
    start: datetime,
    end: datetime,
    session: Session = Depends(get_session),
):
    start, end = to_local_naive(start), to_local_naive(end)
    if start >= end:
        raise InvalidInterval("Invalid start/end range")

    time_offs = session.exec(
        select(TimeOff)
        .where(TimeOff.start_datetime < end)
        .where(TimeOff.end_datetime > start)
        .order_by(TimeOff.start_datetime)
    ).all()
    return {"time_offs": time_offs}


@router.post("", response_model=TimeOffPublic, status_code=201)
def create_time_off(
    block: TimeOffCreate,
    session: Session = Depends(get_session),
):
    return add_time_off(session, block.start_datetime, block.end_datetime, block.reason)


@router.delete("/{time_off_id}")
def delete_time_off(
    time_off_id: int,
    session: Session = Depends(get_session),
):
    remove_time_off(session, time_off_id)
    return {"success": True}
