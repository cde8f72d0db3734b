# clinic_scheduler/routers/slots_routes.py

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from clinic_scheduler.config import get_settings
from clinic_scheduler.core import SchedulingPolicy, to_local_naive
from clinic_scheduler.db import get_session
from clinic_scheduler.deps import get_now, get_policy
from clinic_scheduler.schemas import NextSlotResponse, SlotsResponse
from clinic_scheduler.slots import find_next_available_slot, slots_for_date

router = APIRouter(
    prefix="/slots",
    tags=["slots"],
)


@router.get("", response_model=SlotsResponse)
def list_slots(
    date: date,
    slot_length: Optional[int] = Query(default=None, ge=5, le=180),
    buffer: Optional[int] = Query(default=None, ge=0, le=60),
    session: Session = Depends(get_session),
    policy: SchedulingPolicy = Depends(get_policy),
):
    slots = slots_for_date(session, date, policy, slot_length, buffer)
    return {
        "date": date,
        "slots": [{"start": s.start, "end": s.end} for s in slots],
    }


@router.get("/next", response_model=NextSlotResponse)
def next_slot(
    now: Optional[datetime] = None,
    session: Session = Depends(get_session),
    policy: SchedulingPolicy = Depends(get_policy),
    clock_now: datetime = Depends(get_now),
):
    horizon = get_settings().search_horizon_days
    reference = to_local_naive(now) if now is not None else clock_now

    slot = find_next_available_slot(session, reference, policy, horizon)
    if slot is None:
        raise HTTPException(status_code=404, detail=f"No available slots found in the next {horizon} days")

    return {"slot": {"start": slot.start, "end": slot.end}}
