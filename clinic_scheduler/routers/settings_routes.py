# clinic_scheduler/routers/settings_routes.py

from datetime import datetime, time

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import delete
from sqlmodel import Session, select

from clinic_scheduler.db import get_session
from clinic_scheduler.models import SchedulingSettings, WorkingHoursRule
from clinic_scheduler.schemas import SettingsResponse, SettingsUpdate
from clinic_scheduler.store import load_policy

router = APIRouter(
    prefix="/settings",
    tags=["settings"],
)


def _standing_rules(session: Session) -> list[WorkingHoursRule]:
    return session.exec(
        select(WorkingHoursRule)
        .where(WorkingHoursRule.effective_from.is_(None))
        .where(WorkingHoursRule.effective_to.is_(None))
        .order_by(WorkingHoursRule.weekday, WorkingHoursRule.start_time)
    ).all()


def _settings_payload(session: Session) -> dict:
    policy = load_policy(session)
    row = session.exec(select(SchedulingSettings)).first()

    # First standing rule per weekday is what the weekly editor shows
    rule_by_weekday = {}
    for rule in _standing_rules(session):
        rule_by_weekday.setdefault(rule.weekday, rule)

    working_hours = []
    for weekday in range(7):
        rule = rule_by_weekday.get(weekday)
        working_hours.append({
            "weekday": weekday,
            "enabled": rule is not None,
            "start_time": rule.start_time if rule else time(9, 0),
            "end_time": rule.end_time if rule else time(17, 0),
        })

    return {
        "booking": {
            "slot_length": policy.slot_length_minutes,
            "buffer_time": policy.buffer_minutes,
        },
        "scheduling": {
            "block_red_days": policy.block_public_holidays,
            "working_hours": working_hours,
        },
        "updated_at": row.updated_at if row else None,
    }


@router.get("", response_model=SettingsResponse)
def get_settings_view(session: Session = Depends(get_session)):
    return _settings_payload(session)


@router.patch("", response_model=SettingsResponse)
def update_settings(
    changes: SettingsUpdate,
    session: Session = Depends(get_session),
):
    if changes.booking is None and changes.scheduling is None:
        raise HTTPException(status_code=400, detail="At least one of booking or scheduling payload is required")

    # 1) Upsert the single settings row, seeded from the current effective policy
    row = session.exec(select(SchedulingSettings)).first()
    if row is None:
        policy = load_policy(session)
        row = SchedulingSettings(
            slot_length=policy.slot_length_minutes,
            buffer_time=policy.buffer_minutes,
            block_red_days=policy.block_public_holidays,
        )

    if changes.booking is not None:
        row.slot_length = changes.booking.slot_length
        row.buffer_time = changes.booking.buffer_time

    scheduling = changes.scheduling
    if scheduling is not None and scheduling.block_red_days is not None:
        row.block_red_days = scheduling.block_red_days

    row.updated_at = datetime.now()
    session.add(row)

    # 2) Replace the standing weekly rules; date-bounded rules are left alone
    if scheduling is not None and scheduling.working_hours is not None:
        session.exec(
            delete(WorkingHoursRule)
            .where(WorkingHoursRule.effective_from.is_(None))
            .where(WorkingHoursRule.effective_to.is_(None))
        )
        for day in scheduling.working_hours:
            if not day.enabled:
                continue
            session.add(WorkingHoursRule(
                weekday=day.weekday,
                start_time=day.start_time,
                end_time=day.end_time,
            ))

    session.commit()
    return _settings_payload(session)
