# clinic_scheduler/routers/availability_routes.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from clinic_scheduler.audit import record_audit
from clinic_scheduler.db import get_session
from clinic_scheduler.models import WorkingHoursRule
from clinic_scheduler.schemas import RuleCreate, RulePublic, RulesResponse

router = APIRouter(
    prefix="/availability",
    tags=["availability"],
)


@router.get("/rules", response_model=RulesResponse)
def list_rules(
    weekday: Optional[int] = None,
    session: Session = Depends(get_session),
):
    stmt = select(WorkingHoursRule)
    if weekday is not None:
        stmt = stmt.where(WorkingHoursRule.weekday == weekday)
    stmt = stmt.order_by(WorkingHoursRule.weekday, WorkingHoursRule.start_time)

    return {"rules": session.exec(stmt).all()}


@router.post("/rules", response_model=RulePublic, status_code=201)
def create_rule(
    rule: RuleCreate,
    session: Session = Depends(get_session),
):
    db_rule = WorkingHoursRule(**rule.model_dump())
    session.add(db_rule)
    session.flush()
    record_audit(session, "WorkingHoursRule", db_rule.id, "CREATE")
    session.commit()
    session.refresh(db_rule)
    return db_rule


@router.delete("/rules/{rule_id}")
def delete_rule(
    rule_id: int,
    session: Session = Depends(get_session),
):
    db_rule = session.get(WorkingHoursRule, rule_id)
    if db_rule is None:
        raise HTTPException(status_code=404, detail="Rule not found")

    session.delete(db_rule)
    record_audit(session, "WorkingHoursRule", rule_id, "DELETE")
    session.commit()
    return {"success": True}
