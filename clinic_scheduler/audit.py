# clinic_scheduler/audit.py

import logging

from sqlmodel import Session

from clinic_scheduler.models import AuditLog

logger = logging.getLogger(__name__)


def record_audit(session: Session, entity_type: str, entity_id: int, action: str) -> None:
    # Added to the caller's transaction; lands or rolls back with the change itself
    session.add(AuditLog(entity_type=entity_type, entity_id=entity_id, action=action))
    logger.info("Audit: %s %s %s", entity_type, entity_id, action)
