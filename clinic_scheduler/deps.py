# clinic_scheduler/deps.py

from datetime import datetime

from fastapi import Depends
from sqlmodel import Session

from clinic_scheduler.core import SchedulingPolicy
from clinic_scheduler.db import get_session
from clinic_scheduler.store import load_policy


def get_now() -> datetime:
    return datetime.now()


# Resolved once per request and passed down explicitly
def get_policy(session: Session = Depends(get_session)) -> SchedulingPolicy:
    return load_policy(session)
