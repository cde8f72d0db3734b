# tests/conftest.py

from datetime import datetime, time

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from clinic_scheduler.config import Settings
from clinic_scheduler.db import build_engine, get_session, init_db
from clinic_scheduler.deps import get_now
from clinic_scheduler.main import app
from clinic_scheduler.models import Appointment, AppointmentStatus, Client, WorkingHoursRule


@pytest.fixture
def engine(tmp_path):
    # File-backed so separate connections really contend for locks
    settings = Settings(database_url=f"sqlite:///{tmp_path / 'clinic.db'}", sqlite_busy_timeout=15.0)
    test_engine = build_engine(settings)
    init_db(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def client_id(session):
    c = Client(name="Anna Jónsdóttir", email="anna@example.com")
    session.add(c)
    session.commit()
    session.refresh(c)
    return c.id


@pytest.fixture
def weekday_rules(session):
    # Monday to Friday, 09:00-17:00 (0=Sunday)
    for weekday in range(1, 6):
        session.add(WorkingHoursRule(weekday=weekday, start_time=time(9, 0), end_time=time(17, 0)))
    session.commit()


@pytest.fixture
def add_appointment(session, client_id):
    def _add(start, end, status=AppointmentStatus.BOOKED):
        appt = Appointment(client_id=client_id, start_time=start, end_time=end, status=status)
        session.add(appt)
        session.commit()
        session.refresh(appt)
        return appt

    return _add


@pytest.fixture
def fixed_now():
    return {"value": datetime(2025, 3, 3, 8, 0)}


@pytest.fixture
def api(engine, fixed_now):
    def override_session():
        with Session(engine) as s:
            yield s

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_now] = lambda: fixed_now["value"]
    # No context manager: the lifespan would initialise the default database
    yield TestClient(app)
    app.dependency_overrides.clear()
