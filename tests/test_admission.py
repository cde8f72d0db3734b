# tests/test_admission.py

import threading
from datetime import datetime, timedelta
from itertools import product

import pytest
from sqlmodel import Session, select

from clinic_scheduler.admission import (
    add_time_off,
    admit_booking,
    find_conflicting_appointment,
    lock_days,
    remove_time_off,
    update_booking,
)
from clinic_scheduler.core import classify_overlap, overlaps
from clinic_scheduler.errors import (
    AppointmentClosed,
    BookingConflict,
    InvalidInterval,
    NotFound,
)
from clinic_scheduler.models import AdmissionLock, Appointment, AppointmentStatus, AuditLog, TimeOff


def dt(hour, minute=0, day=3):
    return datetime(2025, 3, day, hour, minute)


def test_admits_free_interval_and_audits(session, client_id):
    appt = admit_booking(session, client_id, dt(10), dt(10, 30), appointment_type="Foot care", note="first visit")

    assert appt.id is not None
    assert appt.status == AppointmentStatus.BOOKED
    assert appt.appointment_type == "Foot care"

    audit = session.exec(select(AuditLog).where(AuditLog.entity_id == appt.id)).all()
    assert [(a.entity_type, a.action) for a in audit] == [("Appointment", "CREATE")]


def test_rejects_empty_or_reversed_interval(session, client_id):
    with pytest.raises(InvalidInterval):
        admit_booking(session, client_id, dt(10), dt(10))
    with pytest.raises(InvalidInterval):
        admit_booking(session, client_id, dt(11), dt(10))


def test_unknown_client(session):
    with pytest.raises(NotFound):
        admit_booking(session, 999, dt(10), dt(10, 30))


@pytest.mark.parametrize(
    "start, end",
    [
        (dt(10, 15), dt(10, 45)),  # starts during existing
        (dt(9, 45), dt(10, 15)),   # ends during existing
        (dt(9, 30), dt(11, 0)),    # contains existing
        (dt(10, 5), dt(10, 25)),   # inside existing
        (dt(10), dt(10, 30)),      # identical
    ],
)
def test_overlap_is_a_conflict(session, client_id, add_appointment, start, end):
    add_appointment(dt(10), dt(10, 30))

    with pytest.raises(BookingConflict):
        admit_booking(session, client_id, start, end)


def test_back_to_back_bookings_are_allowed(session, client_id, add_appointment):
    add_appointment(dt(10), dt(10, 30))

    before = admit_booking(session, client_id, dt(9, 30), dt(10))
    after = admit_booking(session, client_id, dt(10, 30), dt(11))

    assert before.id != after.id


def test_cancelled_booking_frees_its_time(session, client_id, add_appointment):
    add_appointment(dt(10), dt(10, 30), status=AppointmentStatus.CANCELLED)

    appt = admit_booking(session, client_id, dt(10), dt(10, 30))

    assert appt.status == AppointmentStatus.BOOKED


@pytest.mark.parametrize(
    "status",
    [AppointmentStatus.ARRIVED, AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW],
)
def test_other_statuses_still_occupy_time(session, client_id, add_appointment, status):
    add_appointment(dt(10), dt(10, 30), status=status)

    with pytest.raises(BookingConflict):
        admit_booking(session, client_id, dt(10), dt(10, 30))


def test_time_off_blocks_admission(session, client_id):
    session.add(TimeOff(start_datetime=dt(12), end_datetime=dt(13)))
    session.commit()

    with pytest.raises(BookingConflict):
        admit_booking(session, client_id, dt(12, 30), dt(13, 30))
    assert admit_booking(session, client_id, dt(13), dt(13, 30)).id is not None


def test_conflict_query_excludes_given_appointment(session, add_appointment):
    existing = add_appointment(dt(10), dt(10, 30))

    assert find_conflicting_appointment(session, dt(10), dt(10, 30)).id == existing.id
    assert find_conflicting_appointment(session, dt(10), dt(10, 30), exclude_id=existing.id) is None


def test_lock_rows_are_per_day(session):
    lock_days(session, [dt(10).date(), dt(10, day=4).date()])
    lock_days(session, [dt(10).date()])
    session.commit()

    versions = {row.day.isoformat(): row.version for row in session.exec(select(AdmissionLock)).all()}
    assert versions == {"2025-03-03": 2, "2025-03-04": 1}


@pytest.mark.parametrize(
    "second",
    [
        (dt(10), dt(10, 30)),      # identical interval
        (dt(10, 15), dt(10, 45)),  # overlapping interval
    ],
)
def test_racing_admissions_admit_exactly_one(engine, client_id, second):
    barrier = threading.Barrier(2)
    outcomes = []
    lock = threading.Lock()

    def attempt(start, end):
        with Session(engine) as own_session:
            barrier.wait()
            try:
                admit_booking(own_session, client_id, start, end)
                result = "admitted"
            except BookingConflict:
                result = "conflict"
        with lock:
            outcomes.append(result)

    threads = [
        threading.Thread(target=attempt, args=(dt(10), dt(10, 30))),
        threading.Thread(target=attempt, args=second),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(outcomes) == ["admitted", "conflict"]
    with Session(engine) as check:
        rows = check.exec(select(Appointment).where(Appointment.status != AppointmentStatus.CANCELLED)).all()
        assert len(rows) == 1


def test_reschedule_moves_the_booking(session, client_id, add_appointment):
    appt = add_appointment(dt(10), dt(10, 30))

    moved = update_booking(session, appt.id, start=dt(14), end=dt(14, 30))

    assert moved.start_time == dt(14)
    assert moved.end_time == dt(14, 30)


def test_reschedule_may_overlap_its_own_old_slot(session, client_id, add_appointment):
    appt = add_appointment(dt(10), dt(10, 30))

    moved = update_booking(session, appt.id, start=dt(10, 15), end=dt(10, 45))

    assert moved.start_time == dt(10, 15)


def test_reschedule_into_another_booking_conflicts(session, client_id, add_appointment):
    appt = add_appointment(dt(10), dt(10, 30))
    add_appointment(dt(11), dt(11, 30))

    with pytest.raises(BookingConflict):
        update_booking(session, appt.id, start=dt(11, 15), end=dt(11, 45))


def test_reschedule_needs_both_ends(session, add_appointment):
    appt = add_appointment(dt(10), dt(10, 30))

    with pytest.raises(InvalidInterval):
        update_booking(session, appt.id, start=dt(11))


def test_note_only_edit(session, add_appointment):
    appt = add_appointment(dt(10), dt(10, 30))

    edited = update_booking(session, appt.id, note="bring insoles")

    assert edited.note == "bring insoles"
    assert edited.start_time == dt(10)


def test_terminal_appointments_are_immutable(session, add_appointment):
    appt = add_appointment(dt(10), dt(10, 30), status=AppointmentStatus.COMPLETED)

    with pytest.raises(AppointmentClosed):
        update_booking(session, appt.id, start=dt(11), end=dt(11, 30))


def test_update_missing_appointment(session):
    with pytest.raises(NotFound):
        update_booking(session, 404, note="x")


def test_time_off_cannot_cover_a_booking(session, add_appointment):
    add_appointment(dt(10), dt(10, 30))

    with pytest.raises(BookingConflict):
        add_time_off(session, dt(8), dt(12), reason="Conference")

    time_off = add_time_off(session, dt(12), dt(18), reason="Conference")
    assert time_off.reason == "Conference"


def test_time_off_ignores_cancelled_bookings(session, add_appointment):
    add_appointment(dt(10), dt(10, 30), status=AppointmentStatus.CANCELLED)

    assert add_time_off(session, dt(8), dt(12)).id is not None


def test_remove_time_off(session):
    time_off = add_time_off(session, dt(8), dt(12))

    remove_time_off(session, time_off.id)

    assert session.get(TimeOff, time_off.id) is None
    with pytest.raises(NotFound):
        remove_time_off(session, time_off.id)


def test_conflict_query_matches_overlap_inequality(session, add_appointment):
    # Stored row at quarter hours [3, 5); every non-empty interval on the 0..8 grid is checked
    base = dt(9)

    def q(n):
        return base + timedelta(minutes=15 * n)

    add_appointment(q(3), q(5))

    for s, e in product(range(9), range(9)):
        if s >= e:
            continue
        found = find_conflicting_appointment(session, q(s), q(e)) is not None
        assert found == overlaps(q(s), q(e), q(3), q(5)), (s, e)
        assert (classify_overlap(q(s), q(e), q(3), q(5)) is not None) == found, (s, e)


def test_naive_local_times_are_stored_as_given(engine, client_id):
    with Session(engine) as writer:
        appt = admit_booking(writer, client_id, dt(10), dt(10, 30))
        time_off = add_time_off(writer, dt(14), dt(15), reason="Lunch meeting")

    with Session(engine) as reader:
        stored = reader.get(Appointment, appt.id)
        assert stored.start_time == dt(10)
        assert stored.end_time == dt(10, 30)
        assert stored.start_time.tzinfo is None
        assert stored.created_at.tzinfo is None

        stored_off = reader.get(TimeOff, time_off.id)
        assert stored_off.start_datetime == dt(14)
        assert stored_off.start_datetime.tzinfo is None

        audit = reader.exec(select(AuditLog)).all()
        assert audit and all(a.created_at.tzinfo is None for a in audit)
