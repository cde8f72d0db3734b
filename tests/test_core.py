# tests/test_core.py

from datetime import date, datetime, timedelta
from itertools import product

from clinic_scheduler.core import (
    Bounded,
    OverlapKind,
    SchedulingPolicy,
    Standing,
    classify_overlap,
    days_touched,
    overlaps,
    sunday_weekday,
)

BASE = datetime(2025, 3, 3, 9, 0)


def at(minutes):
    return BASE + timedelta(minutes=minutes)


def test_overlap_subcases_match_single_inequality():
    # Every pair of non-empty intervals on a small grid, touching and nested included
    points = range(0, 8)
    intervals = [(s, e) for s, e in product(points, points) if s < e]

    for (s1, e1), (s2, e2) in product(intervals, intervals):
        expected = overlaps(at(s1), at(e1), at(s2), at(e2))
        kind = classify_overlap(at(s1), at(e1), at(s2), at(e2))
        assert (kind is not None) == expected, (s1, e1, s2, e2)


def test_overlap_subcase_names():
    existing = (at(60), at(90))
    assert classify_overlap(at(70), at(120), *existing) == OverlapKind.STARTS_DURING
    assert classify_overlap(at(30), at(75), *existing) == OverlapKind.ENDS_DURING
    assert classify_overlap(at(30), at(120), *existing) == OverlapKind.CONTAINS
    assert classify_overlap(at(60), at(90), *existing) == OverlapKind.STARTS_DURING


def test_touching_intervals_do_not_overlap():
    assert not overlaps(at(0), at(30), at(30), at(60))
    assert classify_overlap(at(30), at(60), at(0), at(30)) is None
    assert classify_overlap(at(0), at(30), at(30), at(60)) is None


def test_sunday_weekday():
    assert sunday_weekday(date(2025, 3, 2)) == 0  # Sunday
    assert sunday_weekday(date(2025, 3, 3)) == 1  # Monday
    assert sunday_weekday(date(2025, 3, 8)) == 6  # Saturday


def test_days_touched():
    assert days_touched(datetime(2025, 3, 3, 9), datetime(2025, 3, 3, 10)) == [date(2025, 3, 3)]
    assert days_touched(datetime(2025, 3, 3, 23), datetime(2025, 3, 4, 0)) == [date(2025, 3, 3)]
    assert days_touched(datetime(2025, 3, 3, 23), datetime(2025, 3, 4, 1)) == [
        date(2025, 3, 3),
        date(2025, 3, 4),
    ]


def test_rule_effective_ranges():
    day = date(2025, 6, 1)
    assert Standing().covers(day)
    assert Bounded(date(2025, 5, 1), date(2025, 6, 30)).covers(day)
    assert Bounded(date(2025, 6, 1), date(2025, 6, 1)).covers(day)
    assert not Bounded(date(2025, 6, 2), None).covers(day)
    assert Bounded(None, date(2025, 6, 1)).covers(day)
    assert not Bounded(None, date(2025, 5, 31)).covers(day)


def test_policy_overrides():
    policy = SchedulingPolicy(slot_length_minutes=30, buffer_minutes=5)
    assert policy.with_overrides() == policy
    assert policy.with_overrides(45, None).slot_length_minutes == 45
    assert policy.with_overrides(None, 0).buffer_minutes == 0
    assert policy.with_overrides(None, 0).slot_length_minutes == 30
