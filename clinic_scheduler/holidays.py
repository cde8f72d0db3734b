# clinic_scheduler/holidays.py
"""
Public holiday ("red day") calendar.

Fixed-date holidays plus the feasts that move with Easter Sunday and two
weekday-anchored days. A date's holidays depend only on its own year.
"""

from datetime import date, timedelta
from functools import lru_cache

FIXED_HOLIDAYS = [
    (1, 1),    # New Year's Day
    (5, 1),    # Labour Day
    (6, 17),   # National Day
    (12, 25),  # Christmas Day
    (12, 26),  # Boxing Day
]

EASTER_OFFSETS = [
    -3,  # Maundy Thursday
    -2,  # Good Friday
    0,   # Easter Sunday
    1,   # Easter Monday
    39,  # Ascension Day
    49,  # Whit Sunday
    50,  # Whit Monday
]


def easter_sunday(year: int) -> date:
    """Gregorian Easter Sunday (anonymous Gregorian / Meeus algorithm)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def _first_weekday_on_or_after(start: date, weekday: int) -> date:
    # weekday uses Python numbering, Monday=0
    return start + timedelta(days=(weekday - start.weekday()) % 7)


def first_day_of_summer(year: int) -> date:
    """First Thursday on or after April 19."""
    return _first_weekday_on_or_after(date(year, 4, 19), 3)


def commerce_day(year: int) -> date:
    """First Monday of August."""
    return _first_weekday_on_or_after(date(year, 8, 1), 0)


@lru_cache(maxsize=64)
def public_holidays_for(year: int) -> frozenset[date]:
    easter = easter_sunday(year)

    holidays = {date(year, month, day) for month, day in FIXED_HOLIDAYS}
    holidays.update(easter + timedelta(days=offset) for offset in EASTER_OFFSETS)
    holidays.add(first_day_of_summer(year))
    holidays.add(commerce_day(year))
    return frozenset(holidays)


def is_public_holiday(day: date) -> bool:
    return day in public_holidays_for(day.year)
