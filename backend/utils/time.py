"""Time-related utility functions."""

from datetime import date, datetime, timedelta, timezone, tzinfo
from decimal import Decimal, ROUND_HALF_UP

from dateutil import tz

SCHOOL_START_MINUTES = 7 * 60
SCHOOL_END_MINUTES = 15 * 60

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

_TWO_PLACES = Decimal("0.01")


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def get_zone(name: str) -> tzinfo:
    zone = tz.gettz(name)
    if zone is None:
        raise ValueError(f"Unknown timezone: {name}")
    return zone


def today_in_zone(name: str) -> date:
    """Return the current calendar date in the named timezone."""
    return datetime.now(get_zone(name)).date()


def time_to_minutes(time_str: str) -> int:
    parts = time_str.split(":")
    return int(parts[0]) * 60 + int(parts[1])


def round_hours(value) -> float:
    """Round half-up to two decimal places."""
    return float(Decimal(str(value)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def hours_between(start_time: str, end_time: str) -> float | None:
    """Return decimal hours between two HH:MM times, or None if end is not after start."""
    minutes = time_to_minutes(end_time) - time_to_minutes(start_time)
    if minutes <= 0:
        return None
    return float((Decimal(minutes) / Decimal(60)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def overlaps_school_hours(start_time: str, end_time: str) -> bool:
    start = time_to_minutes(start_time)
    end = time_to_minutes(end_time)
    return not (end <= SCHOOL_START_MINUTES or start >= SCHOOL_END_MINUTES)


def week_dates(week_start: date) -> list[date]:
    return [week_start + timedelta(days=i) for i in range(7)]


def is_valid_sunday(day: date) -> bool:
    return day.weekday() == 6


def day_name(day: date) -> str:
    return DAY_NAMES[(day.weekday() + 1) % 7]


def is_default_school_year(day: date) -> bool:
    """School year runs Aug 28 through Jun 20."""
    if day.month > 8 or (day.month == 8 and day.day >= 28):
        return True
    if day.month < 6 or (day.month == 6 and day.day <= 20):
        return True
    return False


def is_default_school_day(day: date) -> bool:
    """Monday to Friday inside the default school year."""
    if day.weekday() >= 5:
        return False
    return is_default_school_year(day)


def labor_day(year: int) -> date:
    """First Monday of September."""
    first = date(year, 9, 1)
    return first + timedelta(days=(7 - first.weekday()) % 7)


def is_summer_period(day: date) -> bool:
    """June 1 up to (not including) Labor Day."""
    if 6 <= day.month <= 8:
        return True
    if day.month == 9:
        return day < labor_day(day.year)
    return False
