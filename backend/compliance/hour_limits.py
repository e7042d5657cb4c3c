"""Hour limits by age, and the shared daily/weekly limit check.

The same ``check_hour_limits`` result backs the entry preview (reported as
data) and entry create/update (raised as ``HOUR_LIMIT_EXCEEDED``), so both
paths agree on identical inputs.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Protocol

from .age import age_band
from .types import AgeBand
from utils.time import round_hours

WARNING_THRESHOLD = 0.8

UNRESTRICTED_DAILY = 24
UNRESTRICTED_WEEKLY = 168


@dataclass(frozen=True)
class HourLimits:
    """Daily and weekly hour ceilings for one age."""
    age_band: AgeBand
    daily_limit: int
    weekly_limit: int
    daily_limit_school_day: Optional[int] = None
    weekly_limit_school_week: Optional[int] = None
    days_worked_limit: Optional[int] = None

    @property
    def is_unrestricted(self) -> bool:
        return self.age_band == AgeBand.ADULT

    def to_dict(self) -> dict:
        return {
            "age_band": self.age_band.value,
            "daily_limit": self.daily_limit,
            "daily_limit_school_day": self.daily_limit_school_day,
            "weekly_limit": self.weekly_limit,
            "weekly_limit_school_week": self.weekly_limit_school_week,
            "days_worked_limit": self.days_worked_limit,
            "is_unrestricted": self.is_unrestricted,
        }


_LIMITS_BY_BAND = {
    AgeBand.AGES_12_13: HourLimits(AgeBand.AGES_12_13, daily_limit=4, weekly_limit=24),
    AgeBand.AGES_14_15: HourLimits(
        AgeBand.AGES_14_15,
        daily_limit=8,
        weekly_limit=40,
        daily_limit_school_day=3,
        weekly_limit_school_week=18,
    ),
    AgeBand.AGES_16_17: HourLimits(
        AgeBand.AGES_16_17, daily_limit=9, weekly_limit=48, days_worked_limit=6
    ),
    AgeBand.ADULT: HourLimits(
        AgeBand.ADULT, daily_limit=UNRESTRICTED_DAILY, weekly_limit=UNRESTRICTED_WEEKLY
    ),
}


def limits_for_age(age: int) -> HourLimits:
    """Raises BelowMinimumAgeError for ages under 12."""
    return _LIMITS_BY_BAND[age_band(age)]


def limits_for_band(band: AgeBand) -> HourLimits:
    return _LIMITS_BY_BAND[band]


def resolve_daily_limit(limits: HourLimits, is_school_day: bool) -> int:
    if limits.daily_limit_school_day is not None and is_school_day:
        return limits.daily_limit_school_day
    return limits.daily_limit


def resolve_weekly_limit(limits: HourLimits, is_school_week: bool) -> int:
    if limits.weekly_limit_school_week is not None and is_school_week:
        return limits.weekly_limit_school_week
    return limits.weekly_limit


class _LoggedHours(Protocol):
    id: str
    work_date: date
    hours: float
    is_school_day: bool


@dataclass(frozen=True)
class HourUsage:
    current: float
    entry: float
    projected: float
    limit: int

    @property
    def exceeded(self) -> bool:
        return self.projected > self.limit

    @property
    def approaching(self) -> bool:
        return not self.exceeded and self.projected >= self.limit * WARNING_THRESHOLD

    @property
    def remaining(self) -> float:
        """Hours left before this entry is added."""
        return max(round_hours(self.limit - self.current), 0.0)

    def to_dict(self) -> dict:
        return {
            "current": self.current,
            "projected": self.projected,
            "limit": self.limit,
            "remaining": self.remaining,
        }


@dataclass(frozen=True)
class HourLimitCheck:
    age: int
    limits: HourLimits
    is_school_day: bool
    is_school_week: bool
    daily: HourUsage
    weekly: HourUsage

    @property
    def valid(self) -> bool:
        return not (self.daily.exceeded or self.weekly.exceeded)

    def exceeded_message(self, period: str) -> str:
        usage = self.daily if period == "daily" else self.weekly
        return (
            f"This entry would exceed the {period} limit of {usage.limit} hours "
            f"for your age group ({self.age} years old). "
            f"Current: {usage.current:.1f}h, Entry: {usage.entry:.1f}h, "
            f"Total would be: {usage.projected:.1f}h"
        )

    def error_message(self) -> Optional[str]:
        """Message for the first exceeded limit, daily before weekly."""
        if self.daily.exceeded:
            return self.exceeded_message("daily")
        if self.weekly.exceeded:
            return self.exceeded_message("weekly")
        return None


def check_hour_limits(
    age: int,
    work_date: date,
    new_hours: float,
    is_school_day: bool,
    existing_entries: Iterable[_LoggedHours],
    exclude_entry_id: Optional[str] = None,
) -> HourLimitCheck:
    """Project daily and weekly totals after adding ``new_hours`` on ``work_date``.

    Args:
        age: Worker's age on ``work_date``.
        work_date: Date of the proposed entry.
        new_hours: Rounded hours of the proposed entry.
        is_school_day: School-day flag of the proposed entry. The day also counts
            as a school day when any other entry on ``work_date`` is flagged.
        existing_entries: Entries already on the timesheet.
        exclude_entry_id: Entry being replaced by an edit, left out of the totals.

    Returns:
        HourLimitCheck with the resolved limits and current/projected usage.
    """
    limits = limits_for_age(age)

    daily_current = 0.0
    weekly_current = 0.0
    is_school_week = is_school_day
    for entry in existing_entries:
        if exclude_entry_id is not None and entry.id == exclude_entry_id:
            continue
        weekly_current += entry.hours
        if entry.work_date == work_date:
            daily_current += entry.hours
            if entry.is_school_day:
                is_school_day = True
        if entry.is_school_day:
            is_school_week = True

    daily_current = round_hours(daily_current)
    weekly_current = round_hours(weekly_current)

    return HourLimitCheck(
        age=age,
        limits=limits,
        is_school_day=is_school_day,
        is_school_week=is_school_week,
        daily=HourUsage(
            current=daily_current,
            entry=new_hours,
            projected=round_hours(daily_current + new_hours),
            limit=resolve_daily_limit(limits, is_school_day),
        ),
        weekly=HourUsage(
            current=weekly_current,
            entry=new_hours,
            projected=round_hours(weekly_current + new_hours),
            limit=resolve_weekly_limit(limits, is_school_week),
        ),
    )
