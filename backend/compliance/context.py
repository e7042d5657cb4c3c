"""Build the immutable per-evaluation compliance context."""

from datetime import date
from types import MappingProxyType
from typing import Iterable, Optional

from .age import BelowMinimumAgeError, age_band, weekly_ages
from .types import (
    AgeBand,
    ComplianceContext,
    DocumentInfo,
    EmployeeInfo,
    EntryInfo,
    TimesheetInfo,
)
from utils.time import round_hours, today_in_zone

DEFAULT_TIMEZONE = "America/New_York"


def build_context(
    employee: EmployeeInfo,
    timesheet: TimesheetInfo,
    entries: Iterable[EntryInfo],
    documents: Iterable[DocumentInfo],
    check_date: Optional[date] = None,
    timezone_name: str = DEFAULT_TIMEZONE,
) -> ComplianceContext:
    """Assemble a ComplianceContext from already-fetched records.

    Args:
        employee: The timesheet's employee.
        timesheet: Timesheet being evaluated.
        entries: All entries on the timesheet.
        documents: Every document on file for the employee, including invalidated ones.
        check_date: Reference date for expiry checks. Defaults to today in ``timezone_name``.
        timezone_name: IANA zone used to resolve "today".

    Returns:
        Frozen ComplianceContext. Nothing is re-read during evaluation.
    """
    entries = tuple(sorted(entries, key=lambda e: (e.work_date, e.start_time, e.id)))
    documents = tuple(documents)

    ages = weekly_ages(employee.date_of_birth, timesheet.week_start_date)
    bands: dict[date, AgeBand] = {}
    for day, age in ages.items():
        try:
            bands[day] = age_band(age)
        except BelowMinimumAgeError:
            # Youngest band keeps its rules running; age itself stays in daily_ages.
            bands[day] = AgeBand.AGES_12_13

    hours_by_day: dict[date, float] = {}
    entries_by_day: dict[date, list[EntryInfo]] = {}
    school_days: list[date] = []
    for entry in entries:
        hours_by_day[entry.work_date] = hours_by_day.get(entry.work_date, 0.0) + entry.hours
        entries_by_day.setdefault(entry.work_date, []).append(entry)
        if entry.is_school_day and entry.work_date not in school_days:
            school_days.append(entry.work_date)

    hours_by_day = {day: round_hours(total) for day, total in hours_by_day.items()}

    if check_date is None:
        check_date = today_in_zone(timezone_name)

    return ComplianceContext(
        employee=employee,
        timesheet=timesheet,
        entries=entries,
        documents=documents,
        daily_ages=MappingProxyType(ages),
        daily_age_bands=MappingProxyType(bands),
        daily_hours=MappingProxyType(hours_by_day),
        daily_entries=MappingProxyType({d: tuple(es) for d, es in entries_by_day.items()}),
        school_days=tuple(school_days),
        work_days=tuple(entries_by_day.keys()),
        weekly_total=round_hours(sum(hours_by_day.values())),
        is_school_week=bool(school_days),
        check_date=check_date,
    )
