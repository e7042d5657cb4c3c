"""Timesheet entry create/update/delete, preview and totals."""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from compliance.age import BelowMinimumAgeError, age_band, age_on_date, birthday_in_week, weekly_ages
from compliance.hour_limits import (
    WARNING_THRESHOLD,
    check_hour_limits,
    limits_for_age,
    resolve_daily_limit,
    resolve_weekly_limit,
)
from compliance.preview import EntryCompliancePreview, EntryProposal, preview_entry
from compliance.types import EmployeeInfo, EntryInfo, TaskCodeInfo, TimesheetInfo
from services.locking import TimesheetLocks
from services.repository import EntryRecord, TimesheetRepository
from utils.time import (
    day_name,
    hours_between,
    is_default_school_day,
    round_hours,
    week_dates,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({
    "start_time",
    "end_time",
    "task_code_id",
    "is_school_day",
    "school_day_override_note",
    "supervisor_present_name",
    "meal_break_confirmed",
})


class TimesheetEntryError(Exception):
    """Error raised by entry operations; ``code`` is stable for API mapping."""

    def __init__(self, message: str, code: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


@dataclass(frozen=True)
class EntryInput:
    """A new entry as submitted by the worker.

    ``is_school_day`` left as None falls back to the calendar default.
    """
    work_date: date
    start_time: str
    end_time: str
    task_code_id: str
    is_school_day: Optional[bool] = None
    school_day_override_note: Optional[str] = None
    supervisor_present_name: Optional[str] = None
    meal_break_confirmed: Optional[bool] = None


def calculate_hours(start_time: str, end_time: str) -> float:
    hours = hours_between(start_time, end_time)
    if hours is None:
        raise TimesheetEntryError("End time must be after start time", "INVALID_TIME_RANGE")
    return hours


def validate_entry_date(week_start_date: date, work_date: date) -> bool:
    return work_date in week_dates(week_start_date)


def default_school_day_status(work_date: date) -> bool:
    """Weekdays inside the default school year (Aug 28 - Jun 20)."""
    return is_default_school_day(work_date)


async def _load_timesheet(repo: TimesheetRepository, timesheet_id: str) -> TimesheetInfo:
    timesheet = await repo.get_timesheet(timesheet_id)
    if timesheet is None:
        raise TimesheetEntryError("Timesheet not found", "TIMESHEET_NOT_FOUND")
    return timesheet


async def _load_editable_timesheet(
    repo: TimesheetRepository, timesheet_id: str, action: str
) -> TimesheetInfo:
    timesheet = await _load_timesheet(repo, timesheet_id)
    if not timesheet.is_editable:
        raise TimesheetEntryError(
            f"Cannot {action} timesheet with status: {timesheet.status.value}",
            "TIMESHEET_NOT_EDITABLE",
        )
    return timesheet


async def _load_employee(repo: TimesheetRepository, employee_id: str) -> EmployeeInfo:
    employee = await repo.get_employee(employee_id)
    if employee is None:
        raise TimesheetEntryError("Employee not found", "EMPLOYEE_NOT_FOUND")
    return employee


async def _load_task_code(repo: TimesheetRepository, task_code_id: str) -> TaskCodeInfo:
    task_code = await repo.get_task_code(task_code_id)
    if task_code is None:
        raise TimesheetEntryError("Task code not found", "TASK_CODE_NOT_FOUND")
    return task_code


def _check_task_age(task_code: TaskCodeInfo, age: int, work_date: date) -> None:
    if age < task_code.min_age_allowed:
        raise TimesheetEntryError(
            f"Task {task_code.code} ({task_code.name}) requires a minimum age of "
            f"{task_code.min_age_allowed}. Worker is {age} on {work_date.isoformat()}.",
            "TASK_CODE_AGE_RESTRICTED",
            {"min_age_allowed": task_code.min_age_allowed, "age": age},
        )


def _enforce_hour_limits(
    age: int,
    work_date: date,
    hours: float,
    is_school_day: bool,
    entries: Iterable[EntryInfo],
    exclude_entry_id: Optional[str] = None,
) -> None:
    check = check_hour_limits(
        age, work_date, hours, is_school_day, entries, exclude_entry_id=exclude_entry_id
    )
    if check.valid:
        return

    period = "daily" if check.daily.exceeded else "weekly"
    usage = check.daily if check.daily.exceeded else check.weekly
    raise TimesheetEntryError(
        check.error_message(),
        "HOUR_LIMIT_EXCEEDED",
        {
            "period": period,
            "current": usage.current,
            "entry": usage.entry,
            "projected": usage.projected,
            "limit": usage.limit,
        },
    )


def _worker_age(employee: EmployeeInfo, work_date: date) -> int:
    age = age_on_date(employee.date_of_birth, work_date)
    # Raises BelowMinimumAgeError
    age_band(age)
    return age


async def create_entry(
    repo: TimesheetRepository,
    locks: TimesheetLocks,
    timesheet_id: str,
    data: EntryInput,
) -> EntryInfo:
    """
    Create an entry after the same hour-limit check the preview runs.

    Raises:
        TimesheetEntryError: lookup, state, date, time-range, task-age or hour-limit failure
        BelowMinimumAgeError: worker is under 12 on the work date
    """
    async with locks.lock(timesheet_id):
        timesheet = await _load_editable_timesheet(repo, timesheet_id, "add entries to")

        if not validate_entry_date(timesheet.week_start_date, data.work_date):
            raise TimesheetEntryError("Work date must be within the timesheet week", "DATE_OUTSIDE_WEEK")

        hours = calculate_hours(data.start_time, data.end_time)
        task_code = await _load_task_code(repo, data.task_code_id)
        employee = await _load_employee(repo, timesheet.employee_id)

        age = _worker_age(employee, data.work_date)
        _check_task_age(task_code, age, data.work_date)

        is_school_day = data.is_school_day
        if is_school_day is None:
            is_school_day = default_school_day_status(data.work_date)

        entries = await repo.list_entries(timesheet_id)
        _enforce_hour_limits(age, data.work_date, hours, is_school_day, entries)

        entry = await repo.insert_entry(
            timesheet_id,
            EntryRecord(
                work_date=data.work_date,
                start_time=data.start_time,
                end_time=data.end_time,
                hours=hours,
                is_school_day=is_school_day,
                task_code_id=task_code.id,
                supervisor_present_name=data.supervisor_present_name,
                meal_break_confirmed=data.meal_break_confirmed,
                school_day_override_note=data.school_day_override_note,
            ),
        )

    logger.info(f"Created entry {entry.id} on timesheet {timesheet_id} ({hours}h on {data.work_date})")
    return entry


async def update_entry(
    repo: TimesheetRepository,
    locks: TimesheetLocks,
    timesheet_id: str,
    entry_id: str,
    changes: dict,
) -> EntryInfo:
    """
    Apply a partial update to an entry.

    Args:
        changes: Field name to new value, only for fields the caller set.
            Keys outside UPDATABLE_FIELDS are ignored.

    Hour limits are re-checked whenever times or the school-day flag change,
    leaving the entry itself out of the existing totals.
    """
    changes = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}

    async with locks.lock(timesheet_id):
        timesheet = await _load_editable_timesheet(repo, timesheet_id, "update entries on")
        entries = await repo.list_entries(timesheet_id)
        entry = next((e for e in entries if e.id == entry_id), None)
        if entry is None:
            raise TimesheetEntryError("Entry not found", "ENTRY_NOT_FOUND")

        start_time = changes.get("start_time") or entry.start_time
        end_time = changes.get("end_time") or entry.end_time
        is_school_day = changes.get("is_school_day")
        if is_school_day is None:
            is_school_day = entry.is_school_day
        hours = calculate_hours(start_time, end_time)

        employee = await _load_employee(repo, timesheet.employee_id)
        age = _worker_age(employee, entry.work_date)

        task_code = entry.task_code
        if changes.get("task_code_id") and changes["task_code_id"] != entry.task_code.id:
            task_code = await _load_task_code(repo, changes["task_code_id"])
            _check_task_age(task_code, age, entry.work_date)

        if {"start_time", "end_time", "is_school_day"} & changes.keys():
            _enforce_hour_limits(
                age, entry.work_date, hours, is_school_day, entries, exclude_entry_id=entry_id
            )

        updated = await repo.replace_entry(
            timesheet_id,
            entry_id,
            EntryRecord(
                work_date=entry.work_date,
                start_time=start_time,
                end_time=end_time,
                hours=hours,
                is_school_day=is_school_day,
                task_code_id=task_code.id,
                supervisor_present_name=changes.get(
                    "supervisor_present_name", entry.supervisor_present_name
                ),
                meal_break_confirmed=changes.get("meal_break_confirmed", entry.meal_break_confirmed),
                school_day_override_note=changes.get(
                    "school_day_override_note", entry.school_day_override_note
                ),
            ),
        )

    logger.info(f"Updated entry {entry_id} on timesheet {timesheet_id}")
    return updated


async def delete_entry(
    repo: TimesheetRepository, locks: TimesheetLocks, timesheet_id: str, entry_id: str
) -> None:
    async with locks.lock(timesheet_id):
        await _load_editable_timesheet(repo, timesheet_id, "delete entries from")
        entries = await repo.list_entries(timesheet_id)
        if not any(e.id == entry_id for e in entries):
            raise TimesheetEntryError("Entry not found", "ENTRY_NOT_FOUND")
        await repo.delete_entry(timesheet_id, entry_id)

    logger.info(f"Deleted entry {entry_id} from timesheet {timesheet_id}")


async def preview_entry_for_timesheet(
    repo: TimesheetRepository,
    timesheet_id: str,
    data: EntryInput,
    exclude_entry_id: Optional[str] = None,
) -> EntryCompliancePreview:
    """Load the timesheet's records and preview ``data`` without writing anything.

    Missing records still raise; every compliance finding comes back as data.
    """
    timesheet = await _load_timesheet(repo, timesheet_id)
    employee = await _load_employee(repo, timesheet.employee_id)
    task_code = await _load_task_code(repo, data.task_code_id)
    entries = await repo.list_entries(timesheet_id)

    is_school_day = data.is_school_day
    if is_school_day is None:
        is_school_day = default_school_day_status(data.work_date)

    return preview_entry(
        employee,
        timesheet,
        entries,
        EntryProposal(
            work_date=data.work_date,
            start_time=data.start_time,
            end_time=data.end_time,
            is_school_day=is_school_day,
            task_code=task_code,
        ),
        exclude_entry_id=exclude_entry_id,
    )


def get_daily_totals(entries: Iterable[EntryInfo]) -> dict[date, float]:
    totals: dict[date, float] = {}
    for entry in entries:
        totals[entry.work_date] = totals.get(entry.work_date, 0.0) + entry.hours
    return {day: round_hours(total) for day, total in sorted(totals.items())}


def get_weekly_total(entries: Iterable[EntryInfo]) -> float:
    return round_hours(sum(entry.hours for entry in entries))


def get_entries_grouped_by_date(entries: Iterable[EntryInfo]) -> dict[date, list[EntryInfo]]:
    grouped: dict[date, list[EntryInfo]] = {}
    for entry in sorted(entries, key=lambda e: (e.work_date, e.start_time)):
        grouped.setdefault(entry.work_date, []).append(entry)
    return grouped


def get_totals_summary(
    employee: EmployeeInfo, timesheet: TimesheetInfo, entries: Iterable[EntryInfo]
) -> dict:
    """
    Daily and weekly totals measured against the worker's limits.

    Daily limits use the age on each day. The weekly limit uses the age on
    the first day of the week, the stricter of the two in a birthday week.
    """
    entries = list(entries)
    daily_totals = get_daily_totals(entries)
    school_days = {e.work_date for e in entries if e.is_school_day}
    warnings: list[str] = []

    days = []
    for day in week_dates(timesheet.week_start_date):
        hours = daily_totals.get(day, 0.0)
        age = age_on_date(employee.date_of_birth, day)
        limit = None
        if age >= 12:
            limit = resolve_daily_limit(limits_for_age(age), day in school_days)
        days.append({
            "date": day.isoformat(),
            "hours": hours,
            "limit": limit,
            "is_school_day": day in school_days,
        })
        if limit is None or hours == 0:
            continue
        if hours > limit:
            warnings.append(f"{day_name(day)}: {hours:.1f} hours exceeds the daily limit of {limit}")
        elif hours >= limit * WARNING_THRESHOLD:
            warnings.append(f"{day_name(day)}: {hours:.1f} of {limit} daily hours used")

    weekly_total = get_weekly_total(entries)
    start_age = age_on_date(employee.date_of_birth, timesheet.week_start_date)
    limits = None
    weekly_limit = None
    if start_age >= 12:
        limits = limits_for_age(start_age)
        weekly_limit = resolve_weekly_limit(limits, bool(school_days))
        if weekly_total > weekly_limit:
            warnings.append(f"Weekly total of {weekly_total:.1f} hours exceeds the limit of {weekly_limit}")
        elif weekly_total > 0 and weekly_total >= weekly_limit * WARNING_THRESHOLD:
            warnings.append(f"{weekly_total:.1f} of {weekly_limit} weekly hours used")

    return {
        "timesheet_id": timesheet.id,
        "daily": days,
        "weekly": {
            "hours": weekly_total,
            "limit": weekly_limit,
            "is_school_week": bool(school_days),
        },
        "limits": limits.to_dict() if limits else None,
        "warnings": warnings,
    }


def get_week_info(employee: EmployeeInfo, week_start_date: date) -> dict:
    """Calendar facts for the timesheet week: dates, default school days, ages, birthday."""
    ages = weekly_ages(employee.date_of_birth, week_start_date)
    days = []
    for day in week_dates(week_start_date):
        age = ages[day]
        try:
            band = age_band(age).value
        except BelowMinimumAgeError:
            band = None
        days.append({
            "date": day.isoformat(),
            "day_name": day_name(day),
            "is_default_school_day": default_school_day_status(day),
            "age": age,
            "age_band": band,
        })

    return {
        "week_start_date": week_start_date.isoformat(),
        "days": days,
        "birthday": birthday_in_week(employee.date_of_birth, week_start_date).to_dict(),
    }
