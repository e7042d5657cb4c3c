"""Non-persisting compliance preview for a single proposed timesheet entry.

``preview_entry`` never raises for business findings: everything it learns
about the proposal comes back as data on EntryCompliancePreview. Entry
create/update run the same ``check_hour_limits`` and raise instead.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional

from .age import BelowMinimumAgeError, age_band, age_on_date
from .hour_limits import (
    HourLimitCheck,
    HourLimits,
    HourUsage,
    check_hour_limits,
    limits_for_age,
)
from .rules.breaks import MEAL_BREAK_AFTER_HOURS
from .types import (
    AgeBand,
    EmployeeInfo,
    EntryInfo,
    SupervisorRequirement,
    TaskCodeInfo,
    TimesheetInfo,
)
from utils.time import hours_between, overlaps_school_hours, week_dates

HOUR_LIMIT_DAILY = "HOUR_LIMIT_DAILY"
HOUR_LIMIT_WEEKLY = "HOUR_LIMIT_WEEKLY"
SCHOOL_HOURS_VIOLATION = "SCHOOL_HOURS_VIOLATION"
TASK_AGE_RESTRICTION = "TASK_AGE_RESTRICTION"
HAZARDOUS_TASK_MINOR = "HAZARDOUS_TASK_MINOR"
INVALID_TIME_RANGE = "INVALID_TIME_RANGE"
DATE_OUTSIDE_WEEK = "DATE_OUTSIDE_WEEK"
BELOW_MINIMUM_AGE = "BELOW_MINIMUM_AGE"
APPROACHING_DAILY_LIMIT = "APPROACHING_DAILY_LIMIT"
APPROACHING_WEEKLY_LIMIT = "APPROACHING_WEEKLY_LIMIT"


@dataclass(frozen=True)
class EntryProposal:
    """A shift the worker is about to add or change."""
    work_date: date
    start_time: str
    end_time: str
    is_school_day: bool
    task_code: TaskCodeInfo


@dataclass(frozen=True)
class PreviewFinding:
    type: str
    message: str

    def to_dict(self) -> dict:
        return {"type": self.type, "message": self.message}


@dataclass(frozen=True)
class PreviewRequirements:
    supervisor_required: bool = False
    supervisor_reason: Optional[str] = None
    meal_break_required: bool = False
    meal_break_reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "supervisor_required": self.supervisor_required,
            "supervisor_reason": self.supervisor_reason,
            "meal_break_required": self.meal_break_required,
            "meal_break_reason": self.meal_break_reason,
        }


@dataclass(frozen=True)
class EntryCompliancePreview:
    employee_age: int
    age_band: Optional[AgeBand]
    hours: Optional[float]
    limits: Optional[HourLimits] = None
    daily: Optional[HourUsage] = None
    weekly: Optional[HourUsage] = None
    violations: tuple[PreviewFinding, ...] = field(default_factory=tuple)
    warnings: tuple[PreviewFinding, ...] = field(default_factory=tuple)
    requirements: PreviewRequirements = field(default_factory=PreviewRequirements)

    @property
    def valid(self) -> bool:
        return not self.violations

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "employee_age": self.employee_age,
            "age_band": self.age_band.value if self.age_band else None,
            "hours": self.hours,
            "limits": self.limits.to_dict() if self.limits else None,
            "daily": self.daily.to_dict() if self.daily else None,
            "weekly": self.weekly.to_dict() if self.weekly else None,
            "violations": [v.to_dict() for v in self.violations],
            "warnings": [w.to_dict() for w in self.warnings],
            "requirements": self.requirements.to_dict(),
        }


def preview_entry(
    employee: EmployeeInfo,
    timesheet: TimesheetInfo,
    entries: Iterable[EntryInfo],
    proposal: EntryProposal,
    exclude_entry_id: Optional[str] = None,
) -> EntryCompliancePreview:
    """
    Evaluate a proposed entry against hour limits and ad hoc entry checks.

    Args:
        employee: Worker the timesheet belongs to
        timesheet: Timesheet the entry would land on
        entries: Entries already on the timesheet
        proposal: The proposed entry
        exclude_entry_id: For edits, the entry being replaced

    Returns:
        EntryCompliancePreview; ``valid`` is False when any violation was found
    """
    age = age_on_date(employee.date_of_birth, proposal.work_date)
    violations: list[PreviewFinding] = []
    warnings: list[PreviewFinding] = []

    if proposal.work_date not in week_dates(timesheet.week_start_date):
        violations.append(PreviewFinding(
            DATE_OUTSIDE_WEEK, "Work date must be within the timesheet week"
        ))

    try:
        band = age_band(age)
    except BelowMinimumAgeError as e:
        violations.append(PreviewFinding(BELOW_MINIMUM_AGE, str(e)))
        return EntryCompliancePreview(
            employee_age=age,
            age_band=None,
            hours=hours_between(proposal.start_time, proposal.end_time),
            violations=tuple(violations),
        )

    is_minor = age < 18
    hours = hours_between(proposal.start_time, proposal.end_time)
    check: Optional[HourLimitCheck] = None

    if hours is None:
        violations.append(PreviewFinding(INVALID_TIME_RANGE, "End time must be after start time"))
    else:
        check = check_hour_limits(
            age,
            proposal.work_date,
            hours,
            proposal.is_school_day,
            entries,
            exclude_entry_id=exclude_entry_id,
        )
        if check.daily.exceeded:
            violations.append(PreviewFinding(HOUR_LIMIT_DAILY, check.exceeded_message("daily")))
        if check.weekly.exceeded:
            violations.append(PreviewFinding(HOUR_LIMIT_WEEKLY, check.exceeded_message("weekly")))
        if check.daily.approaching:
            warnings.append(PreviewFinding(
                APPROACHING_DAILY_LIMIT,
                f"Approaching daily limit: {check.daily.projected:.1f} of {check.daily.limit} hours",
            ))
        if check.weekly.approaching:
            warnings.append(PreviewFinding(
                APPROACHING_WEEKLY_LIMIT,
                f"Approaching weekly limit: {check.weekly.projected:.1f} of {check.weekly.limit} hours",
            ))

        if is_minor and proposal.is_school_day and overlaps_school_hours(
            proposal.start_time, proposal.end_time
        ):
            violations.append(PreviewFinding(
                SCHOOL_HOURS_VIOLATION,
                "Workers under 18 cannot work during school hours (7:00 AM - 3:00 PM) on school days",
            ))

    task = proposal.task_code
    if age < task.min_age_allowed:
        violations.append(PreviewFinding(
            TASK_AGE_RESTRICTION,
            f"Task {task.code} ({task.name}) requires a minimum age of {task.min_age_allowed}. "
            f"Worker is {age} on this date.",
        ))
    if task.is_hazardous and is_minor:
        violations.append(PreviewFinding(
            HAZARDOUS_TASK_MINOR,
            f"Task {task.code} ({task.name}) is hazardous and prohibited for workers under 18",
        ))

    return EntryCompliancePreview(
        employee_age=age,
        age_band=band,
        hours=hours,
        limits=check.limits if check else limits_for_age(age),
        daily=check.daily if check else None,
        weekly=check.weekly if check else None,
        violations=tuple(violations),
        warnings=tuple(warnings),
        requirements=_requirements(task, age, hours),
    )


def _requirements(task: TaskCodeInfo, age: int, hours: Optional[float]) -> PreviewRequirements:
    supervisor_required = task.requires_supervisor(age)
    supervisor_reason = None
    if supervisor_required:
        if task.supervisor_required == SupervisorRequirement.ALWAYS:
            supervisor_reason = f"Task {task.code} always requires a supervisor present"
        else:
            supervisor_reason = f"Task {task.code} requires a supervisor present for workers under 18"

    meal_break_required = age < 18 and hours is not None and hours > MEAL_BREAK_AFTER_HOURS
    meal_break_reason = None
    if meal_break_required:
        meal_break_reason = (
            f"Shifts longer than {MEAL_BREAK_AFTER_HOURS} hours require a confirmed "
            "30-minute meal break for workers under 18"
        )

    return PreviewRequirements(
        supervisor_required=supervisor_required,
        supervisor_reason=supervisor_reason,
        meal_break_required=meal_break_required,
        meal_break_reason=meal_break_reason,
    )
