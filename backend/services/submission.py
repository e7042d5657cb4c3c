"""Timesheet lifecycle: creation, submission gate and supervisor review."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from compliance.context import DEFAULT_TIMEZONE, build_context
from compliance.engine import ComplianceEngine, audit_rows
from compliance.types import ComplianceCheckResult, EmployeeInfo, TimesheetInfo, TimesheetStatus
from services.locking import TimesheetLocks
from services.repository import ComplianceLogRecord, TimesheetRepository
from utils import utc_now
from utils.time import is_valid_sunday, round_hours

logger = logging.getLogger(__name__)

MIN_REJECTION_NOTES_LENGTH = 10

VALID_TRANSITIONS: dict[TimesheetStatus, frozenset[TimesheetStatus]] = {
    TimesheetStatus.OPEN: frozenset({TimesheetStatus.SUBMITTED}),
    TimesheetStatus.SUBMITTED: frozenset({TimesheetStatus.APPROVED, TimesheetStatus.REJECTED}),
    TimesheetStatus.REJECTED: frozenset({TimesheetStatus.OPEN}),
    TimesheetStatus.APPROVED: frozenset(),
}


class TimesheetError(Exception):
    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.message = message
        self.code = code  # TIMESHEET_NOT_FOUND | EMPLOYEE_NOT_FOUND | INVALID_WEEK_START_DATE


class ReviewError(Exception):
    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.message = message
        self.code = code  # TIMESHEET_NOT_FOUND | TIMESHEET_NOT_SUBMITTED | NOTES_REQUIRED | NOTES_TOO_SHORT


class InvalidTransitionError(Exception):
    code = "INVALID_TRANSITION"

    def __init__(self, current: TimesheetStatus, target: TimesheetStatus):
        self.current = current
        self.target = target
        self.message = f"Cannot move timesheet from {current.value} to {target.value}"
        super().__init__(self.message)


def can_transition(current: TimesheetStatus, target: TimesheetStatus) -> bool:
    return target in VALID_TRANSITIONS[current]


def ensure_transition(current: TimesheetStatus, target: TimesheetStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of a submission attempt. ``timesheet`` is the post-attempt state."""
    timesheet: TimesheetInfo
    check: ComplianceCheckResult

    @property
    def passed(self) -> bool:
        return self.check.passed

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "status": self.timesheet.status.value,
            "timesheet_id": self.timesheet.id,
            "check": self.check.to_dict(),
        }


async def get_or_create_timesheet(
    repo: TimesheetRepository, locks: TimesheetLocks, employee_id: str, week_start_date: date
) -> TimesheetInfo:
    if not is_valid_sunday(week_start_date):
        raise TimesheetError("Week start date must be a Sunday", "INVALID_WEEK_START_DATE")

    employee = await repo.get_employee(employee_id)
    if employee is None:
        raise TimesheetError("Employee not found", "EMPLOYEE_NOT_FOUND")

    # Keyed by employee and week since the timesheet may not exist yet
    async with locks.lock(f"{employee_id}:{week_start_date.isoformat()}"):
        existing = await repo.find_timesheet(employee_id, week_start_date)
        if existing is not None:
            return existing
        timesheet = await repo.create_timesheet(employee_id, week_start_date)

    logger.info(f"Created timesheet {timesheet.id} for employee {employee_id}, week of {week_start_date}")
    return timesheet


async def _load_timesheet(repo: TimesheetRepository, timesheet_id: str) -> TimesheetInfo:
    timesheet = await repo.get_timesheet(timesheet_id)
    if timesheet is None:
        raise TimesheetError("Timesheet not found", "TIMESHEET_NOT_FOUND")
    return timesheet


async def get_timesheet_with_employee(
    repo: TimesheetRepository, timesheet_id: str
) -> tuple[TimesheetInfo, EmployeeInfo]:
    timesheet = await _load_timesheet(repo, timesheet_id)
    employee = await repo.get_employee(timesheet.employee_id)
    if employee is None:
        raise TimesheetError("Employee not found", "EMPLOYEE_NOT_FOUND")
    return timesheet, employee


async def submit_timesheet(
    repo: TimesheetRepository,
    locks: TimesheetLocks,
    engine: ComplianceEngine,
    timesheet_id: str,
    check_date: Optional[date] = None,
    timezone_name: str = DEFAULT_TIMEZONE,
) -> SubmissionResult:
    """
    Run the full rule set and submit the timesheet if every rule passes.

    Audit rows are written for every evaluated rule whether or not the check
    passes. A failing check leaves the timesheet open.

    Raises:
        TimesheetError: timesheet or employee missing
        InvalidTransitionError: timesheet is not open
    """
    async with locks.lock(timesheet_id):
        timesheet = await _load_timesheet(repo, timesheet_id)
        ensure_transition(timesheet.status, TimesheetStatus.SUBMITTED)

        employee = await repo.get_employee(timesheet.employee_id)
        if employee is None:
            raise TimesheetError("Employee not found", "EMPLOYEE_NOT_FOUND")

        entries = await repo.list_entries(timesheet_id)
        documents = await repo.list_documents(employee.id)
        context = build_context(
            employee, timesheet, entries, documents,
            check_date=check_date, timezone_name=timezone_name,
        )

        check = engine.evaluate(context)
        rows = audit_rows(check, context)
        updated = await repo.record_submission(
            timesheet_id, rows, submitted_at=check.checked_at if check.passed else None
        )

    if check.passed:
        logger.info(f"Timesheet {timesheet_id} submitted")
    else:
        failed_ids = ", ".join(r.rule_id for r in check.failed_rules)
        logger.warning(f"Timesheet {timesheet_id} blocked by compliance: {failed_ids}")
    return SubmissionResult(timesheet=updated, check=check)


async def approve_timesheet(
    repo: TimesheetRepository,
    locks: TimesheetLocks,
    timesheet_id: str,
    supervisor_id: str,
    notes: Optional[str] = None,
) -> TimesheetInfo:
    async with locks.lock(timesheet_id):
        timesheet = await repo.get_timesheet(timesheet_id)
        if timesheet is None:
            raise ReviewError("Timesheet not found", "TIMESHEET_NOT_FOUND")
        if timesheet.status != TimesheetStatus.SUBMITTED:
            raise ReviewError(
                f"Cannot approve timesheet with status: {timesheet.status.value}",
                "TIMESHEET_NOT_SUBMITTED",
            )

        updated = await repo.update_timesheet(
            timesheet_id,
            TimesheetStatus.APPROVED,
            reviewed_by=supervisor_id,
            reviewed_at=utc_now(),
            supervisor_notes=notes or None,
        )

    logger.info(f"Timesheet {timesheet_id} approved by {supervisor_id}")
    return updated


def validate_rejection_notes(notes: Optional[str]) -> str:
    notes = (notes or "").strip()
    if not notes:
        raise ReviewError("Notes are required when rejecting a timesheet", "NOTES_REQUIRED")
    if len(notes) < MIN_REJECTION_NOTES_LENGTH:
        raise ReviewError(
            f"Notes must be at least {MIN_REJECTION_NOTES_LENGTH} characters when rejecting a timesheet",
            "NOTES_TOO_SHORT",
        )
    return notes


async def reject_timesheet(
    repo: TimesheetRepository,
    locks: TimesheetLocks,
    timesheet_id: str,
    supervisor_id: str,
    notes: str,
) -> TimesheetInfo:
    notes = validate_rejection_notes(notes)

    async with locks.lock(timesheet_id):
        timesheet = await repo.get_timesheet(timesheet_id)
        if timesheet is None:
            raise ReviewError("Timesheet not found", "TIMESHEET_NOT_FOUND")
        if timesheet.status != TimesheetStatus.SUBMITTED:
            raise ReviewError(
                f"Cannot reject timesheet with status: {timesheet.status.value}",
                "TIMESHEET_NOT_SUBMITTED",
            )

        updated = await repo.update_timesheet(
            timesheet_id,
            TimesheetStatus.REJECTED,
            reviewed_by=supervisor_id,
            reviewed_at=utc_now(),
            supervisor_notes=notes,
        )

    logger.info(f"Timesheet {timesheet_id} rejected by {supervisor_id}")
    return updated


async def reopen_timesheet(
    repo: TimesheetRepository, locks: TimesheetLocks, timesheet_id: str
) -> TimesheetInfo:
    """Return a rejected timesheet to open so the worker can correct it."""
    async with locks.lock(timesheet_id):
        timesheet = await _load_timesheet(repo, timesheet_id)
        ensure_transition(timesheet.status, TimesheetStatus.OPEN)
        updated = await repo.update_timesheet(
            timesheet_id,
            TimesheetStatus.OPEN,
            reviewed_by=timesheet.reviewed_by,
            reviewed_at=timesheet.reviewed_at,
            supervisor_notes=timesheet.supervisor_notes,
        )

    logger.info(f"Timesheet {timesheet_id} reopened")
    return updated


async def unlock_week(
    repo: TimesheetRepository,
    locks: TimesheetLocks,
    employee_id: str,
    week_start_date: date,
    supervisor_id: str,
) -> TimesheetInfo:
    """
    Supervisor override that reopens a week from any status.

    Creates an open timesheet when the employee has none for the week.
    """
    if not is_valid_sunday(week_start_date):
        raise ReviewError("Week start date must be a Sunday", "INVALID_WEEK_START_DATE")

    employee = await repo.get_employee(employee_id)
    if employee is None:
        raise ReviewError("Employee not found", "EMPLOYEE_NOT_FOUND")

    now = utc_now()
    notes = f"Week unlocked by supervisor on {now.isoformat()}"

    async with locks.lock(f"{employee_id}:{week_start_date.isoformat()}"):
        existing = await repo.find_timesheet(employee_id, week_start_date)
        if existing is None:
            timesheet = await repo.create_timesheet(employee_id, week_start_date, supervisor_notes=notes)
        else:
            async with locks.lock(existing.id):
                timesheet = await repo.update_timesheet(
                    existing.id,
                    TimesheetStatus.OPEN,
                    reviewed_by=supervisor_id,
                    reviewed_at=now,
                    supervisor_notes=notes,
                )

    logger.info(f"Week of {week_start_date} unlocked for employee {employee_id} by {supervisor_id}")
    return timesheet


async def get_compliance_logs(repo: TimesheetRepository, timesheet_id: str) -> list[ComplianceLogRecord]:
    """Stored rule outcomes for a timesheet, newest check first, then by rule id."""
    await _load_timesheet(repo, timesheet_id)
    logs = await repo.list_check_logs(timesheet_id)
    logs = sorted(logs, key=lambda log: log.rule_id)
    return sorted(logs, key=lambda log: log.checked_at, reverse=True)


@dataclass(frozen=True)
class ReviewQueueItem:
    """A submitted timesheet waiting for a supervisor."""
    timesheet_id: str
    employee_id: str
    employee_name: str
    week_start_date: date
    submitted_at: Optional[datetime]
    total_hours: float
    entry_count: int

    def to_dict(self) -> dict:
        return {
            "timesheet_id": self.timesheet_id,
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "week_start_date": self.week_start_date.isoformat(),
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "total_hours": self.total_hours,
            "entry_count": self.entry_count,
        }


_NEVER = datetime.min.replace(tzinfo=timezone.utc)


async def get_review_queue(
    repo: TimesheetRepository, employee_id: Optional[str] = None
) -> list[ReviewQueueItem]:
    """Submitted timesheets, oldest submission first."""
    timesheets = await repo.list_timesheets(TimesheetStatus.SUBMITTED, employee_id=employee_id)
    timesheets = sorted(
        timesheets, key=lambda t: (t.submitted_at is None, t.submitted_at or _NEVER, t.id)
    )

    items = []
    for timesheet in timesheets:
        employee = await repo.get_employee(timesheet.employee_id)
        entries = await repo.list_entries(timesheet.id)
        items.append(ReviewQueueItem(
            timesheet_id=timesheet.id,
            employee_id=timesheet.employee_id,
            employee_name=employee.name if employee else "",
            week_start_date=timesheet.week_start_date,
            submitted_at=timesheet.submitted_at,
            total_hours=round_hours(sum(e.hours for e in entries)),
            entry_count=len(entries),
        ))
    return items


async def get_pending_review_count(repo: TimesheetRepository) -> int:
    return await repo.count_timesheets(TimesheetStatus.SUBMITTED)
