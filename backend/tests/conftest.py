import asyncio
import itertools
from dataclasses import replace
from datetime import date, datetime, timezone

import pytest

from compliance.context import build_context
from compliance.engine import ComplianceEngine
from compliance.registry import default_rule_set
from compliance.types import (
    DocumentInfo,
    DocumentType,
    EmployeeInfo,
    EntryInfo,
    RuleOutcome,
    TaskCodeInfo,
    TimesheetInfo,
    TimesheetStatus,
)
from services.locking import TimesheetLocks
from services.repository import ComplianceLogRecord, EntryRecord
from utils.time import hours_between

# Sunday 2024-06-09 .. Saturday 2024-06-15, summer, no school
SUMMER_WEEK = date(2024, 6, 9)
# Sunday 2024-10-06 .. Saturday 2024-10-12, inside the school year
SCHOOL_WEEK = date(2024, 10, 6)
CHECK_DATE = date(2024, 10, 1)

_ids = itertools.count(1)


def next_id(prefix: str) -> str:
    return f"{prefix}-{next(_ids)}"


def make_employee(date_of_birth: date, name: str = "Sam Rivera", id: str = "emp-1") -> EmployeeInfo:
    return EmployeeInfo(id=id, name=name, date_of_birth=date_of_birth)


def make_task(**overrides) -> TaskCodeInfo:
    fields = {"id": "task-f1", "code": "F1", "name": "Field Harvesting", "min_age_allowed": 12}
    fields.update(overrides)
    return TaskCodeInfo(**fields)


def make_entry(
    work_date: date,
    start_time: str = "16:00",
    end_time: str = "18:00",
    is_school_day: bool = False,
    task_code: TaskCodeInfo | None = None,
    id: str | None = None,
    **kwargs,
) -> EntryInfo:
    return EntryInfo(
        id=id or next_id("entry"),
        work_date=work_date,
        start_time=start_time,
        end_time=end_time,
        hours=hours_between(start_time, end_time),
        is_school_day=is_school_day,
        task_code=task_code or make_task(),
        **kwargs,
    )


def make_document(
    doc_type: DocumentType,
    uploaded_at: datetime = datetime(2024, 1, 2, tzinfo=timezone.utc),
    expires_at: date | None = None,
    invalidated_at: datetime | None = None,
    id: str | None = None,
) -> DocumentInfo:
    return DocumentInfo(
        id=id or next_id("doc"),
        type=doc_type,
        uploaded_at=uploaded_at,
        expires_at=expires_at,
        invalidated_at=invalidated_at,
    )


def full_documents() -> list[DocumentInfo]:
    """Consent, unexpired permit and safety training."""
    return [
        make_document(DocumentType.PARENTAL_CONSENT),
        make_document(DocumentType.WORK_PERMIT, expires_at=date(2026, 1, 1)),
        make_document(DocumentType.SAFETY_TRAINING),
    ]


def make_context(
    date_of_birth: date,
    week_start: date = SUMMER_WEEK,
    entries=(),
    documents=None,
    check_date: date = CHECK_DATE,
):
    employee = make_employee(date_of_birth)
    timesheet = TimesheetInfo(id="ts-1", employee_id=employee.id, week_start_date=week_start)
    if documents is None:
        documents = full_documents()
    return build_context(employee, timesheet, entries, documents, check_date=check_date)


class FakeRepository:
    """In-memory TimesheetRepository."""

    def __init__(self):
        self.employees: dict[str, EmployeeInfo] = {}
        self.documents: dict[str, list[DocumentInfo]] = {}
        self.task_codes: dict[str, TaskCodeInfo] = {}
        self.timesheets: dict[str, TimesheetInfo] = {}
        self.entries: dict[str, dict[str, EntryInfo]] = {}
        self.logs: list[ComplianceLogRecord] = []
        self.submission_calls = 0

    def add_employee(self, employee: EmployeeInfo, documents=()) -> EmployeeInfo:
        self.employees[employee.id] = employee
        self.documents[employee.id] = list(documents)
        return employee

    def add_task_code(self, task_code: TaskCodeInfo) -> TaskCodeInfo:
        self.task_codes[task_code.id] = task_code
        return task_code

    def add_timesheet(self, timesheet: TimesheetInfo) -> TimesheetInfo:
        self.timesheets[timesheet.id] = timesheet
        self.entries.setdefault(timesheet.id, {})
        return timesheet

    async def get_employee(self, employee_id):
        return self.employees.get(employee_id)

    async def list_documents(self, employee_id):
        return list(self.documents.get(employee_id, []))

    async def get_task_code(self, task_code_id):
        return self.task_codes.get(task_code_id)

    async def get_timesheet(self, timesheet_id):
        return self.timesheets.get(timesheet_id)

    async def find_timesheet(self, employee_id, week_start_date):
        for timesheet in self.timesheets.values():
            if timesheet.employee_id == employee_id and timesheet.week_start_date == week_start_date:
                return timesheet
        return None

    async def create_timesheet(self, employee_id, week_start_date, supervisor_notes=None):
        return self.add_timesheet(TimesheetInfo(
            id=next_id("ts"),
            employee_id=employee_id,
            week_start_date=week_start_date,
            supervisor_notes=supervisor_notes,
        ))

    async def update_timesheet(
        self, timesheet_id, status, reviewed_by=None, reviewed_at=None, supervisor_notes=None
    ):
        updated = replace(
            self.timesheets[timesheet_id],
            status=status,
            reviewed_by=reviewed_by,
            reviewed_at=reviewed_at,
            supervisor_notes=supervisor_notes,
        )
        self.timesheets[timesheet_id] = updated
        return updated

    async def list_timesheets(self, status, employee_id=None):
        return [
            t for t in self.timesheets.values()
            if t.status == status and (employee_id is None or t.employee_id == employee_id)
        ]

    async def count_timesheets(self, status):
        return sum(1 for t in self.timesheets.values() if t.status == status)

    async def list_entries(self, timesheet_id):
        # Suspend like a real database round trip so concurrent callers interleave
        await asyncio.sleep(0)
        return sorted(
            self.entries.get(timesheet_id, {}).values(), key=lambda e: (e.work_date, e.start_time)
        )

    def _entry(self, entry_id: str, record: EntryRecord) -> EntryInfo:
        return EntryInfo(
            id=entry_id,
            work_date=record.work_date,
            start_time=record.start_time,
            end_time=record.end_time,
            hours=record.hours,
            is_school_day=record.is_school_day,
            task_code=self.task_codes[record.task_code_id],
            supervisor_present_name=record.supervisor_present_name,
            meal_break_confirmed=record.meal_break_confirmed,
            school_day_override_note=record.school_day_override_note,
        )

    async def insert_entry(self, timesheet_id, record):
        await asyncio.sleep(0)
        entry = self._entry(next_id("entry"), record)
        self.entries[timesheet_id][entry.id] = entry
        return entry

    async def replace_entry(self, timesheet_id, entry_id, record):
        entry = self._entry(entry_id, record)
        self.entries[timesheet_id][entry_id] = entry
        return entry

    async def delete_entry(self, timesheet_id, entry_id):
        del self.entries[timesheet_id][entry_id]

    async def record_submission(self, timesheet_id, audit_rows, submitted_at=None):
        self.submission_calls += 1
        timesheet = self.timesheets[timesheet_id]
        for row in audit_rows:
            self.logs.append(ComplianceLogRecord(
                id=next_id("log"),
                timesheet_id=row["timesheet_id"],
                rule_id=row["rule_id"],
                result=RuleOutcome(row["result"]),
                details=row["details"],
                employee_age_on_date=row["employee_age_on_date"],
                checked_at=row["checked_at"],
                employee_id=timesheet.employee_id,
                employee_name=self.employees[timesheet.employee_id].name,
                week_start_date=timesheet.week_start_date,
            ))
        if submitted_at is not None:
            timesheet = replace(timesheet, status=TimesheetStatus.SUBMITTED, submitted_at=submitted_at)
            self.timesheets[timesheet_id] = timesheet
        return timesheet

    async def list_check_logs(self, timesheet_id):
        return [log for log in self.logs if log.timesheet_id == timesheet_id]

    async def find_check_logs(self, checked_from, checked_to, employee_id=None, rule_id=None, result=None):
        return [
            log for log in self.logs
            if checked_from <= log.checked_at < checked_to
            and (employee_id is None or log.employee_id == employee_id)
            and (rule_id is None or log.rule_id == rule_id)
            and (result is None or log.result == result)
        ]


@pytest.fixture
def repo():
    return FakeRepository()


@pytest.fixture
def locks():
    return TimesheetLocks()


@pytest.fixture
def engine():
    return ComplianceEngine(default_rule_set())


@pytest.fixture
def harvest_task(repo):
    return repo.add_task_code(make_task())


@pytest.fixture
def minor_timesheet(repo):
    """13-year-old (born 2010-06-20) with full documents and an open summer-week timesheet."""
    employee = repo.add_employee(make_employee(date(2010, 6, 20)), full_documents())
    return repo.add_timesheet(
        TimesheetInfo(id="ts-minor", employee_id=employee.id, week_start_date=SUMMER_WEEK)
    )
