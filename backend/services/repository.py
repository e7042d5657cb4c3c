"""Storage seam used by the timesheet services.

Services only talk to a ``TimesheetRepository``; the Beanie implementation
lives in ``db.repository`` and tests use an in-memory one.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Protocol

from compliance.types import (
    AgeBand,
    DocumentInfo,
    EmployeeInfo,
    EntryInfo,
    RuleOutcome,
    TaskCodeInfo,
    TimesheetInfo,
    TimesheetStatus,
)


@dataclass(frozen=True)
class EntryRecord:
    """Entry fields as written to storage."""
    work_date: date
    start_time: str
    end_time: str
    hours: float
    is_school_day: bool
    task_code_id: str
    supervisor_present_name: Optional[str] = None
    meal_break_confirmed: Optional[bool] = None
    school_day_override_note: Optional[str] = None


@dataclass(frozen=True)
class ComplianceLogRecord:
    """One stored compliance rule outcome, joined with its timesheet and employee."""
    id: str
    timesheet_id: str
    rule_id: str
    result: RuleOutcome
    details: dict
    employee_age_on_date: int
    checked_at: datetime
    employee_id: Optional[str] = None
    employee_name: Optional[str] = None
    week_start_date: Optional[date] = None
    age_band: Optional[AgeBand] = field(default=None, compare=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timesheet_id": self.timesheet_id,
            "rule_id": self.rule_id,
            "result": self.result.value,
            "details": self.details,
            "employee_age_on_date": self.employee_age_on_date,
            "age_band": self.age_band.value if self.age_band else None,
            "checked_at": self.checked_at.isoformat(),
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "week_start_date": self.week_start_date.isoformat() if self.week_start_date else None,
        }


class TimesheetRepository(Protocol):
    async def get_employee(self, employee_id: str) -> Optional[EmployeeInfo]: ...

    async def list_documents(self, employee_id: str) -> list[DocumentInfo]: ...

    async def get_task_code(self, task_code_id: str) -> Optional[TaskCodeInfo]: ...

    async def get_timesheet(self, timesheet_id: str) -> Optional[TimesheetInfo]: ...

    async def find_timesheet(self, employee_id: str, week_start_date: date) -> Optional[TimesheetInfo]: ...

    async def create_timesheet(
        self, employee_id: str, week_start_date: date, supervisor_notes: Optional[str] = None
    ) -> TimesheetInfo: ...

    async def update_timesheet(
        self,
        timesheet_id: str,
        status: TimesheetStatus,
        reviewed_by: Optional[str] = None,
        reviewed_at: Optional[datetime] = None,
        supervisor_notes: Optional[str] = None,
    ) -> TimesheetInfo: ...

    async def list_timesheets(
        self, status: TimesheetStatus, employee_id: Optional[str] = None
    ) -> list[TimesheetInfo]: ...

    async def count_timesheets(self, status: TimesheetStatus) -> int: ...

    async def list_entries(self, timesheet_id: str) -> list[EntryInfo]: ...

    async def insert_entry(self, timesheet_id: str, record: EntryRecord) -> EntryInfo: ...

    async def replace_entry(self, timesheet_id: str, entry_id: str, record: EntryRecord) -> EntryInfo: ...

    async def delete_entry(self, timesheet_id: str, entry_id: str) -> None: ...

    async def record_submission(
        self,
        timesheet_id: str,
        audit_rows: list[dict],
        submitted_at: Optional[datetime] = None,
    ) -> TimesheetInfo:
        """Store the audit rows and, when ``submitted_at`` is set, mark the
        timesheet submitted. Both writes succeed or neither does."""
        ...

    async def list_check_logs(self, timesheet_id: str) -> list[ComplianceLogRecord]: ...

    async def find_check_logs(
        self,
        checked_from: datetime,
        checked_to: datetime,
        employee_id: Optional[str] = None,
        rule_id: Optional[str] = None,
        result: Optional[RuleOutcome] = None,
    ) -> list[ComplianceLogRecord]: ...
