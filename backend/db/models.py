from datetime import datetime, date
from typing import Literal, Optional
from beanie import Document, Indexed
from pydantic import Field
from pymongo import IndexModel

from compliance.types import DocumentType, RuleOutcome, SupervisorRequirement, TimesheetStatus
from utils import utc_now


EmployeeStatus = Literal["active", "archived"]


class EmployeeDoc(Document):
    name: str
    email: Optional[str] = None
    date_of_birth: date  # Never changes after hire
    is_supervisor: bool = False
    status: EmployeeStatus = "active"
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "employees"


class EmployeeDocumentDoc(Document):
    """
    Consent form, work permit or safety training record on file for an employee.
    Documents are never deleted; revocation sets invalidated_at.
    """
    employee_id: Indexed(str)
    type: DocumentType
    file_path: Optional[str] = None
    uploaded_by: Optional[str] = None
    uploaded_at: datetime = Field(default_factory=utc_now)
    expires_at: Optional[date] = None  # Work permits only
    invalidated_at: Optional[datetime] = None

    class Settings:
        name = "employee_documents"
        indexes = [
            IndexModel([("employee_id", 1), ("type", 1), ("uploaded_at", -1)]),
        ]


class TaskCodeDoc(Document):
    code: Indexed(str, unique=True)  # "F1", "H2", ...
    name: str
    description: Optional[str] = None
    min_age_allowed: int = 12
    is_hazardous: bool = False
    supervisor_required: SupervisorRequirement = SupervisorRequirement.NONE
    is_agricultural: bool = False
    power_machinery: bool = False
    driving_required: bool = False
    solo_cash_handling: bool = False
    is_active: bool = True  # Retired codes stay for historical entries
    created_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "task_codes"


class TimesheetDoc(Document):
    """
    One employee's week, keyed by (employee_id, week_start_date).
    """
    employee_id: str
    week_start_date: Indexed(str)  # ISO Sunday: "2024-06-09"
    status: TimesheetStatus = TimesheetStatus.OPEN

    submitted_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    supervisor_notes: Optional[str] = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "timesheets"
        indexes = [
            IndexModel(
                [("employee_id", 1), ("week_start_date", 1)],
                unique=True,
                name="unique_employee_week",
            ),
            IndexModel([("status", 1)]),
        ]


class TimesheetEntryDoc(Document):
    timesheet_id: Indexed(str)
    work_date: str  # ISO: "2024-06-10"
    task_code_id: str
    start_time: str  # "15:30"
    end_time: str  # "19:00"
    hours: float
    is_school_day: bool
    school_day_override_note: Optional[str] = None
    supervisor_present_name: Optional[str] = None
    meal_break_confirmed: Optional[bool] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "timesheet_entries"
        indexes = [
            IndexModel([("timesheet_id", 1), ("work_date", 1)]),
        ]


class ComplianceCheckLogDoc(Document):
    """
    Audit trail of compliance rule outcomes, one document per rule per check.
    Append-only.
    """
    timesheet_id: str
    rule_id: str
    result: RuleOutcome
    details: dict = {}
    employee_age_on_date: int
    checked_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "compliance_check_logs"
        indexes = [
            IndexModel([("timesheet_id", 1)]),
            IndexModel([("rule_id", 1)]),
            IndexModel([("checked_at", -1)]),
        ]
