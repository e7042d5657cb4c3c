from datetime import date, datetime
from pydantic import BaseModel, Field

from compliance.types import EntryInfo, TimesheetInfo

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class ErrorResponse(BaseModel):
    error: str  # Stable code: "HOUR_LIMIT_EXCEEDED", "TIMESHEET_NOT_FOUND", ...
    message: str
    details: dict | None = None


class TimesheetCreateRequest(BaseModel):
    employee_id: str
    week_start_date: date  # Must be a Sunday


class TimesheetResponse(BaseModel):
    id: str
    employee_id: str
    week_start_date: str  # ISO date string: "2024-06-09"
    status: str
    submitted_at: datetime | None = None
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    supervisor_notes: str | None = None

    @classmethod
    def from_info(cls, info: TimesheetInfo) -> "TimesheetResponse":
        return cls(
            id=info.id,
            employee_id=info.employee_id,
            week_start_date=info.week_start_date.isoformat(),
            status=info.status.value,
            submitted_at=info.submitted_at,
            reviewed_at=info.reviewed_at,
            reviewed_by=info.reviewed_by,
            supervisor_notes=info.supervisor_notes,
        )


class EntryResponse(BaseModel):
    id: str
    work_date: str
    start_time: str
    end_time: str
    hours: float
    is_school_day: bool
    task_code_id: str
    task_code: str
    task_name: str
    school_day_override_note: str | None = None
    supervisor_present_name: str | None = None
    meal_break_confirmed: bool | None = None

    @classmethod
    def from_info(cls, info: EntryInfo) -> "EntryResponse":
        return cls(
            id=info.id,
            work_date=info.work_date.isoformat(),
            start_time=info.start_time,
            end_time=info.end_time,
            hours=info.hours,
            is_school_day=info.is_school_day,
            task_code_id=info.task_code.id,
            task_code=info.task_code.code,
            task_name=info.task_code.name,
            school_day_override_note=info.school_day_override_note,
            supervisor_present_name=info.supervisor_present_name,
            meal_break_confirmed=info.meal_break_confirmed,
        )


class TimesheetDetailResponse(BaseModel):
    timesheet: TimesheetResponse
    entries_by_date: dict[str, list[EntryResponse]]
    daily_totals: dict[str, float]
    weekly_total: float


class EntryCreateRequest(BaseModel):
    work_date: date
    start_time: str = Field(pattern=HHMM_PATTERN)
    end_time: str = Field(pattern=HHMM_PATTERN)
    task_code_id: str
    is_school_day: bool | None = None  # None: use the calendar default
    school_day_override_note: str | None = None
    supervisor_present_name: str | None = None
    meal_break_confirmed: bool | None = None


class EntryPreviewRequest(EntryCreateRequest):
    exclude_entry_id: str | None = None  # Entry being edited


class EntryUpdateRequest(BaseModel):
    """Only fields present in the request body are changed."""
    start_time: str | None = Field(default=None, pattern=HHMM_PATTERN)
    end_time: str | None = Field(default=None, pattern=HHMM_PATTERN)
    task_code_id: str | None = None
    is_school_day: bool | None = None
    school_day_override_note: str | None = None
    supervisor_present_name: str | None = None
    meal_break_confirmed: bool | None = None


class ApproveRequest(BaseModel):
    supervisor_id: str
    notes: str | None = None


class RejectRequest(BaseModel):
    supervisor_id: str
    notes: str = ""  # At least 10 characters once trimmed


class UnlockWeekRequest(BaseModel):
    employee_id: str
    week_start_date: date
    supervisor_id: str


class RuleCatalogItem(BaseModel):
    id: str
    name: str
    category: str
    description: str
    applies_to_age_bands: list[str]
