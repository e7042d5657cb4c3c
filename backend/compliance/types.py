"""Type definitions for the compliance module."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping, Optional


class AgeBand(str, Enum):
    """Legal age groupings, each carrying its own limits."""
    AGES_12_13 = "12-13"
    AGES_14_15 = "14-15"
    AGES_16_17 = "16-17"
    ADULT = "18+"


MINOR_BANDS = frozenset({AgeBand.AGES_12_13, AgeBand.AGES_14_15, AgeBand.AGES_16_17})


class RuleCategory(str, Enum):
    """Categories of compliance rules."""
    DOCUMENTATION = "documentation"
    HOURS = "hours"
    TIME_WINDOW = "time_window"
    TASK = "task"
    BREAK = "break"


class RuleOutcome(str, Enum):
    """Result of evaluating a rule against one context."""
    PASS = "pass"
    FAIL = "fail"
    NOT_APPLICABLE = "not_applicable"


class DocumentType(str, Enum):
    PARENTAL_CONSENT = "parental_consent"
    WORK_PERMIT = "work_permit"
    SAFETY_TRAINING = "safety_training"


class SupervisorRequirement(str, Enum):
    NONE = "none"
    FOR_MINORS = "for_minors"
    ALWAYS = "always"


class TimesheetStatus(str, Enum):
    OPEN = "open"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class EmployeeInfo:
    """Employee fields needed for compliance checks."""
    id: str
    name: str
    date_of_birth: date
    is_supervisor: bool = False


@dataclass(frozen=True)
class DocumentInfo:
    """An employee document on file."""
    id: str
    type: DocumentType
    uploaded_at: datetime
    expires_at: Optional[date] = None
    invalidated_at: Optional[datetime] = None

    @property
    def is_valid(self) -> bool:
        return self.invalidated_at is None


@dataclass(frozen=True)
class TaskCodeInfo:
    """Task classification used by task restriction rules."""
    id: str
    code: str
    name: str
    min_age_allowed: int = 12
    is_hazardous: bool = False
    supervisor_required: SupervisorRequirement = SupervisorRequirement.NONE
    is_agricultural: bool = False
    power_machinery: bool = False
    driving_required: bool = False
    solo_cash_handling: bool = False

    def requires_supervisor(self, age: int) -> bool:
        if self.supervisor_required == SupervisorRequirement.ALWAYS:
            return True
        return self.supervisor_required == SupervisorRequirement.FOR_MINORS and age < 18


@dataclass(frozen=True)
class EntryInfo:
    """A single shift on a timesheet."""
    id: str
    work_date: date
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    hours: float
    is_school_day: bool
    task_code: TaskCodeInfo
    supervisor_present_name: Optional[str] = None
    meal_break_confirmed: Optional[bool] = None
    school_day_override_note: Optional[str] = None


@dataclass(frozen=True)
class TimesheetInfo:
    id: str
    employee_id: str
    week_start_date: date
    status: TimesheetStatus = TimesheetStatus.OPEN
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    supervisor_notes: Optional[str] = None

    @property
    def is_editable(self) -> bool:
        return self.status == TimesheetStatus.OPEN


@dataclass(frozen=True)
class ComplianceContext:
    """Immutable snapshot of everything a rule may look at.

    Per-day maps are keyed by work date and cover the 7 days of the week.
    Built once per evaluation pass by ``compliance.context.build_context``.
    """
    employee: EmployeeInfo
    timesheet: TimesheetInfo
    entries: tuple[EntryInfo, ...]
    documents: tuple[DocumentInfo, ...]
    daily_ages: Mapping[date, int]
    daily_age_bands: Mapping[date, AgeBand]
    daily_hours: Mapping[date, float]
    daily_entries: Mapping[date, tuple[EntryInfo, ...]]
    school_days: tuple[date, ...]
    work_days: tuple[date, ...]
    weekly_total: float
    is_school_week: bool
    check_date: date

    @property
    def age_bands_in_week(self) -> frozenset[AgeBand]:
        return frozenset(self.daily_age_bands.values())

    @property
    def has_minor_band(self) -> bool:
        return any(band != AgeBand.ADULT for band in self.daily_age_bands.values())


@dataclass
class RuleDetails:
    """Audit payload for one rule evaluation."""
    description: str
    checked_values: dict[str, Any] = field(default_factory=dict)
    threshold: Optional[float] = None
    actual_value: Optional[float] = None
    affected_dates: list[str] = field(default_factory=list)
    affected_entries: list[str] = field(default_factory=list)
    message: Optional[str] = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "rule_description": self.description,
            "checked_values": self.checked_values,
        }
        if self.threshold is not None:
            data["threshold"] = self.threshold
        if self.actual_value is not None:
            data["actual_value"] = self.actual_value
        if self.affected_dates:
            data["affected_dates"] = self.affected_dates
        if self.affected_entries:
            data["affected_entries"] = self.affected_entries
        if self.message is not None:
            data["message"] = self.message
        return data


@dataclass
class RuleResult:
    """Outcome of evaluating a single compliance rule."""
    rule_id: str
    rule_name: str
    result: RuleOutcome
    details: RuleDetails
    error_message: Optional[str] = None
    remediation: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.result == RuleOutcome.FAIL

    def to_dict(self) -> dict:
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "result": self.result.value,
            "details": self.details.to_dict(),
            "error_message": self.error_message,
            "remediation": self.remediation,
        }


@dataclass
class ComplianceViolation:
    """User-facing description of a failed rule."""
    rule_id: str
    rule_name: str
    message: str
    remediation: str
    affected_dates: list[str] = field(default_factory=list)
    affected_entries: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "message": self.message,
            "remediation": self.remediation,
            "affected_dates": self.affected_dates,
            "affected_entries": self.affected_entries,
        }


@dataclass
class ComplianceCheckResult:
    """Aggregated result of running the rule set against a timesheet."""
    passed: bool
    timesheet_id: str
    employee_id: str
    checked_at: datetime
    results: list[RuleResult] = field(default_factory=list)
    failed_rules: list[RuleResult] = field(default_factory=list)
    passed_rules: list[RuleResult] = field(default_factory=list)
    not_applicable_rules: list[RuleResult] = field(default_factory=list)
    violations: list[ComplianceViolation] = field(default_factory=list)

    @property
    def fail_count(self) -> int:
        return len(self.failed_rules)

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "timesheet_id": self.timesheet_id,
            "employee_id": self.employee_id,
            "checked_at": self.checked_at.isoformat(),
            "results": [r.to_dict() for r in self.results],
            "violations": [v.to_dict() for v in self.violations],
            "summary": {
                "total": len(self.results),
                "passed": len(self.passed_rules),
                "failed": len(self.failed_rules),
                "not_applicable": len(self.not_applicable_rules),
            },
        }
