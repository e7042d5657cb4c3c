"""Child labor compliance rules and hour-limit policy."""

from .types import (
    AgeBand,
    ComplianceCheckResult,
    ComplianceContext,
    ComplianceViolation,
    DocumentInfo,
    DocumentType,
    EmployeeInfo,
    EntryInfo,
    RuleCategory,
    RuleOutcome,
    RuleResult,
    SupervisorRequirement,
    TaskCodeInfo,
    TimesheetInfo,
    TimesheetStatus,
)
from .age import BelowMinimumAgeError, age_band, age_on_date, birthday_in_week, weekly_ages
from .hour_limits import HourLimits, WARNING_THRESHOLD, check_hour_limits, limits_for_age
from .context import build_context
from .registry import RuleSet, default_rule_set, filter_applicable_rules
from .engine import ComplianceEngine, ComplianceError
from .preview import EntryCompliancePreview, EntryProposal, preview_entry

__all__ = [
    "AgeBand",
    "ComplianceCheckResult",
    "ComplianceContext",
    "ComplianceViolation",
    "DocumentInfo",
    "DocumentType",
    "EmployeeInfo",
    "EntryInfo",
    "RuleCategory",
    "RuleOutcome",
    "RuleResult",
    "SupervisorRequirement",
    "TaskCodeInfo",
    "TimesheetInfo",
    "TimesheetStatus",
    "BelowMinimumAgeError",
    "age_band",
    "age_on_date",
    "birthday_in_week",
    "weekly_ages",
    "HourLimits",
    "WARNING_THRESHOLD",
    "check_hour_limits",
    "limits_for_age",
    "build_context",
    "RuleSet",
    "default_rule_set",
    "filter_applicable_rules",
    "ComplianceEngine",
    "ComplianceError",
    "EntryCompliancePreview",
    "EntryProposal",
    "preview_entry",
]
