"""Compliance audit report over stored rule outcomes."""

from collections import Counter
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from compliance.age import BelowMinimumAgeError, age_band
from compliance.types import AgeBand, RuleOutcome
from services.repository import ComplianceLogRecord, TimesheetRepository


class ReportError(Exception):
    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.message = message
        self.code = code  # INVALID_DATE_RANGE


@dataclass(frozen=True)
class AuditFilters:
    """Report filters. The date range is inclusive and compared against ``checked_at`` in UTC."""
    start_date: date
    end_date: date
    employee_id: Optional[str] = None
    rule_id: Optional[str] = None
    result: Optional[RuleOutcome] = None
    age_band: Optional[AgeBand] = None


def band_for_logged_age(age: int) -> AgeBand:
    try:
        return age_band(age)
    except BelowMinimumAgeError:
        return AgeBand.AGES_12_13


async def compliance_audit_report(repo: TimesheetRepository, filters: AuditFilters) -> dict:
    """
    Stored compliance outcomes matching ``filters``, newest first, with a summary.

    Raises:
        ReportError: start date after end date
    """
    if filters.start_date > filters.end_date:
        raise ReportError("Start date must be before or equal to end date", "INVALID_DATE_RANGE")

    checked_from = datetime.combine(filters.start_date, time.min, tzinfo=timezone.utc)
    checked_to = datetime.combine(filters.end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)

    logs = await repo.find_check_logs(
        checked_from,
        checked_to,
        employee_id=filters.employee_id,
        rule_id=filters.rule_id,
        result=filters.result,
    )
    records = [replace(log, age_band=band_for_logged_age(log.employee_age_on_date)) for log in logs]
    if filters.age_band is not None:
        records = [r for r in records if r.age_band == filters.age_band]
    records.sort(key=lambda r: r.checked_at, reverse=True)

    return {
        "records": [r.to_dict() for r in records],
        "summary": summarize(records),
    }


def summarize(records: list[ComplianceLogRecord]) -> dict:
    counts = Counter(r.result for r in records)
    per_rule: dict[str, Counter] = {}
    for r in records:
        per_rule.setdefault(r.rule_id, Counter())[r.result] += 1

    return {
        "total_checks": len(records),
        "pass_count": counts[RuleOutcome.PASS],
        "fail_count": counts[RuleOutcome.FAIL],
        "not_applicable_count": counts[RuleOutcome.NOT_APPLICABLE],
        "unique_timesheets": len({r.timesheet_id for r in records}),
        "unique_employees": len({r.employee_id for r in records if r.employee_id}),
        "rule_breakdown": [
            {
                "rule_id": rule_id,
                "pass_count": stats[RuleOutcome.PASS],
                "fail_count": stats[RuleOutcome.FAIL],
            }
            for rule_id, stats in sorted(per_rule.items())
        ],
    }
