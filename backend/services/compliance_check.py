"""Whole-timesheet compliance preview, without audit rows or status changes."""

import logging
from datetime import date
from typing import Optional

from compliance.context import DEFAULT_TIMEZONE, build_context
from compliance.engine import ComplianceEngine, ComplianceError
from compliance.types import ComplianceContext
from services.repository import TimesheetRepository

logger = logging.getLogger(__name__)


async def load_compliance_context(
    repo: TimesheetRepository,
    timesheet_id: str,
    check_date: Optional[date] = None,
    timezone_name: str = DEFAULT_TIMEZONE,
) -> ComplianceContext:
    timesheet = await repo.get_timesheet(timesheet_id)
    if timesheet is None:
        raise ComplianceError("Timesheet not found", "TIMESHEET_NOT_FOUND")

    employee = await repo.get_employee(timesheet.employee_id)
    if employee is None:
        raise ComplianceError("Employee not found", "EMPLOYEE_NOT_FOUND")

    entries = await repo.list_entries(timesheet_id)
    documents = await repo.list_documents(employee.id)
    return build_context(
        employee, timesheet, entries, documents,
        check_date=check_date, timezone_name=timezone_name,
    )


async def preview_compliance(
    repo: TimesheetRepository,
    engine: ComplianceEngine,
    timesheet_id: str,
    check_date: Optional[date] = None,
    timezone_name: str = DEFAULT_TIMEZONE,
) -> dict:
    """
    Run the rule set against the timesheet as it stands now.

    Nothing is written, so workers can check before submitting.

    Raises:
        ComplianceError: timesheet or employee missing, or no rules loaded
    """
    context = await load_compliance_context(repo, timesheet_id, check_date, timezone_name)
    valid, violations = engine.validate(context)
    logger.debug(f"Compliance preview for timesheet {timesheet_id}: {len(violations)} violation(s)")
    return {
        "timesheet_id": timesheet_id,
        "valid": valid,
        "violations": [v.to_dict() for v in violations],
    }
