import logging
from contextlib import asynccontextmanager
from datetime import date

from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import COMPLIANCE_TIMEZONE, CORS_ORIGINS, setup_logging, validate_config
from compliance import (
    AgeBand,
    BelowMinimumAgeError,
    ComplianceEngine,
    ComplianceError,
    RuleOutcome,
    RuleSet,
    default_rule_set,
)
from db import init_db, BeanieTimesheetRepository
from db.database import close_db
from schemas import (
    ApproveRequest,
    EntryCreateRequest,
    EntryPreviewRequest,
    EntryResponse,
    EntryUpdateRequest,
    ErrorResponse,
    RejectRequest,
    RuleCatalogItem,
    TimesheetCreateRequest,
    TimesheetDetailResponse,
    TimesheetResponse,
    UnlockWeekRequest,
)
from services.audit import AuditFilters, ReportError, compliance_audit_report
from services.compliance_check import preview_compliance
from services.documentation_status import DocumentationError, get_documentation_status
from services.locking import TimesheetLocks
from services.repository import TimesheetRepository
from services.submission import (
    InvalidTransitionError,
    ReviewError,
    TimesheetError,
    approve_timesheet,
    get_compliance_logs,
    get_or_create_timesheet,
    get_pending_review_count,
    get_review_queue,
    get_timesheet_with_employee,
    reject_timesheet,
    reopen_timesheet,
    submit_timesheet,
    unlock_week,
)
from services.timesheet_entries import (
    EntryInput,
    TimesheetEntryError,
    create_entry,
    delete_entry,
    get_daily_totals,
    get_entries_grouped_by_date,
    get_totals_summary,
    get_week_info,
    get_weekly_total,
    preview_entry_for_timesheet,
    update_entry,
)

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    "INVALID_TIME_RANGE": 400,
    "DATE_OUTSIDE_WEEK": 400,
    "INVALID_WEEK_START_DATE": 400,
    "INVALID_DATE_RANGE": 400,
    "NOTES_REQUIRED": 400,
    "NOTES_TOO_SHORT": 400,
    "TIMESHEET_NOT_FOUND": 404,
    "EMPLOYEE_NOT_FOUND": 404,
    "ENTRY_NOT_FOUND": 404,
    "TASK_CODE_NOT_FOUND": 404,
    "TIMESHEET_NOT_EDITABLE": 409,
    "TIMESHEET_NOT_SUBMITTED": 409,
    "INVALID_TRANSITION": 409,
    "HOUR_LIMIT_EXCEEDED": 422,
    "TASK_CODE_AGE_RESTRICTED": 422,
    "BELOW_MINIMUM_AGE": 422,
    "COMPLIANCE_FAILED": 422,
    "ENGINE_ERROR": 500,
}

rule_set: RuleSet = default_rule_set()
engine = ComplianceEngine(rule_set)
locks = TimesheetLocks()
repository = BeanieTimesheetRepository()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    validate_config()
    await init_db()
    logger.info(f"Loaded {len(rule_set)} compliance rules")
    yield
    await close_db()


app = FastAPI(title="minorCompliance", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_repository() -> TimesheetRepository:
    return repository


def get_locks() -> TimesheetLocks:
    return locks


def get_engine() -> ComplianceEngine:
    return engine


def error_response(code: str, message: str, details: dict | None = None) -> JSONResponse:
    body = ErrorResponse(error=code, message=message, details=details)
    return JSONResponse(
        status_code=STATUS_BY_CODE.get(code, 400),
        content=body.model_dump(exclude_none=True),
    )


@app.exception_handler(TimesheetEntryError)
async def timesheet_entry_error_handler(request: Request, exc: TimesheetEntryError):
    return error_response(exc.code, exc.message, exc.details or None)


@app.exception_handler(TimesheetError)
async def timesheet_error_handler(request: Request, exc: TimesheetError):
    return error_response(exc.code, exc.message)


@app.exception_handler(ReviewError)
async def review_error_handler(request: Request, exc: ReviewError):
    return error_response(exc.code, exc.message)


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
    return error_response(
        exc.code, exc.message, {"current": exc.current.value, "target": exc.target.value}
    )


@app.exception_handler(BelowMinimumAgeError)
async def below_minimum_age_handler(request: Request, exc: BelowMinimumAgeError):
    return error_response(exc.code, str(exc), {"age": exc.age})


@app.exception_handler(ReportError)
async def report_error_handler(request: Request, exc: ReportError):
    return error_response(exc.code, exc.message)


@app.exception_handler(DocumentationError)
async def documentation_error_handler(request: Request, exc: DocumentationError):
    return error_response(exc.code, exc.message)


@app.exception_handler(ComplianceError)
async def compliance_error_handler(request: Request, exc: ComplianceError):
    return error_response(exc.code, str(exc))


def _entry_input(request: EntryCreateRequest) -> EntryInput:
    return EntryInput(
        work_date=request.work_date,
        start_time=request.start_time,
        end_time=request.end_time,
        task_code_id=request.task_code_id,
        is_school_day=request.is_school_day,
        school_day_override_note=request.school_day_override_note,
        supervisor_present_name=request.supervisor_present_name,
        meal_break_confirmed=request.meal_break_confirmed,
    )


@app.post("/timesheets", response_model=TimesheetResponse)
async def create_or_get_timesheet(
    request: TimesheetCreateRequest,
    repo: TimesheetRepository = Depends(get_repository),
    timesheet_locks: TimesheetLocks = Depends(get_locks),
):
    timesheet = await get_or_create_timesheet(
        repo, timesheet_locks, request.employee_id, request.week_start_date
    )
    return TimesheetResponse.from_info(timesheet)


@app.get("/timesheets/{timesheet_id}", response_model=TimesheetDetailResponse)
async def get_timesheet(timesheet_id: str, repo: TimesheetRepository = Depends(get_repository)):
    timesheet, _ = await get_timesheet_with_employee(repo, timesheet_id)
    entries = await repo.list_entries(timesheet_id)
    return TimesheetDetailResponse(
        timesheet=TimesheetResponse.from_info(timesheet),
        entries_by_date={
            day.isoformat(): [EntryResponse.from_info(e) for e in day_entries]
            for day, day_entries in get_entries_grouped_by_date(entries).items()
        },
        daily_totals={day.isoformat(): hours for day, hours in get_daily_totals(entries).items()},
        weekly_total=get_weekly_total(entries),
    )


@app.get("/timesheets/{timesheet_id}/week-info")
async def timesheet_week_info(timesheet_id: str, repo: TimesheetRepository = Depends(get_repository)):
    timesheet, employee = await get_timesheet_with_employee(repo, timesheet_id)
    return get_week_info(employee, timesheet.week_start_date)


@app.get("/timesheets/{timesheet_id}/totals")
async def timesheet_totals(timesheet_id: str, repo: TimesheetRepository = Depends(get_repository)):
    timesheet, employee = await get_timesheet_with_employee(repo, timesheet_id)
    entries = await repo.list_entries(timesheet_id)
    return get_totals_summary(employee, timesheet, entries)


@app.post("/timesheets/{timesheet_id}/entries/preview")
async def preview_timesheet_entry(
    timesheet_id: str,
    request: EntryPreviewRequest,
    repo: TimesheetRepository = Depends(get_repository),
):
    preview = await preview_entry_for_timesheet(
        repo, timesheet_id, _entry_input(request), exclude_entry_id=request.exclude_entry_id
    )
    return preview.to_dict()


@app.post("/timesheets/{timesheet_id}/entries", response_model=EntryResponse, status_code=201)
async def add_timesheet_entry(
    timesheet_id: str,
    request: EntryCreateRequest,
    repo: TimesheetRepository = Depends(get_repository),
    timesheet_locks: TimesheetLocks = Depends(get_locks),
):
    entry = await create_entry(repo, timesheet_locks, timesheet_id, _entry_input(request))
    return EntryResponse.from_info(entry)


@app.patch("/timesheets/{timesheet_id}/entries/{entry_id}", response_model=EntryResponse)
async def edit_timesheet_entry(
    timesheet_id: str,
    entry_id: str,
    request: EntryUpdateRequest,
    repo: TimesheetRepository = Depends(get_repository),
    timesheet_locks: TimesheetLocks = Depends(get_locks),
):
    entry = await update_entry(
        repo, timesheet_locks, timesheet_id, entry_id, request.model_dump(exclude_unset=True)
    )
    return EntryResponse.from_info(entry)


@app.delete("/timesheets/{timesheet_id}/entries/{entry_id}", status_code=204)
async def remove_timesheet_entry(
    timesheet_id: str,
    entry_id: str,
    repo: TimesheetRepository = Depends(get_repository),
    timesheet_locks: TimesheetLocks = Depends(get_locks),
):
    await delete_entry(repo, timesheet_locks, timesheet_id, entry_id)
    return Response(status_code=204)


@app.post("/timesheets/{timesheet_id}/submit")
async def submit(
    timesheet_id: str,
    repo: TimesheetRepository = Depends(get_repository),
    timesheet_locks: TimesheetLocks = Depends(get_locks),
    compliance_engine: ComplianceEngine = Depends(get_engine),
):
    result = await submit_timesheet(
        repo, timesheet_locks, compliance_engine, timesheet_id, timezone_name=COMPLIANCE_TIMEZONE
    )
    if not result.passed:
        return error_response(
            "COMPLIANCE_FAILED",
            f"Timesheet failed {result.check.fail_count} compliance rule(s)",
            result.to_dict(),
        )
    return result.to_dict()


@app.post("/timesheets/{timesheet_id}/approve", response_model=TimesheetResponse)
async def approve(
    timesheet_id: str,
    request: ApproveRequest,
    repo: TimesheetRepository = Depends(get_repository),
    timesheet_locks: TimesheetLocks = Depends(get_locks),
):
    timesheet = await approve_timesheet(
        repo, timesheet_locks, timesheet_id, request.supervisor_id, request.notes
    )
    return TimesheetResponse.from_info(timesheet)


@app.post("/timesheets/{timesheet_id}/reject", response_model=TimesheetResponse)
async def reject(
    timesheet_id: str,
    request: RejectRequest,
    repo: TimesheetRepository = Depends(get_repository),
    timesheet_locks: TimesheetLocks = Depends(get_locks),
):
    timesheet = await reject_timesheet(
        repo, timesheet_locks, timesheet_id, request.supervisor_id, request.notes
    )
    return TimesheetResponse.from_info(timesheet)


@app.post("/timesheets/{timesheet_id}/reopen", response_model=TimesheetResponse)
async def reopen(
    timesheet_id: str,
    repo: TimesheetRepository = Depends(get_repository),
    timesheet_locks: TimesheetLocks = Depends(get_locks),
):
    timesheet = await reopen_timesheet(repo, timesheet_locks, timesheet_id)
    return TimesheetResponse.from_info(timesheet)


@app.post("/supervisor/unlock-week", response_model=TimesheetResponse)
async def supervisor_unlock_week(
    request: UnlockWeekRequest,
    repo: TimesheetRepository = Depends(get_repository),
    timesheet_locks: TimesheetLocks = Depends(get_locks),
):
    timesheet = await unlock_week(
        repo, timesheet_locks, request.employee_id, request.week_start_date, request.supervisor_id
    )
    return TimesheetResponse.from_info(timesheet)


@app.get("/supervisor/review-queue")
async def supervisor_review_queue(
    employee_id: str | None = None, repo: TimesheetRepository = Depends(get_repository)
):
    items = await get_review_queue(repo, employee_id=employee_id)
    return {"items": [item.to_dict() for item in items], "total": len(items)}


@app.get("/supervisor/review-count")
async def supervisor_review_count(repo: TimesheetRepository = Depends(get_repository)):
    return {"count": await get_pending_review_count(repo)}


@app.get("/employees/{employee_id}/documentation-status")
async def employee_documentation_status(
    employee_id: str,
    as_of: date | None = None,
    repo: TimesheetRepository = Depends(get_repository),
):
    status = await get_documentation_status(
        repo, employee_id, as_of=as_of, timezone_name=COMPLIANCE_TIMEZONE
    )
    return status.to_dict()


@app.get("/timesheets/{timesheet_id}/compliance/preview")
async def timesheet_compliance_preview(
    timesheet_id: str,
    repo: TimesheetRepository = Depends(get_repository),
    compliance_engine: ComplianceEngine = Depends(get_engine),
):
    return await preview_compliance(
        repo, compliance_engine, timesheet_id, timezone_name=COMPLIANCE_TIMEZONE
    )


@app.get("/timesheets/{timesheet_id}/compliance")
async def timesheet_compliance_logs(
    timesheet_id: str, repo: TimesheetRepository = Depends(get_repository)
):
    logs = await get_compliance_logs(repo, timesheet_id)
    return [log.to_dict() for log in logs]


@app.get("/reports/compliance-audit")
async def compliance_audit(
    start_date: date,
    end_date: date,
    employee_id: str | None = None,
    rule_id: str | None = None,
    result: RuleOutcome | None = None,
    age_band: AgeBand | None = None,
    repo: TimesheetRepository = Depends(get_repository),
):
    filters = AuditFilters(
        start_date=start_date,
        end_date=end_date,
        employee_id=employee_id,
        rule_id=rule_id,
        result=result,
        age_band=age_band,
    )
    return await compliance_audit_report(repo, filters)


@app.get("/compliance/rules", response_model=list[RuleCatalogItem])
async def get_compliance_rules(compliance_engine: ComplianceEngine = Depends(get_engine)):
    rules = sorted(compliance_engine.rule_set.list_rules(), key=lambda r: r.id)
    return [RuleCatalogItem(**rule.to_dict()) for rule in rules]
