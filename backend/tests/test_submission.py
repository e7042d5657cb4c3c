"""Tests for timesheet submission and supervisor review."""

from dataclasses import replace
from datetime import date, datetime, timezone

import pytest

from compliance.types import RuleOutcome, TimesheetInfo, TimesheetStatus
from services.repository import ComplianceLogRecord
from services.submission import (
    InvalidTransitionError,
    ReviewError,
    TimesheetError,
    approve_timesheet,
    can_transition,
    get_compliance_logs,
    get_or_create_timesheet,
    get_pending_review_count,
    get_review_queue,
    get_timesheet_with_employee,
    reject_timesheet,
    reopen_timesheet,
    submit_timesheet,
    unlock_week,
    validate_rejection_notes,
)
from services.timesheet_entries import EntryInput, create_entry

from conftest import CHECK_DATE, SUMMER_WEEK, make_employee, make_entry

MONDAY = date(2024, 6, 10)


async def _add_entry(repo, locks, timesheet_id="ts-minor"):
    return await create_entry(repo, locks, timesheet_id, EntryInput(
        work_date=MONDAY,
        start_time="16:00",
        end_time="18:00",
        task_code_id="task-f1",
        is_school_day=False,
    ))


async def _submit(repo, locks, engine, timesheet_id="ts-minor"):
    return await submit_timesheet(repo, locks, engine, timesheet_id, check_date=CHECK_DATE)


def _with_status(repo, status, timesheet_id="ts-review"):
    repo.add_employee(make_employee(date(2010, 6, 20)))
    return repo.add_timesheet(TimesheetInfo(
        id=timesheet_id, employee_id="emp-1", week_start_date=SUMMER_WEEK, status=status,
    ))


def _submitted(repo, timesheet_id, employee_id, submitted_at, week_start=SUMMER_WEEK):
    return repo.add_timesheet(TimesheetInfo(
        id=timesheet_id,
        employee_id=employee_id,
        week_start_date=week_start,
        status=TimesheetStatus.SUBMITTED,
        submitted_at=submitted_at,
    ))


class TestTransitions:
    """Tests for the status transition table."""

    @pytest.mark.parametrize("current,target,allowed", [
        (TimesheetStatus.OPEN, TimesheetStatus.SUBMITTED, True),
        (TimesheetStatus.OPEN, TimesheetStatus.APPROVED, False),
        (TimesheetStatus.SUBMITTED, TimesheetStatus.APPROVED, True),
        (TimesheetStatus.SUBMITTED, TimesheetStatus.REJECTED, True),
        (TimesheetStatus.REJECTED, TimesheetStatus.OPEN, True),
        (TimesheetStatus.APPROVED, TimesheetStatus.OPEN, False),
    ])
    def test_can_transition(self, current, target, allowed):
        assert can_transition(current, target) is allowed


class TestSubmitTimesheet:
    """Tests for the submission gate."""

    @pytest.mark.asyncio
    async def test_compliant_timesheet_is_submitted(self, repo, locks, engine, minor_timesheet, harvest_task):
        await _add_entry(repo, locks)

        result = await _submit(repo, locks, engine)

        assert result.passed is True
        assert result.timesheet.status == TimesheetStatus.SUBMITTED
        assert result.timesheet.submitted_at == result.check.checked_at
        assert repo.timesheets["ts-minor"].status == TimesheetStatus.SUBMITTED
        assert len(repo.logs) == len(result.check.results)

    @pytest.mark.asyncio
    async def test_failing_timesheet_stays_open_with_audit_rows(
        self, repo, locks, engine, minor_timesheet, harvest_task
    ):
        repo.documents["emp-1"] = []
        await _add_entry(repo, locks)

        result = await _submit(repo, locks, engine)

        assert result.passed is False
        assert result.timesheet.status == TimesheetStatus.OPEN
        assert result.timesheet.submitted_at is None
        assert repo.submission_calls == 1
        failed = {log.rule_id for log in repo.logs if log.result == RuleOutcome.FAIL.value}
        assert failed == {"RULE-001", "RULE-030"}
        assert result.to_dict()["status"] == "open"

    @pytest.mark.asyncio
    async def test_submitted_timesheet_cannot_resubmit(self, repo, locks, engine):
        _with_status(repo, TimesheetStatus.SUBMITTED)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await _submit(repo, locks, engine, "ts-review")

        assert exc_info.value.code == "INVALID_TRANSITION"
        assert repo.submission_calls == 0

    @pytest.mark.asyncio
    async def test_missing_timesheet(self, repo, locks, engine):
        with pytest.raises(TimesheetError) as exc_info:
            await _submit(repo, locks, engine, "missing")

        assert exc_info.value.code == "TIMESHEET_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_compliance_logs_sorted(self, repo, locks, engine, minor_timesheet, harvest_task):
        repo.documents["emp-1"] = []
        result = await _submit(repo, locks, engine)

        logs = await get_compliance_logs(repo, "ts-minor")

        assert [log.rule_id for log in logs] == sorted(r.rule_id for r in result.check.results)

    @pytest.mark.asyncio
    async def test_compliance_logs_newest_check_first(self, repo, minor_timesheet):
        older = ComplianceLogRecord(
            "log-a", "ts-minor", "RULE-001", RuleOutcome.FAIL, {}, 13,
            datetime(2024, 6, 14, 9, tzinfo=timezone.utc),
        )
        newer = replace(older, id="log-b", rule_id="RULE-030",
                        checked_at=datetime(2024, 6, 15, 9, tzinfo=timezone.utc))
        repo.logs.extend([older, newer])

        logs = await get_compliance_logs(repo, "ts-minor")

        assert [log.id for log in logs] == ["log-b", "log-a"]

    @pytest.mark.asyncio
    async def test_compliance_logs_missing_timesheet(self, repo):
        with pytest.raises(TimesheetError):
            await get_compliance_logs(repo, "missing")


class TestReview:
    """Tests for approve, reject, reopen and unlock."""

    @pytest.mark.asyncio
    async def test_approve(self, repo, locks):
        _with_status(repo, TimesheetStatus.SUBMITTED)

        approved = await approve_timesheet(repo, locks, "ts-review", "sup-1", notes="Looks good")

        assert approved.status == TimesheetStatus.APPROVED
        assert approved.reviewed_by == "sup-1"
        assert approved.reviewed_at is not None
        assert approved.supervisor_notes == "Looks good"

    @pytest.mark.asyncio
    async def test_approve_requires_submitted(self, repo, locks):
        _with_status(repo, TimesheetStatus.OPEN)

        with pytest.raises(ReviewError) as exc_info:
            await approve_timesheet(repo, locks, "ts-review", "sup-1")

        assert exc_info.value.code == "TIMESHEET_NOT_SUBMITTED"

    @pytest.mark.asyncio
    async def test_approve_missing(self, repo, locks):
        with pytest.raises(ReviewError) as exc_info:
            await approve_timesheet(repo, locks, "missing", "sup-1")

        assert exc_info.value.code == "TIMESHEET_NOT_FOUND"

    @pytest.mark.parametrize("notes,code", [
        (None, "NOTES_REQUIRED"),
        ("   ", "NOTES_REQUIRED"),
        ("Too short", "NOTES_TOO_SHORT"),
    ])
    def test_rejection_notes_validated(self, notes, code):
        with pytest.raises(ReviewError) as exc_info:
            validate_rejection_notes(notes)

        assert exc_info.value.code == code

    def test_rejection_notes_trimmed(self):
        assert validate_rejection_notes("  Fix Monday hours  ") == "Fix Monday hours"

    @pytest.mark.asyncio
    async def test_reject_then_reopen(self, repo, locks):
        _with_status(repo, TimesheetStatus.SUBMITTED)

        rejected = await reject_timesheet(repo, locks, "ts-review", "sup-1", "Monday hours look wrong")
        reopened = await reopen_timesheet(repo, locks, "ts-review")

        assert rejected.status == TimesheetStatus.REJECTED
        assert rejected.supervisor_notes == "Monday hours look wrong"
        assert reopened.status == TimesheetStatus.OPEN
        assert reopened.supervisor_notes == "Monday hours look wrong"
        assert reopened.reviewed_by == "sup-1"

    @pytest.mark.asyncio
    async def test_reject_short_notes_leaves_status(self, repo, locks):
        _with_status(repo, TimesheetStatus.SUBMITTED)

        with pytest.raises(ReviewError):
            await reject_timesheet(repo, locks, "ts-review", "sup-1", "no")

        assert repo.timesheets["ts-review"].status == TimesheetStatus.SUBMITTED

    @pytest.mark.asyncio
    async def test_reopen_requires_rejected(self, repo, locks):
        _with_status(repo, TimesheetStatus.APPROVED)

        with pytest.raises(InvalidTransitionError):
            await reopen_timesheet(repo, locks, "ts-review")

    @pytest.mark.asyncio
    async def test_unlock_approved_week(self, repo, locks):
        _with_status(repo, TimesheetStatus.APPROVED)

        unlocked = await unlock_week(repo, locks, "emp-1", SUMMER_WEEK, "sup-1")

        assert unlocked.id == "ts-review"
        assert unlocked.status == TimesheetStatus.OPEN
        assert unlocked.reviewed_by == "sup-1"
        assert unlocked.supervisor_notes.startswith("Week unlocked by supervisor on ")

    @pytest.mark.asyncio
    async def test_unlock_creates_missing_week(self, repo, locks):
        repo.add_employee(make_employee(date(2010, 6, 20)))

        unlocked = await unlock_week(repo, locks, "emp-1", SUMMER_WEEK, "sup-1")

        assert unlocked.status == TimesheetStatus.OPEN
        assert unlocked.week_start_date == SUMMER_WEEK
        assert unlocked.supervisor_notes.startswith("Week unlocked by supervisor on ")

    @pytest.mark.asyncio
    async def test_unlock_rejects_non_sunday(self, repo, locks):
        repo.add_employee(make_employee(date(2010, 6, 20)))

        with pytest.raises(ReviewError) as exc_info:
            await unlock_week(repo, locks, "emp-1", MONDAY, "sup-1")

        assert exc_info.value.code == "INVALID_WEEK_START_DATE"

    @pytest.mark.asyncio
    async def test_unlock_unknown_employee(self, repo, locks):
        with pytest.raises(ReviewError) as exc_info:
            await unlock_week(repo, locks, "emp-none", SUMMER_WEEK, "sup-1")

        assert exc_info.value.code == "EMPLOYEE_NOT_FOUND"


class TestReviewQueue:
    """Tests for the supervisor review queue and pending count."""

    @pytest.fixture
    def queued(self, repo, harvest_task):
        repo.add_employee(make_employee(date(2010, 6, 20)))
        repo.add_employee(make_employee(date(2009, 3, 1), name="Ana Cruz", id="emp-2"))
        _submitted(repo, "ts-late", "emp-1", datetime(2024, 6, 16, 9, tzinfo=timezone.utc))
        _submitted(repo, "ts-early", "emp-2", datetime(2024, 6, 15, 18, tzinfo=timezone.utc))
        repo.add_timesheet(TimesheetInfo(id="ts-open", employee_id="emp-1", week_start_date=date(2024, 6, 16)))
        for entry in (
            make_entry(MONDAY, "09:00", "11:30"),
            make_entry(date(2024, 6, 11), "09:00", "10:00"),
        ):
            repo.entries["ts-late"][entry.id] = entry
        return repo

    @pytest.mark.asyncio
    async def test_oldest_submission_first(self, queued):
        items = await get_review_queue(queued)

        assert [item.timesheet_id for item in items] == ["ts-early", "ts-late"]
        assert items[0].employee_name == "Ana Cruz"

    @pytest.mark.asyncio
    async def test_totals_and_entry_count(self, queued):
        items = await get_review_queue(queued)

        late = items[1].to_dict()
        assert late["total_hours"] == 3.5
        assert late["entry_count"] == 2
        assert late["week_start_date"] == "2024-06-09"
        assert late["submitted_at"] == "2024-06-16T09:00:00+00:00"
        assert items[0].total_hours == 0.0
        assert items[0].entry_count == 0

    @pytest.mark.asyncio
    async def test_filter_by_employee(self, queued):
        items = await get_review_queue(queued, employee_id="emp-1")

        assert [item.timesheet_id for item in items] == ["ts-late"]

    @pytest.mark.asyncio
    async def test_pending_count_ignores_other_statuses(self, queued):
        assert await get_pending_review_count(queued) == 2

    @pytest.mark.asyncio
    async def test_empty_queue(self, repo):
        assert await get_review_queue(repo) == []
        assert await get_pending_review_count(repo) == 0


class TestGetOrCreateTimesheet:
    """Tests for get_or_create_timesheet and lookups."""

    @pytest.mark.asyncio
    async def test_creates_then_returns_existing(self, repo, locks):
        repo.add_employee(make_employee(date(2010, 6, 20)))

        first = await get_or_create_timesheet(repo, locks, "emp-1", SUMMER_WEEK)
        second = await get_or_create_timesheet(repo, locks, "emp-1", SUMMER_WEEK)

        assert first.id == second.id
        assert first.status == TimesheetStatus.OPEN
        assert len(repo.timesheets) == 1

    @pytest.mark.asyncio
    async def test_week_must_start_on_sunday(self, repo, locks):
        repo.add_employee(make_employee(date(2010, 6, 20)))

        with pytest.raises(TimesheetError) as exc_info:
            await get_or_create_timesheet(repo, locks, "emp-1", MONDAY)

        assert exc_info.value.code == "INVALID_WEEK_START_DATE"

    @pytest.mark.asyncio
    async def test_unknown_employee(self, repo, locks):
        with pytest.raises(TimesheetError) as exc_info:
            await get_or_create_timesheet(repo, locks, "emp-none", SUMMER_WEEK)

        assert exc_info.value.code == "EMPLOYEE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_get_timesheet_with_employee(self, repo, minor_timesheet):
        timesheet, employee = await get_timesheet_with_employee(repo, "ts-minor")

        assert timesheet.id == "ts-minor"
        assert employee.name == "Sam Rivera"
