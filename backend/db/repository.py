"""Beanie-backed TimesheetRepository."""

import logging
from datetime import date, datetime
from typing import Optional

from beanie import PydanticObjectId
from beanie.operators import In
from bson.errors import InvalidId

from compliance.types import (
    DocumentInfo,
    EmployeeInfo,
    EntryInfo,
    RuleOutcome,
    TaskCodeInfo,
    TimesheetInfo,
    TimesheetStatus,
)
from services.repository import ComplianceLogRecord, EntryRecord
from utils import utc_now

from .database import get_client
from .models import (
    ComplianceCheckLogDoc,
    EmployeeDoc,
    EmployeeDocumentDoc,
    TaskCodeDoc,
    TimesheetDoc,
    TimesheetEntryDoc,
)

logger = logging.getLogger(__name__)


def _object_id(value: str) -> Optional[PydanticObjectId]:
    try:
        return PydanticObjectId(value)
    except (InvalidId, TypeError):
        return None


def employee_info(doc: EmployeeDoc) -> EmployeeInfo:
    return EmployeeInfo(
        id=str(doc.id),
        name=doc.name,
        date_of_birth=doc.date_of_birth,
        is_supervisor=doc.is_supervisor,
    )


def document_info(doc: EmployeeDocumentDoc) -> DocumentInfo:
    return DocumentInfo(
        id=str(doc.id),
        type=doc.type,
        uploaded_at=doc.uploaded_at,
        expires_at=doc.expires_at,
        invalidated_at=doc.invalidated_at,
    )


def task_code_info(doc: TaskCodeDoc) -> TaskCodeInfo:
    return TaskCodeInfo(
        id=str(doc.id),
        code=doc.code,
        name=doc.name,
        min_age_allowed=doc.min_age_allowed,
        is_hazardous=doc.is_hazardous,
        supervisor_required=doc.supervisor_required,
        is_agricultural=doc.is_agricultural,
        power_machinery=doc.power_machinery,
        driving_required=doc.driving_required,
        solo_cash_handling=doc.solo_cash_handling,
    )


def timesheet_info(doc: TimesheetDoc) -> TimesheetInfo:
    return TimesheetInfo(
        id=str(doc.id),
        employee_id=doc.employee_id,
        week_start_date=date.fromisoformat(doc.week_start_date),
        status=doc.status,
        submitted_at=doc.submitted_at,
        reviewed_at=doc.reviewed_at,
        reviewed_by=doc.reviewed_by,
        supervisor_notes=doc.supervisor_notes,
    )


def entry_info(doc: TimesheetEntryDoc, task_code: TaskCodeInfo) -> EntryInfo:
    return EntryInfo(
        id=str(doc.id),
        work_date=date.fromisoformat(doc.work_date),
        start_time=doc.start_time,
        end_time=doc.end_time,
        hours=doc.hours,
        is_school_day=doc.is_school_day,
        task_code=task_code,
        supervisor_present_name=doc.supervisor_present_name,
        meal_break_confirmed=doc.meal_break_confirmed,
        school_day_override_note=doc.school_day_override_note,
    )


class BeanieTimesheetRepository:
    """
    MongoDB persistence for the timesheet services.

    ``record_submission`` uses a multi-document transaction, which requires
    MongoDB running as a replica set.
    """

    async def get_employee(self, employee_id: str) -> Optional[EmployeeInfo]:
        oid = _object_id(employee_id)
        doc = await EmployeeDoc.get(oid) if oid else None
        return employee_info(doc) if doc else None

    async def list_documents(self, employee_id: str) -> list[DocumentInfo]:
        docs = await EmployeeDocumentDoc.find(
            EmployeeDocumentDoc.employee_id == employee_id
        ).to_list()
        return [document_info(d) for d in docs]

    async def get_task_code(self, task_code_id: str) -> Optional[TaskCodeInfo]:
        oid = _object_id(task_code_id)
        doc = await TaskCodeDoc.get(oid) if oid else None
        return task_code_info(doc) if doc else None

    async def _timesheet_doc(self, timesheet_id: str) -> Optional[TimesheetDoc]:
        oid = _object_id(timesheet_id)
        return await TimesheetDoc.get(oid) if oid else None

    async def get_timesheet(self, timesheet_id: str) -> Optional[TimesheetInfo]:
        doc = await self._timesheet_doc(timesheet_id)
        return timesheet_info(doc) if doc else None

    async def find_timesheet(self, employee_id: str, week_start_date: date) -> Optional[TimesheetInfo]:
        doc = await TimesheetDoc.find_one(
            TimesheetDoc.employee_id == employee_id,
            TimesheetDoc.week_start_date == week_start_date.isoformat(),
        )
        return timesheet_info(doc) if doc else None

    async def create_timesheet(
        self, employee_id: str, week_start_date: date, supervisor_notes: Optional[str] = None
    ) -> TimesheetInfo:
        doc = TimesheetDoc(
            employee_id=employee_id,
            week_start_date=week_start_date.isoformat(),
            supervisor_notes=supervisor_notes,
        )
        await doc.insert()
        return timesheet_info(doc)

    async def update_timesheet(
        self,
        timesheet_id: str,
        status: TimesheetStatus,
        reviewed_by: Optional[str] = None,
        reviewed_at: Optional[datetime] = None,
        supervisor_notes: Optional[str] = None,
    ) -> TimesheetInfo:
        doc = await self._timesheet_doc(timesheet_id)
        if doc is None:
            raise LookupError(f"Timesheet {timesheet_id} not found")
        doc.status = status
        doc.reviewed_by = reviewed_by
        doc.reviewed_at = reviewed_at
        doc.supervisor_notes = supervisor_notes
        doc.updated_at = utc_now()
        await doc.save()
        return timesheet_info(doc)

    async def list_timesheets(
        self, status: TimesheetStatus, employee_id: Optional[str] = None
    ) -> list[TimesheetInfo]:
        conditions = [TimesheetDoc.status == status]
        if employee_id is not None:
            conditions.append(TimesheetDoc.employee_id == employee_id)
        docs = await TimesheetDoc.find(*conditions).sort("+submitted_at").to_list()
        return [timesheet_info(d) for d in docs]

    async def count_timesheets(self, status: TimesheetStatus) -> int:
        return await TimesheetDoc.find(TimesheetDoc.status == status).count()

    async def list_entries(self, timesheet_id: str) -> list[EntryInfo]:
        docs = await TimesheetEntryDoc.find(
            TimesheetEntryDoc.timesheet_id == timesheet_id
        ).sort("+work_date", "+start_time").to_list()
        if not docs:
            return []

        task_ids = {_object_id(d.task_code_id) for d in docs} - {None}
        task_docs = await TaskCodeDoc.find(In(TaskCodeDoc.id, list(task_ids))).to_list()
        tasks = {str(t.id): task_code_info(t) for t in task_docs}

        entries = []
        for doc in docs:
            task = tasks.get(doc.task_code_id)
            if task is None:
                raise RuntimeError(f"Task code {doc.task_code_id} referenced by entry {doc.id} is missing")
            entries.append(entry_info(doc, task))
        return entries

    async def _entry_doc(self, timesheet_id: str, entry_id: str) -> TimesheetEntryDoc:
        oid = _object_id(entry_id)
        doc = await TimesheetEntryDoc.get(oid) if oid else None
        if doc is None or doc.timesheet_id != timesheet_id:
            raise LookupError(f"Entry {entry_id} not found on timesheet {timesheet_id}")
        return doc

    async def insert_entry(self, timesheet_id: str, record: EntryRecord) -> EntryInfo:
        doc = TimesheetEntryDoc(
            timesheet_id=timesheet_id,
            work_date=record.work_date.isoformat(),
            task_code_id=record.task_code_id,
            start_time=record.start_time,
            end_time=record.end_time,
            hours=record.hours,
            is_school_day=record.is_school_day,
            school_day_override_note=record.school_day_override_note,
            supervisor_present_name=record.supervisor_present_name,
            meal_break_confirmed=record.meal_break_confirmed,
        )
        await doc.insert()
        return entry_info(doc, await self._task_for(record.task_code_id))

    async def replace_entry(self, timesheet_id: str, entry_id: str, record: EntryRecord) -> EntryInfo:
        doc = await self._entry_doc(timesheet_id, entry_id)
        doc.work_date = record.work_date.isoformat()
        doc.task_code_id = record.task_code_id
        doc.start_time = record.start_time
        doc.end_time = record.end_time
        doc.hours = record.hours
        doc.is_school_day = record.is_school_day
        doc.school_day_override_note = record.school_day_override_note
        doc.supervisor_present_name = record.supervisor_present_name
        doc.meal_break_confirmed = record.meal_break_confirmed
        doc.updated_at = utc_now()
        await doc.save()
        return entry_info(doc, await self._task_for(record.task_code_id))

    async def delete_entry(self, timesheet_id: str, entry_id: str) -> None:
        doc = await self._entry_doc(timesheet_id, entry_id)
        await doc.delete()

    async def _task_for(self, task_code_id: str) -> TaskCodeInfo:
        task = await self.get_task_code(task_code_id)
        if task is None:
            raise RuntimeError(f"Task code {task_code_id} is missing")
        return task

    async def record_submission(
        self,
        timesheet_id: str,
        audit_rows: list[dict],
        submitted_at: Optional[datetime] = None,
    ) -> TimesheetInfo:
        doc = await self._timesheet_doc(timesheet_id)
        if doc is None:
            raise LookupError(f"Timesheet {timesheet_id} not found")

        logs = [ComplianceCheckLogDoc(**row) for row in audit_rows]

        async with await get_client().start_session() as session:
            async with session.start_transaction():
                if logs:
                    await ComplianceCheckLogDoc.insert_many(logs, session=session)
                if submitted_at is not None:
                    doc.status = TimesheetStatus.SUBMITTED
                    doc.submitted_at = submitted_at
                    doc.updated_at = utc_now()
                    await doc.save(session=session)

        logger.debug(f"Stored {len(logs)} compliance log rows for timesheet {timesheet_id}")
        return timesheet_info(doc)

    async def list_check_logs(self, timesheet_id: str) -> list[ComplianceLogRecord]:
        logs = await ComplianceCheckLogDoc.find(
            ComplianceCheckLogDoc.timesheet_id == timesheet_id
        ).sort("-checked_at", "+rule_id").to_list()
        doc = await self._timesheet_doc(timesheet_id)
        return [self._log_record(log, {timesheet_id: doc} if doc else {}, {}) for log in logs]

    async def find_check_logs(
        self,
        checked_from: datetime,
        checked_to: datetime,
        employee_id: Optional[str] = None,
        rule_id: Optional[str] = None,
        result: Optional[RuleOutcome] = None,
    ) -> list[ComplianceLogRecord]:
        conditions = [
            ComplianceCheckLogDoc.checked_at >= checked_from,
            ComplianceCheckLogDoc.checked_at < checked_to,
        ]
        if employee_id:
            own = await TimesheetDoc.find(TimesheetDoc.employee_id == employee_id).to_list()
            conditions.append(In(ComplianceCheckLogDoc.timesheet_id, [str(t.id) for t in own]))
        if rule_id:
            conditions.append(ComplianceCheckLogDoc.rule_id == rule_id)
        if result:
            conditions.append(ComplianceCheckLogDoc.result == result)

        logs = await ComplianceCheckLogDoc.find(*conditions).sort("-checked_at").to_list()
        if not logs:
            return []

        timesheet_ids = {_object_id(log.timesheet_id) for log in logs} - {None}
        timesheets = {
            str(t.id): t
            for t in await TimesheetDoc.find(In(TimesheetDoc.id, list(timesheet_ids))).to_list()
        }
        employee_ids = {_object_id(t.employee_id) for t in timesheets.values()} - {None}
        employees = {
            str(e.id): e
            for e in await EmployeeDoc.find(In(EmployeeDoc.id, list(employee_ids))).to_list()
        }
        return [self._log_record(log, timesheets, employees) for log in logs]

    @staticmethod
    def _log_record(
        log: ComplianceCheckLogDoc,
        timesheets: dict[str, TimesheetDoc],
        employees: dict[str, EmployeeDoc],
    ) -> ComplianceLogRecord:
        timesheet = timesheets.get(log.timesheet_id)
        employee = employees.get(timesheet.employee_id) if timesheet else None
        return ComplianceLogRecord(
            id=str(log.id),
            timesheet_id=log.timesheet_id,
            rule_id=log.rule_id,
            result=log.result,
            details=log.details,
            employee_age_on_date=log.employee_age_on_date,
            checked_at=log.checked_at,
            employee_id=timesheet.employee_id if timesheet else None,
            employee_name=employee.name if employee else None,
            week_start_date=date.fromisoformat(timesheet.week_start_date) if timesheet else None,
        )
