"""Which documents a worker needs on file, and which are missing or expiring."""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from compliance.age import age_band, age_on_date
from compliance.context import DEFAULT_TIMEZONE
from compliance.rules.documentation import newest_valid_document
from compliance.types import AgeBand, DocumentInfo, DocumentType
from services.repository import TimesheetRepository
from utils.time import today_in_zone

logger = logging.getLogger(__name__)

EXPIRY_WARNING_DAYS = 30


class DocumentationError(Exception):
    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.message = message
        self.code = code  # EMPLOYEE_NOT_FOUND


@dataclass(frozen=True)
class RequiredDocuments:
    parental_consent: bool
    work_permit: bool
    safety_training: bool
    coppa_disclosure: bool

    @property
    def types(self) -> list[DocumentType]:
        required = []
        if self.parental_consent:
            required.append(DocumentType.PARENTAL_CONSENT)
        if self.work_permit:
            required.append(DocumentType.WORK_PERMIT)
        if self.safety_training:
            required.append(DocumentType.SAFETY_TRAINING)
        return required

    def to_dict(self) -> dict:
        return {
            "parental_consent": self.parental_consent,
            "work_permit": self.work_permit,
            "safety_training": self.safety_training,
            "coppa_disclosure": self.coppa_disclosure,
        }


def required_documents(age: int) -> RequiredDocuments:
    """
    Documents a worker of ``age`` must have on file.

    12-13 need consent (with the COPPA disclosure) and safety training,
    14-17 also need a work permit, adults need nothing.

    Raises:
        BelowMinimumAgeError: age under 12
    """
    band = age_band(age)
    if band == AgeBand.AGES_12_13:
        return RequiredDocuments(
            parental_consent=True, work_permit=False, safety_training=True, coppa_disclosure=True
        )
    if band == AgeBand.ADULT:
        return RequiredDocuments(
            parental_consent=False, work_permit=False, safety_training=False, coppa_disclosure=False
        )
    return RequiredDocuments(
        parental_consent=True, work_permit=True, safety_training=True, coppa_disclosure=False
    )


@dataclass(frozen=True)
class ExpiringDocument:
    type: DocumentType
    expires_at: date
    days_until_expiry: int

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "expires_at": self.expires_at.isoformat(),
            "days_until_expiry": self.days_until_expiry,
        }


@dataclass(frozen=True)
class DocumentationStatus:
    employee_id: str
    age: int
    as_of: date
    required: RequiredDocuments
    missing_documents: list[DocumentType] = field(default_factory=list)
    expiring_documents: list[ExpiringDocument] = field(default_factory=list)
    has_valid_consent: bool = True
    has_valid_work_permit: Optional[bool] = None
    safety_training_complete: bool = True

    @property
    def is_complete(self) -> bool:
        return not self.missing_documents

    def to_dict(self) -> dict:
        return {
            "employee_id": self.employee_id,
            "age": self.age,
            "as_of": self.as_of.isoformat(),
            "is_complete": self.is_complete,
            "required": self.required.to_dict(),
            "missing_documents": [t.value for t in self.missing_documents],
            "expiring_documents": [d.to_dict() for d in self.expiring_documents],
            "has_valid_consent": self.has_valid_consent,
            "has_valid_work_permit": self.has_valid_work_permit,
            "safety_training_complete": self.safety_training_complete,
        }


def current_documents(documents: list[DocumentInfo], as_of: date) -> dict[DocumentType, DocumentInfo]:
    """Newest valid document per type, dropped when it expired before ``as_of``."""
    current = {}
    for doc_type in DocumentType:
        doc = newest_valid_document(documents, doc_type)
        if doc is None or (doc.expires_at is not None and doc.expires_at < as_of):
            continue
        current[doc_type] = doc
    return current


def evaluate_documentation(
    employee_id: str, age: int, documents: list[DocumentInfo], as_of: date
) -> DocumentationStatus:
    required = required_documents(age)
    current = current_documents(documents, as_of)

    missing = [t for t in required.types if t not in current]

    warn_until = as_of + timedelta(days=EXPIRY_WARNING_DAYS)
    expiring = [
        ExpiringDocument(doc_type, doc.expires_at, (doc.expires_at - as_of).days)
        for doc_type, doc in current.items()
        if doc.expires_at is not None and doc.expires_at <= warn_until
    ]

    return DocumentationStatus(
        employee_id=employee_id,
        age=age,
        as_of=as_of,
        required=required,
        missing_documents=missing,
        expiring_documents=expiring,
        has_valid_consent=DocumentType.PARENTAL_CONSENT in current or not required.parental_consent,
        has_valid_work_permit=(DocumentType.WORK_PERMIT in current) if required.work_permit else None,
        safety_training_complete=DocumentType.SAFETY_TRAINING in current or not required.safety_training,
    )


async def get_documentation_status(
    repo: TimesheetRepository,
    employee_id: str,
    as_of: Optional[date] = None,
    timezone_name: str = DEFAULT_TIMEZONE,
) -> DocumentationStatus:
    """
    Documentation status of an employee on ``as_of`` (today in ``timezone_name`` by default).

    Raises:
        DocumentationError: employee missing
        BelowMinimumAgeError: employee is under 12 on ``as_of``
    """
    employee = await repo.get_employee(employee_id)
    if employee is None:
        raise DocumentationError("Employee not found", "EMPLOYEE_NOT_FOUND")

    if as_of is None:
        as_of = today_in_zone(timezone_name)
    age = age_on_date(employee.date_of_birth, as_of)
    documents = await repo.list_documents(employee_id)

    status = evaluate_documentation(employee_id, age, documents, as_of)
    if not status.is_complete:
        missing = ", ".join(t.value for t in status.missing_documents)
        logger.debug(f"Employee {employee_id} is missing documents: {missing}")
    return status

