"""Documentation rules: required documents must be on file and valid.

- RULE-001 parental consent required for minors
- RULE-007 parental consent not revoked
- RULE-027 work permit required for ages 14-17
- RULE-028 work permit not expired
- RULE-030 safety training required for minors
"""

from typing import Iterable, Optional

from .. import messages
from ..types import (
    AgeBand,
    ComplianceContext,
    DocumentInfo,
    DocumentType,
    RuleCategory,
    RuleResult,
)
from .base import ComplianceRule

PERMIT_BANDS = frozenset({AgeBand.AGES_14_15, AgeBand.AGES_16_17})


def newest_valid_document(
    documents: Iterable[DocumentInfo], doc_type: DocumentType
) -> Optional[DocumentInfo]:
    """Newest non-invalidated document of the given type, if any."""
    valid = [d for d in documents if d.type == doc_type and d.is_valid]
    if not valid:
        return None
    return max(valid, key=lambda d: (d.uploaded_at, d.id))


def authoritative_document(context: ComplianceContext, doc_type: DocumentType) -> Optional[DocumentInfo]:
    return newest_valid_document(context.documents, doc_type)


def requires_work_permit(context: ComplianceContext) -> bool:
    return any(14 <= age < 18 for age in context.daily_ages.values())


class ParentalConsentRule(ComplianceRule):
    id = "RULE-001"
    name = "Parental Consent Required"
    category = RuleCategory.DOCUMENTATION
    description = "Parental consent required for workers under 18"

    def evaluate(self, context: ComplianceContext) -> RuleResult:
        if not context.has_minor_band:
            return self._not_applicable(is_minor=False)

        consent = authoritative_document(context, DocumentType.PARENTAL_CONSENT)
        if consent is None:
            return self._fail(
                messages.parental_consent_missing(context.employee.name),
                messages.PARENTAL_CONSENT_REMEDIATION,
                checked_values={"has_consent": False, "employee_name": context.employee.name},
            )

        return self._pass(checked_values={
            "has_consent": True,
            "document_id": consent.id,
            "uploaded_at": consent.uploaded_at.isoformat(),
        })


class ParentalConsentNotRevokedRule(ComplianceRule):
    id = "RULE-007"
    name = "Parental Consent Not Revoked"
    category = RuleCategory.DOCUMENTATION
    description = "Parental consent must not be revoked"

    def evaluate(self, context: ComplianceContext) -> RuleResult:
        if not context.has_minor_band:
            return self._not_applicable(is_minor=False)

        revoked = [
            d for d in context.documents
            if d.type == DocumentType.PARENTAL_CONSENT and not d.is_valid
        ]
        current = authoritative_document(context, DocumentType.PARENTAL_CONSENT)

        if revoked and current is None:
            latest = max(revoked, key=lambda d: d.invalidated_at)
            return self._fail(
                messages.CONSENT_REVOKED,
                messages.CONSENT_REVOKED_REMEDIATION,
                checked_values={
                    "revoked_at": latest.invalidated_at.isoformat(),
                    "has_valid_replacement": False,
                },
            )

        return self._pass(checked_values={"has_valid_consent": current is not None})


class WorkPermitRequiredRule(ComplianceRule):
    id = "RULE-027"
    name = "Work Permit Required"
    category = RuleCategory.DOCUMENTATION
    description = "Work permit required for workers ages 14-17"
    applies_to_age_bands = PERMIT_BANDS

    def evaluate(self, context: ComplianceContext) -> RuleResult:
        if not requires_work_permit(context):
            return self._not_applicable(requires_permit=False)

        max_age = max(context.daily_ages.values())
        permit = authoritative_document(context, DocumentType.WORK_PERMIT)
        if permit is None:
            return self._fail(
                messages.work_permit_missing(max_age),
                messages.WORK_PERMIT_REMEDIATION,
                checked_values={"has_permit": False, "age": max_age},
            )

        return self._pass(checked_values={"has_permit": True, "document_id": permit.id})


class WorkPermitNotExpiredRule(ComplianceRule):
    id = "RULE-028"
    name = "Work Permit Not Expired"
    category = RuleCategory.DOCUMENTATION
    description = "Work permit must not be expired"
    applies_to_age_bands = PERMIT_BANDS

    def evaluate(self, context: ComplianceContext) -> RuleResult:
        if not requires_work_permit(context):
            return self._not_applicable(requires_permit=False)

        permit = authoritative_document(context, DocumentType.WORK_PERMIT)
        # Missing permit is reported by RULE-027.
        if permit is None:
            return self._not_applicable(has_permit=False)

        if permit.expires_at is not None and permit.expires_at < context.check_date:
            return self._fail(
                messages.work_permit_expired(permit.expires_at),
                messages.WORK_PERMIT_EXPIRED_REMEDIATION,
                checked_values={
                    "expires_at": permit.expires_at.isoformat(),
                    "check_date": context.check_date.isoformat(),
                },
            )

        return self._pass(checked_values={
            "expires_at": permit.expires_at.isoformat() if permit.expires_at else None,
            "is_valid": True,
        })


class SafetyTrainingRule(ComplianceRule):
    id = "RULE-030"
    name = "Safety Training Required"
    category = RuleCategory.DOCUMENTATION
    description = "Safety training required for workers under 18"

    def evaluate(self, context: ComplianceContext) -> RuleResult:
        if not context.has_minor_band:
            return self._not_applicable(is_minor=False)

        training = authoritative_document(context, DocumentType.SAFETY_TRAINING)
        if training is None:
            return self._fail(
                messages.SAFETY_TRAINING_MISSING,
                messages.SAFETY_TRAINING_REMEDIATION,
                checked_values={"has_training": False},
            )

        return self._pass(checked_values={"has_training": True, "document_id": training.id})


DOCUMENTATION_RULES = [
    ParentalConsentRule,
    ParentalConsentNotRevokedRule,
    WorkPermitRequiredRule,
    WorkPermitNotExpiredRule,
    SafetyTrainingRule,
]
