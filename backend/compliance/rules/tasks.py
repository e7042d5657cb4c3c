"""Task restriction rules, checked against the worker's age on each work date."""

from abc import abstractmethod
from typing import ClassVar

from .. import messages
from ..types import AgeBand, ComplianceContext, EntryInfo, RuleCategory, RuleResult
from .base import ComplianceRule, EntryViolation, entries_while_minor


def _violation(day, age: int, entry: EntryInfo) -> EntryViolation:
    return EntryViolation(
        day, entry.id, entry.start_time, entry.end_time, age=age, task_code=entry.task_code.code
    )


class TaskFlagRule(ComplianceRule):
    """Fail when a minor logs a task for which ``is_prohibited`` is true."""

    category = RuleCategory.TASK
    under_age: ClassVar[int] = 18
    remediation: ClassVar[str] = ""

    @abstractmethod
    def is_prohibited(self, entry: EntryInfo, age: int) -> bool:
        pass

    @abstractmethod
    def message(self, entry: EntryInfo, violation: EntryViolation) -> str:
        pass

    def evaluate(self, context: ComplianceContext) -> RuleResult:
        if not context.has_minor_band:
            return self._not_applicable(is_minor=False)

        offending = [
            (entry, _violation(day, age, entry))
            for day, age, entry in entries_while_minor(context, under=self.under_age)
            if self.is_prohibited(entry, age)
        ]
        if not offending:
            return self._pass()

        first_entry, first = offending[0]
        return self._fail_for_entries(
            [v for _, v in offending],
            self.message(first_entry, first),
            self.remediation,
        )


class TaskAgeRestrictionRule(TaskFlagRule):
    id = "RULE-005"
    name = "Task Age Restriction"
    description = "Task codes have minimum age requirements"
    remediation = messages.TASK_AGE_REMEDIATION

    def is_prohibited(self, entry: EntryInfo, age: int) -> bool:
        return age < entry.task_code.min_age_allowed

    def message(self, entry: EntryInfo, violation: EntryViolation) -> str:
        task = entry.task_code
        return messages.task_age_restricted(
            task.code, task.name, task.min_age_allowed, violation.age, violation.date
        )


class PowerMachineryRule(TaskFlagRule):
    id = "RULE-020"
    name = "Power Machinery Prohibition"
    description = "Power machinery prohibited for workers under 18"
    remediation = messages.POWER_MACHINERY_REMEDIATION

    def is_prohibited(self, entry: EntryInfo, age: int) -> bool:
        return entry.task_code.power_machinery

    def message(self, entry: EntryInfo, violation: EntryViolation) -> str:
        return messages.power_machinery(entry.task_code.code, entry.task_code.name)


class DrivingRule(TaskFlagRule):
    id = "RULE-021"
    name = "Driving Prohibition"
    description = "Driving prohibited for workers under 18"
    remediation = messages.DRIVING_REMEDIATION

    def is_prohibited(self, entry: EntryInfo, age: int) -> bool:
        return entry.task_code.driving_required

    def message(self, entry: EntryInfo, violation: EntryViolation) -> str:
        return messages.driving(entry.task_code.code, entry.task_code.name)


class SoloCashHandlingRule(TaskFlagRule):
    id = "RULE-022"
    name = "Solo Cash Handling Prohibition"
    description = "Solo cash handling prohibited for workers under 14"
    applies_to_age_bands = frozenset({AgeBand.AGES_12_13})
    remediation = messages.SOLO_CASH_REMEDIATION
    under_age = 14

    def is_prohibited(self, entry: EntryInfo, age: int) -> bool:
        return entry.task_code.solo_cash_handling

    def message(self, entry: EntryInfo, violation: EntryViolation) -> str:
        return messages.solo_cash_handling(entry.task_code.code, entry.task_code.name, violation.age)


class HazardousTaskRule(TaskFlagRule):
    id = "RULE-024"
    name = "Hazardous Task Prohibition"
    description = "Hazardous tasks prohibited for workers under 18"
    remediation = messages.HAZARDOUS_REMEDIATION

    def is_prohibited(self, entry: EntryInfo, age: int) -> bool:
        return entry.task_code.is_hazardous

    def message(self, entry: EntryInfo, violation: EntryViolation) -> str:
        return messages.hazardous_task(entry.task_code.code, entry.task_code.name)


class SupervisorAttestationRule(TaskFlagRule):
    id = "RULE-029"
    name = "Supervisor Attestation Required"
    description = "Certain tasks require supervisor presence attestation for minors"
    remediation = messages.SUPERVISOR_REMEDIATION

    def is_prohibited(self, entry: EntryInfo, age: int) -> bool:
        if not entry.task_code.requires_supervisor(age):
            return False
        return not (entry.supervisor_present_name or "").strip()

    def message(self, entry: EntryInfo, violation: EntryViolation) -> str:
        return messages.supervisor_missing(entry.task_code.code, entry.task_code.name, violation.date)


TASK_RULES = [
    TaskAgeRestrictionRule,
    PowerMachineryRule,
    DrivingRule,
    SoloCashHandlingRule,
    HazardousTaskRule,
    SupervisorAttestationRule,
]
