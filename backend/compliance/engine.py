"""Compliance rule engine that evaluates a rule set against a context."""

import logging

from . import messages
from .registry import RuleSet
from .rules import ComplianceRule
from .types import (
    ComplianceCheckResult,
    ComplianceContext,
    ComplianceViolation,
    RuleDetails,
    RuleOutcome,
    RuleResult,
)
from utils import utc_now

logger = logging.getLogger(__name__)


class ComplianceError(Exception):
    """Raised when a compliance check cannot be run at all."""

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code  # TIMESHEET_NOT_FOUND | EMPLOYEE_NOT_FOUND | ENGINE_ERROR


class ComplianceEngine:
    """
    Main engine for running compliance rules.

    Holds an injected RuleSet; evaluation is a pure function of the context.
    """

    def __init__(self, rule_set: RuleSet):
        self.rule_set = rule_set

    def evaluate(
        self, context: ComplianceContext, stop_on_first_failure: bool = False
    ) -> ComplianceCheckResult:
        """
        Run every applicable rule.

        Args:
            context: Frozen snapshot built by ``build_context``
            stop_on_first_failure: Stop after the first failing rule (in rule id order)

        Returns:
            ComplianceCheckResult with results ordered by rule id

        Raises:
            ComplianceError: ENGINE_ERROR when the rule set is empty
        """
        check = self._run(context, stop_on_first_failure)
        logger.info(
            f"Compliance check for timesheet {check.timesheet_id}: "
            f"{len(check.results)} rules evaluated, {check.fail_count} failed"
        )
        return check

    def validate(self, context: ComplianceContext) -> tuple[bool, list[ComplianceViolation]]:
        """Evaluate for a preview: only failures are returned and the run is logged at debug."""
        check = self._run(context)
        logger.debug(
            f"Compliance preview for timesheet {check.timesheet_id}: {check.fail_count} failed"
        )
        return check.passed, check.violations

    def _run(
        self, context: ComplianceContext, stop_on_first_failure: bool = False
    ) -> ComplianceCheckResult:
        if not len(self.rule_set):
            raise ComplianceError("No compliance rules are loaded", "ENGINE_ERROR")

        applicable = sorted(self.rule_set.filter_applicable(context), key=lambda r: r.id)

        results: list[RuleResult] = []
        for rule in applicable:
            result = self._evaluate_rule(rule, context)
            results.append(result)
            if stop_on_first_failure and result.failed:
                break

        return _aggregate(context, results)

    @staticmethod
    def _evaluate_rule(rule: ComplianceRule, context: ComplianceContext) -> RuleResult:
        try:
            return rule.evaluate(context)
        except Exception as e:
            logger.exception(f"Rule {rule.id} raised during evaluation")
            return RuleResult(
                rule_id=rule.id,
                rule_name=rule.name,
                result=RuleOutcome.FAIL,
                details=RuleDetails(
                    description=rule.name,
                    message=f"Rule evaluation error: {e}",
                ),
                error_message=messages.RULE_ERROR_MESSAGE,
                remediation=messages.RULE_ERROR_REMEDIATION,
            )


def _aggregate(context: ComplianceContext, results: list[RuleResult]) -> ComplianceCheckResult:
    failed = [r for r in results if r.result == RuleOutcome.FAIL]
    return ComplianceCheckResult(
        passed=not failed,
        timesheet_id=context.timesheet.id,
        employee_id=context.employee.id,
        checked_at=utc_now(),
        results=results,
        failed_rules=failed,
        passed_rules=[r for r in results if r.result == RuleOutcome.PASS],
        not_applicable_rules=[r for r in results if r.result == RuleOutcome.NOT_APPLICABLE],
        violations=to_violations(failed),
    )


def to_violations(failed_rules: list[RuleResult]) -> list[ComplianceViolation]:
    return [
        ComplianceViolation(
            rule_id=r.rule_id,
            rule_name=r.rule_name,
            message=r.error_message or r.details.message or messages.DEFAULT_VIOLATION_MESSAGE,
            remediation=r.remediation or messages.DEFAULT_VIOLATION_REMEDIATION,
            affected_dates=list(r.details.affected_dates),
            affected_entries=list(r.details.affected_entries),
        )
        for r in failed_rules
    ]


def audit_rows(check: ComplianceCheckResult, context: ComplianceContext) -> list[dict]:
    """One audit row per evaluated rule, including not-applicable ones.

    The recorded age is the age on the first day of the week.
    """
    start_age = context.daily_ages.get(context.timesheet.week_start_date, 0)
    return [
        {
            "timesheet_id": check.timesheet_id,
            "rule_id": r.rule_id,
            "result": r.result.value,
            "details": r.details.to_dict(),
            "employee_age_on_date": start_age,
            "checked_at": check.checked_at,
        }
        for r in check.results
    ]
