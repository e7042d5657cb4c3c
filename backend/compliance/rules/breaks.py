from .. import messages
from ..types import ComplianceContext, RuleCategory, RuleResult
from .base import ComplianceRule

MEAL_BREAK_AFTER_HOURS = 6


class MealBreakRule(ComplianceRule):
    """A minor working more than 6 hours in a day must confirm a 30-minute meal break."""

    id = "RULE-025"
    name = "Meal Break Required"
    category = RuleCategory.BREAK
    description = "30-minute meal break required for minors working more than 6 hours"

    def evaluate(self, context: ComplianceContext) -> RuleResult:
        if not context.has_minor_band:
            return self._not_applicable(is_minor=False)

        violations = []
        for day in sorted(context.daily_hours):
            age = context.daily_ages.get(day)
            if age is None or age >= 18:
                continue
            hours = context.daily_hours[day]
            if hours <= MEAL_BREAK_AFTER_HOURS:
                continue
            entries = context.daily_entries.get(day, ())
            if not any(e.meal_break_confirmed for e in entries):
                violations.append((day, hours, [e.id for e in entries]))

        if not violations:
            return self._pass()

        first_day, first_hours, _ = violations[0]
        return self._fail(
            messages.meal_break_missing(first_day, first_hours),
            messages.MEAL_BREAK_REMEDIATION,
            checked_values={
                "violations": [
                    {"date": d.isoformat(), "hours": h, "entry_ids": ids}
                    for d, h, ids in violations
                ]
            },
            affected_dates=[d.isoformat() for d, _, _ in violations],
            affected_entries=[i for _, _, ids in violations for i in ids],
        )


BREAK_RULES = [MealBreakRule]
