"""Rule sets: an explicit, injectable collection of compliance rules."""

from typing import Iterable, Optional

from .rules import ALL_RULE_CLASSES, ComplianceRule
from .types import ComplianceContext


class DuplicateRuleError(ValueError):
    pass


class RuleSet:
    """Ordered collection of rules keyed by rule id.

    Construct one per application (or per test) and pass it to the engine;
    nothing here is module-level state.
    """

    def __init__(self, rules: Optional[Iterable[ComplianceRule]] = None):
        self._rules: dict[str, ComplianceRule] = {}
        if rules is not None:
            self.register_all(rules)

    def register(self, rule: ComplianceRule) -> None:
        if rule.id in self._rules:
            raise DuplicateRuleError(f"Rule {rule.id} is already registered")
        self._rules[rule.id] = rule

    def register_all(self, rules: Iterable[ComplianceRule]) -> None:
        for rule in rules:
            self.register(rule)

    def clear(self) -> None:
        self._rules.clear()

    def list_rules(self) -> list[ComplianceRule]:
        return list(self._rules.values())

    def get(self, rule_id: str) -> Optional[ComplianceRule]:
        return self._rules.get(rule_id)

    def filter_applicable(self, context: ComplianceContext) -> list[ComplianceRule]:
        return filter_applicable_rules(self._rules.values(), context)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._rules


def filter_applicable_rules(
    rules: Iterable[ComplianceRule], context: ComplianceContext
) -> list[ComplianceRule]:
    """Keep rules scoped to any age band the worker occupies during the week.

    Uses the union of the per-day bands, so a birthday week picks up the rules
    of both the old and the new band.
    """
    bands = context.age_bands_in_week
    return [rule for rule in rules if rule.applies_to(bands)]


def default_rule_set() -> RuleSet:
    """Fresh RuleSet holding the full catalog."""
    return RuleSet(rule_cls() for rule_cls in ALL_RULE_CLASSES)
