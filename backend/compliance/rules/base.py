"""Base class shared by every compliance rule."""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, ClassVar, Iterator, Optional

from ..types import (
    AgeBand,
    ComplianceContext,
    EntryInfo,
    MINOR_BANDS,
    RuleCategory,
    RuleDetails,
    RuleOutcome,
    RuleResult,
)


@dataclass(frozen=True)
class EntryViolation:
    """One offending entry, as recorded in a rule's checked values."""
    date: date
    entry_id: str
    start_time: str
    end_time: str
    age: Optional[int] = None
    task_code: Optional[str] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        return {k: v for k, v in data.items() if v is not None}


class ComplianceRule(ABC):
    """A named, age-band-scoped predicate over a ComplianceContext.

    Subclasses set the class attributes and implement ``evaluate``. An empty
    ``applies_to_age_bands`` means the rule applies to every band.
    """

    id: ClassVar[str]
    name: ClassVar[str]
    category: ClassVar[RuleCategory]
    description: ClassVar[str] = ""
    applies_to_age_bands: ClassVar[frozenset[AgeBand]] = MINOR_BANDS

    @abstractmethod
    def evaluate(self, context: ComplianceContext) -> RuleResult:
        """Evaluate the rule; never mutates the context."""
        pass

    def applies_to(self, bands: frozenset[AgeBand]) -> bool:
        return not self.applies_to_age_bands or bool(self.applies_to_age_bands & bands)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "description": self.description,
            "applies_to_age_bands": sorted(b.value for b in self.applies_to_age_bands),
        }

    def _details(self, **kwargs: Any) -> RuleDetails:
        return RuleDetails(description=self.description, **kwargs)

    def _pass(self, **details: Any) -> RuleResult:
        return RuleResult(self.id, self.name, RuleOutcome.PASS, self._details(**details))

    def _not_applicable(self, **checked_values: Any) -> RuleResult:
        return RuleResult(
            self.id,
            self.name,
            RuleOutcome.NOT_APPLICABLE,
            self._details(checked_values=checked_values),
        )

    def _fail(self, message: str, remediation: str, **details: Any) -> RuleResult:
        return RuleResult(
            self.id,
            self.name,
            RuleOutcome.FAIL,
            self._details(message=message, **details),
            error_message=message,
            remediation=remediation,
        )

    def _fail_for_entries(
        self, violations: list[EntryViolation], message: str, remediation: str
    ) -> RuleResult:
        return self._fail(
            message,
            remediation,
            checked_values={"violations": [v.to_dict() for v in violations]},
            affected_dates=_unique_dates(v.date for v in violations),
            affected_entries=[v.entry_id for v in violations],
        )


def entries_in_band(context: ComplianceContext, band: AgeBand) -> Iterator[tuple[date, EntryInfo]]:
    """Yield (date, entry) for days on which the worker was in ``band``, in date order."""
    for day in sorted(context.daily_entries):
        if context.daily_age_bands.get(day) != band:
            continue
        for entry in context.daily_entries[day]:
            yield day, entry


def entries_while_minor(
    context: ComplianceContext, under: int = 18
) -> Iterator[tuple[date, int, EntryInfo]]:
    """Yield (date, age, entry) for days on which the worker was younger than ``under``."""
    for day in sorted(context.daily_entries):
        age = context.daily_ages.get(day)
        if age is None or age >= under:
            continue
        for entry in context.daily_entries[day]:
            yield day, age, entry


def day_is_school_day(context: ComplianceContext, day: date) -> bool:
    return any(e.is_school_day for e in context.daily_entries.get(day, ()))


def _unique_dates(days) -> list[str]:
    seen: list[str] = []
    for day in days:
        iso = day.isoformat()
        if iso not in seen:
            seen.append(iso)
    return seen
