"""Hour limit rules by age band.

Only the days on which the worker was in the rule's band are counted, so a
birthday week is split between the two bands' limits.
"""

from typing import Callable, ClassVar, Optional

from .. import messages
from ..hour_limits import limits_for_band
from ..types import AgeBand, ComplianceContext, RuleCategory, RuleResult
from .base import ComplianceRule, day_is_school_day
from utils.time import round_hours


class DailyLimitRule(ComplianceRule):
    """Fail when any in-band day exceeds ``limit`` hours.

    ``school_days`` narrows the days checked: None checks every day, True only
    school days, False only non-school days.
    """

    category = RuleCategory.HOURS
    band: ClassVar[AgeBand]
    limit: ClassVar[int]
    school_days: ClassVar[Optional[bool]] = None
    qualifier: ClassVar[str] = "per day"
    remediation: ClassVar[Callable[[int], str]] = staticmethod(messages.reduce_daily)

    def evaluate(self, context: ComplianceContext) -> RuleResult:
        violations = []
        checked = 0
        for day in sorted(context.daily_hours):
            if context.daily_age_bands.get(day) != self.band:
                continue
            if self.school_days is not None and day_is_school_day(context, day) != self.school_days:
                continue
            checked += 1
            hours = context.daily_hours[day]
            if hours > self.limit:
                violations.append((day, hours))

        if not violations:
            return self._pass(
                checked_values={"limit": self.limit, "days_checked": checked},
                threshold=self.limit,
            )

        first_day, first_hours = violations[0]
        return self._fail(
            messages.daily_limit_exceeded(
                self.band.value, first_day, first_hours, self.limit, self.qualifier
            ),
            self.remediation(self.limit),
            checked_values={
                "violations": [{"date": d.isoformat(), "hours": h} for d, h in violations]
            },
            threshold=self.limit,
            actual_value=first_hours,
            affected_dates=[d.isoformat() for d, _ in violations],
            affected_entries=[
                e.id for d, _ in violations for e in context.daily_entries.get(d, ())
            ],
        )


class WeeklyLimitRule(ComplianceRule):
    """Fail when in-band hours for the week exceed ``limit``.

    ``school_week`` True makes the rule not applicable outside a school week,
    False makes it not applicable during one.
    """

    category = RuleCategory.HOURS
    band: ClassVar[AgeBand]
    limit: ClassVar[int]
    school_week: ClassVar[Optional[bool]] = None
    qualifier: ClassVar[str] = "per week"

    def evaluate(self, context: ComplianceContext) -> RuleResult:
        if self.school_week is not None and context.is_school_week != self.school_week:
            return self._not_applicable(is_school_week=context.is_school_week)

        total = round_hours(sum(
            hours for day, hours in context.daily_hours.items()
            if context.daily_age_bands.get(day) == self.band
        ))

        if total <= self.limit:
            return self._pass(
                checked_values={"total": total},
                threshold=self.limit,
                actual_value=total,
            )

        return self._fail(
            messages.weekly_limit_exceeded(self.band.value, total, self.limit, self.qualifier),
            messages.reduce_weekly(self.limit),
            checked_values={"total": total},
            threshold=self.limit,
            actual_value=total,
        )


class DailyLimit12To13Rule(DailyLimitRule):
    id = "RULE-002"
    name = "Ages 12-13 Daily Hour Limit"
    description = "Daily limit of 4 hours for ages 12-13"
    applies_to_age_bands = frozenset({AgeBand.AGES_12_13})
    band = AgeBand.AGES_12_13
    limit = limits_for_band(AgeBand.AGES_12_13).daily_limit


class WeeklyLimit12To13Rule(WeeklyLimitRule):
    id = "RULE-003"
    name = "Ages 12-13 Weekly Hour Limit"
    description = "Weekly limit of 24 hours for ages 12-13"
    applies_to_age_bands = frozenset({AgeBand.AGES_12_13})
    band = AgeBand.AGES_12_13
    limit = limits_for_band(AgeBand.AGES_12_13).weekly_limit


class SchoolDayLimit14To15Rule(DailyLimitRule):
    id = "RULE-008"
    name = "Ages 14-15 School Day Hour Limit"
    description = "Limit of 3 hours on school days for ages 14-15"
    applies_to_age_bands = frozenset({AgeBand.AGES_14_15})
    band = AgeBand.AGES_14_15
    limit = limits_for_band(AgeBand.AGES_14_15).daily_limit_school_day
    school_days = True
    qualifier = "on school days"
    remediation = staticmethod(messages.school_day_limit_remediation)


class SchoolWeekLimit14To15Rule(WeeklyLimitRule):
    id = "RULE-009"
    name = "Ages 14-15 School Week Hour Limit"
    description = "Limit of 18 hours in school weeks for ages 14-15"
    applies_to_age_bands = frozenset({AgeBand.AGES_14_15})
    band = AgeBand.AGES_14_15
    limit = limits_for_band(AgeBand.AGES_14_15).weekly_limit_school_week
    school_week = True
    qualifier = "during school weeks"


class NonSchoolDayLimit14To15Rule(DailyLimitRule):
    id = "RULE-032"
    name = "Ages 14-15 Non-School Day Hour Limit"
    description = "Limit of 8 hours on non-school days for ages 14-15"
    applies_to_age_bands = frozenset({AgeBand.AGES_14_15})
    band = AgeBand.AGES_14_15
    limit = limits_for_band(AgeBand.AGES_14_15).daily_limit
    school_days = False
    qualifier = "on non-school days"


class NonSchoolWeekLimit14To15Rule(WeeklyLimitRule):
    id = "RULE-033"
    name = "Ages 14-15 Non-School Week Hour Limit"
    description = "Limit of 40 hours in non-school weeks for ages 14-15"
    applies_to_age_bands = frozenset({AgeBand.AGES_14_15})
    band = AgeBand.AGES_14_15
    limit = limits_for_band(AgeBand.AGES_14_15).weekly_limit
    school_week = False
    qualifier = "during non-school weeks"


class DailyLimit16To17Rule(DailyLimitRule):
    id = "RULE-014"
    name = "Ages 16-17 Daily Hour Limit"
    description = "Daily limit of 9 hours for ages 16-17"
    applies_to_age_bands = frozenset({AgeBand.AGES_16_17})
    band = AgeBand.AGES_16_17
    limit = limits_for_band(AgeBand.AGES_16_17).daily_limit


class WeeklyLimit16To17Rule(WeeklyLimitRule):
    id = "RULE-015"
    name = "Ages 16-17 Weekly Hour Limit"
    description = "Weekly limit of 48 hours for ages 16-17"
    applies_to_age_bands = frozenset({AgeBand.AGES_16_17})
    band = AgeBand.AGES_16_17
    limit = limits_for_band(AgeBand.AGES_16_17).weekly_limit


class DayCount16To17Rule(ComplianceRule):
    id = "RULE-018"
    name = "Ages 16-17 Day Count Limit"
    category = RuleCategory.HOURS
    description = "Ages 16-17 may work at most 6 days per week"
    applies_to_age_bands = frozenset({AgeBand.AGES_16_17})

    def evaluate(self, context: ComplianceContext) -> RuleResult:
        limit = limits_for_band(AgeBand.AGES_16_17).days_worked_limit
        days_worked = [
            day for day in sorted(context.daily_hours)
            if context.daily_age_bands.get(day) == AgeBand.AGES_16_17
        ]

        if len(days_worked) <= limit:
            return self._pass(
                checked_values={"days_worked": len(days_worked)},
                threshold=limit,
                actual_value=len(days_worked),
            )

        return self._fail(
            messages.day_count_exceeded(len(days_worked), limit),
            messages.day_count_remediation(limit),
            checked_values={"days_worked": len(days_worked)},
            threshold=limit,
            actual_value=len(days_worked),
            affected_dates=[d.isoformat() for d in days_worked],
        )


HOUR_RULES = [
    DailyLimit12To13Rule,
    WeeklyLimit12To13Rule,
    SchoolDayLimit14To15Rule,
    SchoolWeekLimit14To15Rule,
    NonSchoolDayLimit14To15Rule,
    NonSchoolWeekLimit14To15Rule,
    DailyLimit16To17Rule,
    WeeklyLimit16To17Rule,
    DayCount16To17Rule,
]
