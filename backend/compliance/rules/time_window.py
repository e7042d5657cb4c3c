"""Time-of-day rules: school hours, work windows and school nights."""

from datetime import date, timedelta
from typing import ClassVar

from .. import messages
from ..types import AgeBand, ComplianceContext, RuleCategory, RuleResult
from .base import ComplianceRule, EntryViolation, day_is_school_day, entries_in_band
from utils.time import is_summer_period, overlaps_school_hours, time_to_minutes

WINDOW_14_15_START = 7 * 60
WINDOW_14_15_END_REGULAR = 19 * 60
WINDOW_14_15_END_SUMMER = 21 * 60

WINDOW_16_17_START = 6 * 60
WINDOW_16_17_END_SCHOOL_NIGHT = 22 * 60
WINDOW_16_17_END_NON_SCHOOL_NIGHT = 23 * 60 + 30


def is_school_night(context: ComplianceContext, day: date) -> bool:
    """Night before a school day.

    True when the next day has a school-day entry, or, in a school week, for
    Sunday through Thursday.
    """
    if day_is_school_day(context, day + timedelta(days=1)):
        return True
    # weekday(): Monday == 0 ... Thursday == 3, Sunday == 6
    return context.is_school_week and (day.weekday() <= 3 or day.weekday() == 6)


class SchoolHoursRule(ComplianceRule):
    """No work between 7:00 AM and 3:00 PM on school days for ``band``."""

    category = RuleCategory.TIME_WINDOW
    band: ClassVar[AgeBand]

    def evaluate(self, context: ComplianceContext) -> RuleResult:
        violations = [
            EntryViolation(day, entry.id, entry.start_time, entry.end_time)
            for day, entry in entries_in_band(context, self.band)
            if day_is_school_day(context, day)
            and overlaps_school_hours(entry.start_time, entry.end_time)
        ]

        if not violations:
            return self._pass()

        first = violations[0]
        return self._fail_for_entries(
            violations,
            messages.school_hours_violation(
                self.band.value, first.date, first.start_time, first.end_time
            ),
            messages.SCHOOL_HOURS_REMEDIATION,
        )


class SchoolHours12To13Rule(SchoolHoursRule):
    id = "RULE-004"
    name = "Ages 12-13 School Hours Prohibition"
    description = "Ages 12-13 cannot work during school hours (7 AM - 3 PM) on school days"
    applies_to_age_bands = frozenset({AgeBand.AGES_12_13})
    band = AgeBand.AGES_12_13


class SchoolHours14To15Rule(SchoolHoursRule):
    id = "RULE-010"
    name = "Ages 14-15 School Hours Prohibition"
    description = "Ages 14-15 cannot work during school hours (7 AM - 3 PM) on school days"
    applies_to_age_bands = frozenset({AgeBand.AGES_14_15})
    band = AgeBand.AGES_14_15


class SchoolHours16To17Rule(SchoolHoursRule):
    id = "RULE-034"
    name = "Ages 16-17 School Hours Prohibition"
    description = "Ages 16-17 cannot work during school hours (7 AM - 3 PM) on school days"
    applies_to_age_bands = frozenset({AgeBand.AGES_16_17})
    band = AgeBand.AGES_16_17


class WorkWindow14To15Rule(ComplianceRule):
    id = "RULE-011"
    name = "Ages 14-15 Work Window"
    category = RuleCategory.TIME_WINDOW
    description = "Ages 14-15 may only work 7 AM - 7 PM (9 PM from June 1 to Labor Day)"
    applies_to_age_bands = frozenset({AgeBand.AGES_14_15})

    def evaluate(self, context: ComplianceContext) -> RuleResult:
        violations = []
        for day, entry in entries_in_band(context, AgeBand.AGES_14_15):
            window_end = WINDOW_14_15_END_SUMMER if is_summer_period(day) else WINDOW_14_15_END_REGULAR
            start = time_to_minutes(entry.start_time)
            end = time_to_minutes(entry.end_time)
            if start < WINDOW_14_15_START or end > window_end:
                violations.append(EntryViolation(day, entry.id, entry.start_time, entry.end_time))

        if not violations:
            return self._pass()

        first = violations[0]
        summer = is_summer_period(first.date)
        window_end = messages.format_time("21:00" if summer else "19:00")
        return self._fail_for_entries(
            violations,
            messages.work_window_14_15(first.date, first.end_time, window_end, summer),
            messages.work_window_14_15_remediation(window_end),
        )


class SchoolNight16To17Rule(ComplianceRule):
    id = "RULE-016"
    name = "Ages 16-17 School Night Restriction"
    category = RuleCategory.TIME_WINDOW
    description = "Ages 16-17 cannot work past 10 PM on nights before school days"
    applies_to_age_bands = frozenset({AgeBand.AGES_16_17})

    def evaluate(self, context: ComplianceContext) -> RuleResult:
        violations = [
            EntryViolation(day, entry.id, entry.start_time, entry.end_time)
            for day, entry in entries_in_band(context, AgeBand.AGES_16_17)
            if is_school_night(context, day)
            and time_to_minutes(entry.end_time) > WINDOW_16_17_END_SCHOOL_NIGHT
        ]

        if not violations:
            return self._pass()

        first = violations[0]
        return self._fail_for_entries(
            violations,
            messages.school_night_violation(first.date, first.end_time),
            messages.SCHOOL_NIGHT_REMEDIATION,
        )


class WorkWindow16To17Rule(ComplianceRule):
    """Start no earlier than 6:00 AM; end by 11:30 PM on non-school nights.

    Late finishes on school nights belong to RULE-016.
    """

    id = "RULE-017"
    name = "Ages 16-17 Work Window"
    category = RuleCategory.TIME_WINDOW
    description = "Ages 16-17 may only work 6 AM - 11:30 PM (10 PM on school nights)"
    applies_to_age_bands = frozenset({AgeBand.AGES_16_17})

    def evaluate(self, context: ComplianceContext) -> RuleResult:
        violations = []
        for day, entry in entries_in_band(context, AgeBand.AGES_16_17):
            start = time_to_minutes(entry.start_time)
            end = time_to_minutes(entry.end_time)
            too_early = start < WINDOW_16_17_START
            too_late = not is_school_night(context, day) and end > WINDOW_16_17_END_NON_SCHOOL_NIGHT
            if too_early or too_late:
                violations.append(EntryViolation(day, entry.id, entry.start_time, entry.end_time))

        if not violations:
            return self._pass()

        first = violations[0]
        return self._fail_for_entries(
            violations,
            messages.work_window_16_17(first.date, first.start_time, first.end_time),
            messages.WORK_WINDOW_16_17_REMEDIATION,
        )


TIME_WINDOW_RULES = [
    SchoolHours12To13Rule,
    SchoolHours14To15Rule,
    WorkWindow14To15Rule,
    SchoolNight16To17Rule,
    WorkWindow16To17Rule,
    SchoolHours16To17Rule,
]
