"""Tests for per-band hour limit rules."""

from datetime import date

from compliance.rules.hours import (
    DailyLimit12To13Rule,
    DailyLimit16To17Rule,
    DayCount16To17Rule,
    NonSchoolDayLimit14To15Rule,
    NonSchoolWeekLimit14To15Rule,
    SchoolDayLimit14To15Rule,
    SchoolWeekLimit14To15Rule,
    WeeklyLimit12To13Rule,
    WeeklyLimit16To17Rule,
)
from compliance.types import RuleOutcome

from conftest import SCHOOL_WEEK, make_context, make_entry

AGE_13 = date(2011, 1, 1)
AGE_15 = date(2009, 1, 1)
AGE_16 = date(2008, 1, 1)
TURNS_14_ON_WEDNESDAY = date(2010, 6, 12)


def _summer(day: int) -> date:
    return date(2024, 6, day)


def _school(day: int) -> date:
    return date(2024, 10, day)


class TestAges12To13:
    """Tests for RULE-002 and RULE-003."""

    def test_daily_limit_exceeded(self):
        entry = make_entry(_summer(10), "12:00", "16:30")
        context = make_context(AGE_13, entries=[entry])

        result = DailyLimit12To13Rule().evaluate(context)

        assert result.result == RuleOutcome.FAIL
        assert result.details.affected_dates == ["2024-06-10"]
        assert result.details.affected_entries == [entry.id]
        assert result.details.actual_value == 4.5
        assert "maximum of 4 hours per day" in result.error_message
        assert "Monday, June 10" in result.error_message

    def test_daily_limit_exactly_met(self):
        context = make_context(AGE_13, entries=[
            make_entry(_summer(10), "12:00", "14:00"),
            make_entry(_summer(10), "15:00", "17:00"),
        ])

        assert DailyLimit12To13Rule().evaluate(context).result == RuleOutcome.PASS

    def test_weekly_limit_exceeded(self):
        entries = [make_entry(_summer(d), "12:00", "16:00") for d in range(9, 16)]
        context = make_context(AGE_13, entries=entries)

        result = WeeklyLimit12To13Rule().evaluate(context)

        assert result.result == RuleOutcome.FAIL
        assert result.details.actual_value == 28.0
        assert result.details.threshold == 24

    def test_birthday_week_only_counts_in_band_days(self):
        """Hours after turning 14 are not held to the 12-13 daily limit."""
        context = make_context(TURNS_14_ON_WEDNESDAY, entries=[
            make_entry(_summer(13), "09:00", "15:00"),
        ])

        assert DailyLimit12To13Rule().evaluate(context).result == RuleOutcome.PASS
        assert NonSchoolDayLimit14To15Rule().evaluate(context).result == RuleOutcome.PASS

    def test_birthday_week_before_birthday_still_limited(self):
        context = make_context(TURNS_14_ON_WEDNESDAY, entries=[
            make_entry(_summer(10), "09:00", "14:00"),
        ])

        assert DailyLimit12To13Rule().evaluate(context).result == RuleOutcome.FAIL


class TestAges14To15:
    """Tests for RULE-008, RULE-009, RULE-032 and RULE-033."""

    def test_school_day_limit(self):
        context = make_context(AGE_15, week_start=SCHOOL_WEEK, entries=[
            make_entry(_school(7), "15:00", "18:30", is_school_day=True),
        ])

        school_day = SchoolDayLimit14To15Rule().evaluate(context)
        non_school_day = NonSchoolDayLimit14To15Rule().evaluate(context)

        assert school_day.result == RuleOutcome.FAIL
        assert "on school days" in school_day.error_message
        assert "not a school day" in school_day.remediation
        assert non_school_day.result == RuleOutcome.PASS

    def test_non_school_day_limit(self):
        context = make_context(AGE_15, entries=[make_entry(_summer(15), "08:00", "17:00")])

        result = NonSchoolDayLimit14To15Rule().evaluate(context)

        assert result.result == RuleOutcome.FAIL
        assert result.details.threshold == 8
        assert SchoolDayLimit14To15Rule().evaluate(context).result == RuleOutcome.PASS

    def test_school_week_limit(self):
        entries = [make_entry(_school(d), "15:00", "18:00", is_school_day=True) for d in range(7, 12)]
        entries.append(make_entry(_school(12), "09:00", "13:00"))
        context = make_context(AGE_15, week_start=SCHOOL_WEEK, entries=entries)

        school_week = SchoolWeekLimit14To15Rule().evaluate(context)
        non_school_week = NonSchoolWeekLimit14To15Rule().evaluate(context)

        assert school_week.result == RuleOutcome.FAIL
        assert school_week.details.actual_value == 19.0
        assert "during school weeks" in school_week.error_message
        assert non_school_week.result == RuleOutcome.NOT_APPLICABLE

    def test_non_school_week_limit(self):
        entries = [make_entry(_summer(d), "09:00", "16:00") for d in range(9, 15)]
        context = make_context(AGE_15, entries=entries)

        assert SchoolWeekLimit14To15Rule().evaluate(context).result == RuleOutcome.NOT_APPLICABLE
        result = NonSchoolWeekLimit14To15Rule().evaluate(context)
        assert result.result == RuleOutcome.FAIL
        assert result.details.actual_value == 42.0


class TestAges16To17:
    """Tests for RULE-014, RULE-015 and RULE-018."""

    def test_daily_limit(self):
        context = make_context(AGE_16, entries=[make_entry(_summer(10), "08:00", "17:30")])

        result = DailyLimit16To17Rule().evaluate(context)

        assert result.result == RuleOutcome.FAIL
        assert result.details.actual_value == 9.5

    def test_weekly_limit(self):
        entries = [make_entry(_summer(d), "08:00", "16:30") for d in range(9, 15)]
        context = make_context(AGE_16, entries=entries)

        result = WeeklyLimit16To17Rule().evaluate(context)

        assert result.result == RuleOutcome.FAIL
        assert result.details.actual_value == 51.0

    def test_six_days_allowed(self):
        entries = [make_entry(_summer(d)) for d in range(9, 15)]
        context = make_context(AGE_16, entries=entries)

        assert DayCount16To17Rule().evaluate(context).result == RuleOutcome.PASS

    def test_seven_days_exceeds_day_count(self):
        entries = [make_entry(_summer(d)) for d in range(9, 16)]
        context = make_context(AGE_16, entries=entries)

        result = DayCount16To17Rule().evaluate(context)

        assert result.result == RuleOutcome.FAIL
        assert result.details.actual_value == 7
        assert len(result.details.affected_dates) == 7
        assert "6 days per week" in result.error_message
