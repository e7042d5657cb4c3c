"""Unit tests for the hour-limit table and the shared limit check."""

import pytest
from datetime import date

from compliance.age import BelowMinimumAgeError
from compliance.hour_limits import (
    check_hour_limits,
    limits_for_age,
    resolve_daily_limit,
    resolve_weekly_limit,
)
from compliance.types import AgeBand

from conftest import make_entry

MONDAY = date(2024, 6, 10)
TUESDAY = date(2024, 6, 11)


class TestLimitsForAge:
    """Tests for the hour limit table."""

    @pytest.mark.parametrize("age,daily,school_day,weekly,school_week,days", [
        (12, 4, None, 24, None, None),
        (13, 4, None, 24, None, None),
        (14, 8, 3, 40, 18, None),
        (15, 8, 3, 40, 18, None),
        (16, 9, None, 48, None, 6),
        (17, 9, None, 48, None, 6),
        (18, 24, None, 168, None, None),
        (25, 24, None, 168, None, None),
    ])
    def test_table(self, age, daily, school_day, weekly, school_week, days):
        limits = limits_for_age(age)

        assert limits.daily_limit == daily
        assert limits.daily_limit_school_day == school_day
        assert limits.weekly_limit == weekly
        assert limits.weekly_limit_school_week == school_week
        assert limits.days_worked_limit == days

    def test_adult_is_unrestricted(self):
        assert limits_for_age(30).is_unrestricted is True
        assert limits_for_age(17).is_unrestricted is False

    def test_below_minimum_age(self):
        with pytest.raises(BelowMinimumAgeError):
            limits_for_age(11)

    def test_resolve_school_variants(self):
        limits = limits_for_age(14)

        assert resolve_daily_limit(limits, is_school_day=True) == 3
        assert resolve_daily_limit(limits, is_school_day=False) == 8
        assert resolve_weekly_limit(limits, is_school_week=True) == 18
        assert resolve_weekly_limit(limits, is_school_week=False) == 40

    def test_school_flag_ignored_without_variant(self):
        limits = limits_for_age(16)

        assert resolve_daily_limit(limits, is_school_day=True) == 9
        assert resolve_weekly_limit(limits, is_school_week=True) == 48

    def test_to_dict(self):
        data = limits_for_age(14).to_dict()

        assert data["age_band"] == AgeBand.AGES_14_15.value
        assert data["daily_limit_school_day"] == 3


class TestCheckHourLimits:
    """Tests for projected daily/weekly usage."""

    def test_daily_limit_exceeded_message(self):
        """13-year-old with 3.5h logged cannot add 1.0h on the same day."""
        existing = [make_entry(MONDAY, "15:00", "18:30")]

        check = check_hour_limits(13, MONDAY, 1.0, False, existing)

        assert check.daily.current == 3.5
        assert check.daily.projected == 4.5
        assert check.daily.exceeded is True
        assert check.valid is False
        assert check.error_message() == (
            "This entry would exceed the daily limit of 4 hours for your age group "
            "(13 years old). Current: 3.5h, Entry: 1.0h, Total would be: 4.5h"
        )

    def test_exactly_at_limit_is_valid(self):
        existing = [make_entry(MONDAY, "15:00", "18:00")]

        check = check_hour_limits(13, MONDAY, 1.0, False, existing)

        assert check.valid is True
        assert check.daily.projected == 4.0
        assert check.daily.remaining == 1.0

    def test_other_days_only_count_toward_weekly(self):
        existing = [make_entry(TUESDAY, "15:00", "18:00")]

        check = check_hour_limits(13, MONDAY, 2.0, False, existing)

        assert check.daily.current == 0.0
        assert check.weekly.current == 3.0
        assert check.weekly.projected == 5.0

    def test_excluded_entry_left_out(self):
        edited = make_entry(MONDAY, "15:00", "18:30", id="entry-edit")

        check = check_hour_limits(13, MONDAY, 4.0, False, [edited], exclude_entry_id="entry-edit")

        assert check.daily.current == 0.0
        assert check.valid is True

    def test_school_day_anywhere_makes_school_week(self):
        existing = [make_entry(TUESDAY, "15:00", "18:00", is_school_day=True)]

        check = check_hour_limits(14, MONDAY, 2.0, False, existing)

        assert check.is_school_week is True
        assert check.weekly.limit == 18
        assert check.daily.limit == 8

    def test_school_flag_on_same_day_entry_sets_daily_limit(self):
        """A non-school proposal still gets the school-day cap when the day is flagged."""
        existing = [make_entry(MONDAY, "15:30", "17:30", is_school_day=True)]

        check = check_hour_limits(15, MONDAY, 2.0, False, existing)

        assert check.is_school_day is True
        assert check.daily.limit == 3
        assert check.daily.exceeded is True

    def test_school_flag_on_excluded_entry_ignored(self):
        edited = make_entry(MONDAY, "15:30", "17:30", is_school_day=True, id="entry-edit")

        check = check_hour_limits(15, MONDAY, 4.0, False, [edited], exclude_entry_id="entry-edit")

        assert check.is_school_day is False
        assert check.daily.limit == 8

    def test_school_day_proposal(self):
        check = check_hour_limits(14, MONDAY, 3.5, True, [])

        assert check.daily.limit == 3
        assert check.daily.exceeded is True
        assert check.error_message().startswith("This entry would exceed the daily limit of 3 hours")

    def test_weekly_exceeded_after_daily_passes(self):
        existing = [make_entry(date(2024, 6, d), "15:00", "19:00") for d in range(9, 15)]

        check = check_hour_limits(13, date(2024, 6, 15), 1.0, False, existing)

        assert check.daily.exceeded is False
        assert check.weekly.exceeded is True
        assert "weekly limit of 24 hours" in check.error_message()

    def test_approaching_at_eighty_percent(self):
        check = check_hour_limits(13, MONDAY, 3.2, False, [])

        assert check.daily.approaching is True
        assert check.daily.exceeded is False

    def test_not_approaching_below_eighty_percent(self):
        check = check_hour_limits(13, MONDAY, 3.0, False, [])

        assert check.daily.approaching is False

    def test_remaining_counts_hours_already_logged(self):
        """Remaining is measured before the proposed entry is added."""
        existing = [make_entry(MONDAY, "15:00", "17:00")] + [
            make_entry(date(2024, 6, d), "15:00", "17:00") for d in (11, 12, 13, 14)
        ]

        check = check_hour_limits(13, MONDAY, 1.0, True, existing)

        assert check.daily.current == 2.0
        assert check.daily.limit == 4
        assert check.daily.remaining == 2.0
        assert check.weekly.current == 10.0
        assert check.weekly.limit == 24
        assert check.weekly.remaining == 14.0

    def test_remaining_never_negative(self):
        existing = [make_entry(MONDAY, "13:00", "18:00")]

        check = check_hour_limits(13, MONDAY, 1.0, False, existing)

        assert check.daily.remaining == 0.0
