"""Age calculation as of a specific work date.

Ages are always computed for the date being worked, never for "today", so a
birthday in the middle of a week yields two different ages (and possibly two
age bands) inside one timesheet.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

from .types import AgeBand
from utils.time import week_dates

MINIMUM_EMPLOYMENT_AGE = 12


class BelowMinimumAgeError(ValueError):
    """Raised when an age has no legal age band."""

    code = "BELOW_MINIMUM_AGE"

    def __init__(self, age: int):
        self.age = age
        super().__init__(f"Age {age} is below minimum employment age of {MINIMUM_EMPLOYMENT_AGE}")


@dataclass(frozen=True)
class BirthdayInfo:
    has_birthday: bool
    birthday_date: Optional[date] = None
    new_age: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "has_birthday": self.has_birthday,
            "birthday_date": self.birthday_date.isoformat() if self.birthday_date else None,
            "new_age": self.new_age,
        }


def age_on_date(date_of_birth: date, as_of: date) -> int:
    """Whole years of age on ``as_of``.

    Example: born 2010-06-15 is 13 on 2024-06-14 and 14 on 2024-06-15.
    A Feb 29 birth date turns over on Mar 1 in non-leap years.
    """
    age = as_of.year - date_of_birth.year
    if (as_of.month, as_of.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def age_band(age: int) -> AgeBand:
    if age < MINIMUM_EMPLOYMENT_AGE:
        raise BelowMinimumAgeError(age)
    if age <= 13:
        return AgeBand.AGES_12_13
    if age <= 15:
        return AgeBand.AGES_14_15
    if age <= 17:
        return AgeBand.AGES_16_17
    return AgeBand.ADULT


def weekly_ages(date_of_birth: date, week_start: date) -> dict[date, int]:
    """Map each of the 7 days starting at ``week_start`` to the age on that day."""
    return {day: age_on_date(date_of_birth, day) for day in week_dates(week_start)}


def birthday_in_week(date_of_birth: date, week_start: date) -> BirthdayInfo:
    """Report whether the birthday (month/day) falls inside the 7-day window."""
    for day in week_dates(week_start):
        if (day.month, day.day) == (date_of_birth.month, date_of_birth.day):
            return BirthdayInfo(
                has_birthday=True,
                birthday_date=day,
                new_age=age_on_date(date_of_birth, day),
            )
    return BirthdayInfo(has_birthday=False)
