"""User-facing messages and remediation guidance for each rule.

Messages are read by employees as young as 12, so they say plainly what went
wrong and what to do next.
"""

from datetime import date


def format_date(day: date) -> str:
    """e.g. 'Monday, January 15'."""
    return f"{day:%A, %B} {day.day}"


def format_time(hhmm: str) -> str:
    """e.g. '15:30' -> '3:30 PM'."""
    hours, minutes = (int(p) for p in hhmm.split(":")[:2])
    period = "PM" if hours >= 12 else "AM"
    display = 12 if hours % 12 == 0 else hours % 12
    return f"{display}:{minutes:02d} {period}"


SCHOOL_HOURS_REMEDIATION = (
    "Please adjust start/end times to be outside 7:00 AM - 3:00 PM, "
    "or mark this as a non-school day with an explanatory note."
)


def reduce_daily(limit: int) -> str:
    return f"Please reduce hours to {limit} or less for that day."


def reduce_weekly(limit: int) -> str:
    return f"Please reduce your total weekly hours to {limit} or less."


# Documentation

def parental_consent_missing(employee_name: str) -> str:
    return (
        f"Parental consent required: {employee_name} is under 18 and needs a valid "
        "parental consent form on file before submitting timesheets."
    )


PARENTAL_CONSENT_REMEDIATION = "Please contact your supervisor to upload the parental consent form."

CONSENT_REVOKED = (
    "Parental consent has been revoked. Timesheets cannot be submitted until new "
    "consent is provided."
)
CONSENT_REVOKED_REMEDIATION = "Please have your parent/guardian provide new consent to your supervisor."


def work_permit_missing(age: int) -> str:
    return (
        "Work permit required: workers ages 14-17 need a Youth Employment Permit. "
        f"You are currently {age} years old."
    )


WORK_PERMIT_REMEDIATION = (
    "Please obtain a work permit from your school and have your supervisor upload it "
    "before submitting."
)


def work_permit_expired(expires_at: date) -> str:
    return (
        f"Work permit expired: your work permit expired on {format_date(expires_at)}. "
        "You cannot submit timesheets until a valid permit is on file."
    )


WORK_PERMIT_EXPIRED_REMEDIATION = (
    "Please obtain a new work permit from your school and have your supervisor upload it."
)

SAFETY_TRAINING_MISSING = (
    "Safety training required: you must complete safety training before submitting "
    "your first timesheet."
)
SAFETY_TRAINING_REMEDIATION = "Please contact your supervisor to complete and document your safety training."


# Hours

def daily_limit_exceeded(band: str, day: date, hours: float, limit: int, qualifier: str = "per day") -> str:
    return (
        f"Daily hour limit exceeded: Ages {band} may work a maximum of {limit} hours "
        f"{qualifier}. You entered {hours:.1f} hours on {format_date(day)}."
    )


def weekly_limit_exceeded(band: str, hours: float, limit: int, qualifier: str = "per week") -> str:
    return (
        f"Weekly hour limit exceeded: Ages {band} may work a maximum of {limit} hours "
        f"{qualifier}. Your total is {hours:.1f} hours."
    )


def school_day_limit_remediation(limit: int) -> str:
    return (
        f"Please reduce hours to {limit} or less, or verify this is not a school day "
        "and update the school day designation with a note."
    )


def day_count_exceeded(days_worked: int, limit: int) -> str:
    return (
        f"Day count limit exceeded: Ages 16-17 may work a maximum of {limit} days per week. "
        f"You have entries on {days_worked} days."
    )


def day_count_remediation(limit: int) -> str:
    return f"Please remove entries so you work no more than {limit} days this week."


# Time windows

def school_hours_violation(band: str, day: date, start_time: str, end_time: str) -> str:
    return (
        f"School hours violation: Ages {band} cannot work during school hours "
        "(7:00 AM - 3:00 PM) on school days. You logged work from "
        f"{format_time(start_time)} to {format_time(end_time)} on {format_date(day)}."
    )


def work_window_14_15(day: date, end_time: str, window_end: str, is_summer: bool) -> str:
    summer = " (summer hours)" if is_summer else ""
    return (
        f"Work window violation: Ages 14-15 may only work between 7:00 AM and "
        f"{window_end}{summer}. You logged work ending at {format_time(end_time)} "
        f"on {format_date(day)}."
    )


def work_window_14_15_remediation(window_end: str) -> str:
    return f"Please adjust your times to be between 7:00 AM and {window_end}."


def school_night_violation(day: date, end_time: str) -> str:
    return (
        "School night violation: Ages 16-17 cannot work past 10:00 PM on nights before "
        f"school days. You logged work ending at {format_time(end_time)} on {format_date(day)}."
    )


SCHOOL_NIGHT_REMEDIATION = "Please adjust your end time to be before 10:00 PM."


def work_window_16_17(day: date, start_time: str, end_time: str) -> str:
    return (
        "Work window violation: Ages 16-17 may only work between 6:00 AM and 11:30 PM. "
        f"You logged work from {format_time(start_time)} to {format_time(end_time)} "
        f"on {format_date(day)}."
    )


WORK_WINDOW_16_17_REMEDIATION = "Please adjust your times to be between 6:00 AM and 11:30 PM."


# Tasks

def task_age_restricted(code: str, name: str, min_age: int, age: int, day: date) -> str:
    return (
        f"Task age restriction: Task {code} ({name}) requires a minimum age of {min_age}. "
        f"You were {age} years old on {format_date(day)}."
    )


TASK_AGE_REMEDIATION = (
    "Please remove this task from your timesheet or speak with your supervisor about reassignment."
)


def power_machinery(code: str, name: str) -> str:
    return (
        f"Power machinery restriction: Task {code} ({name}) involves power machinery, "
        "which is prohibited for workers under 18."
    )


POWER_MACHINERY_REMEDIATION = (
    "Please remove this task from your timesheet. Power machinery work is not permitted for minors."
)


def driving(code: str, name: str) -> str:
    return (
        f"Driving restriction: Task {code} ({name}) requires driving, which is prohibited "
        "for workers under 18."
    )


DRIVING_REMEDIATION = (
    "Please remove this task from your timesheet. Driving tasks are not permitted for minors."
)


def solo_cash_handling(code: str, name: str, age: int) -> str:
    return (
        f"Cash handling restriction: Task {code} ({name}) involves solo cash handling, "
        f"which is prohibited for workers under 14. You are {age} years old."
    )


SOLO_CASH_REMEDIATION = (
    "Please remove this task from your timesheet or speak with your supervisor about "
    "supervised cash handling."
)


def hazardous_task(code: str, name: str) -> str:
    return (
        f"Hazardous task restriction: Task {code} ({name}) is classified as hazardous "
        "and prohibited for workers under 18."
    )


HAZARDOUS_REMEDIATION = (
    "Please remove this task from your timesheet. Hazardous work is not permitted for minors."
)


def supervisor_missing(code: str, name: str, day: date) -> str:
    return (
        f"Supervisor attestation required: Task {code} ({name}) on {format_date(day)} "
        "requires a supervisor to be present. No supervisor name was recorded."
    )


SUPERVISOR_REMEDIATION = (
    "Please edit the entry and add the name of the supervisor who was present during this task."
)


# Breaks

def meal_break_missing(day: date, hours: float) -> str:
    return (
        f"Meal break required: You worked {hours:.1f} hours on {format_date(day)}. "
        "Workers under 18 must take a 30-minute meal break when working more than 6 hours."
    )


MEAL_BREAK_REMEDIATION = (
    "Please confirm that you took a 30-minute meal break by checking the meal break "
    "confirmation box for that day."
)


# Engine

RULE_ERROR_MESSAGE = "An error occurred while checking compliance. Please contact your supervisor."
RULE_ERROR_REMEDIATION = "This may be a system issue. Please try again or contact support."
DEFAULT_VIOLATION_MESSAGE = "Compliance check failed"
DEFAULT_VIOLATION_REMEDIATION = "Please review and correct this issue."
