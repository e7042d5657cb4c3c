from .base import ComplianceRule, EntryViolation
from .breaks import BREAK_RULES
from .documentation import DOCUMENTATION_RULES
from .hours import HOUR_RULES
from .tasks import TASK_RULES
from .time_window import TIME_WINDOW_RULES

ALL_RULE_CLASSES = [
    *DOCUMENTATION_RULES,
    *HOUR_RULES,
    *TIME_WINDOW_RULES,
    *TASK_RULES,
    *BREAK_RULES,
]

__all__ = [
    "ComplianceRule",
    "EntryViolation",
    "ALL_RULE_CLASSES",
    "BREAK_RULES",
    "DOCUMENTATION_RULES",
    "HOUR_RULES",
    "TASK_RULES",
    "TIME_WINDOW_RULES",
]
