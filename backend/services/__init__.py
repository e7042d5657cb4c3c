from .locking import TimesheetLocks
from .repository import ComplianceLogRecord, EntryRecord, TimesheetRepository

__all__ = [
    "TimesheetLocks",
    "ComplianceLogRecord",
    "EntryRecord",
    "TimesheetRepository",
]
