from __future__ import annotations

from enum import Enum, IntEnum


class Role(str, Enum):
    """Role tag carried by the authenticated principal."""

    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    SECURITY = "security"
    LEARNER = "learner"


class AccessStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class AttendanceStatus(str, Enum):
    """Attendance status persisted per learner and schedule occurrence."""

    PRESENT = "PRESENT"
    LATE = "LATE"
    ABSENT = "ABSENT"
    EXCUSED = "EXCUSED"


class ScheduleKind(str, Enum):
    RECURRING = "RECURRING"
    DATED = "DATED"


class Weekday(IntEnum):
    """Same numbering as ``date.weekday()``."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6


class SkipReason(str, Enum):
    """Why reconciliation left an attendance record untouched."""

    NOT_ENROLLED = "NOT_ENROLLED"
    OUTSIDE_WINDOW = "OUTSIDE_WINDOW"
    MANUAL_OVERRIDE_PROTECTED = "MANUAL_OVERRIDE_PROTECTED"
    ALREADY_RECORDED = "ALREADY_RECORDED"
    TIMEOUT = "TIMEOUT"


class NotificationType(str, Enum):
    AUTO_ATTENDANCE = "AUTO_ATTENDANCE"
    MANUAL_ATTENDANCE = "MANUAL_ATTENDANCE"
