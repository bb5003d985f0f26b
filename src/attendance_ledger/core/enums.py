from __future__ import annotations

from enum import Enum


class SubjectType(str, Enum):
    """Kind of subject tracked for attendance."""

    STUDENT = "student"
    EMPLOYEE = "employee"


class AttendanceStatus(str, Enum):
    """Attendance status as stored in the database."""

    ABSENT = "absent"
    LATE = "late"
    PRESENT = "present"
    EXCUSED = "excused"


class ScanMethod(str, Enum):
    """Provenance of the most recent update to a record."""

    MANUAL = "manual"
    FACE_RECOGNITION = "face_recognition"
    SYSTEM = "system"


class SyncOutcome(str, Enum):
    DUPLICATE = "duplicate"
    SYNCED = "synced"
    ERROR = "error"
