from __future__ import annotations

from datetime import datetime

from ..common.datetime_utils import minutes_since_midnight
from ..core.enums import AttendanceStatus
from ..settings.model import AttendanceSettings


def classify_status(timestamp: datetime, settings: AttendanceSettings) -> AttendanceStatus:
    """Map a scan time to present/late/absent.

    Works at minute resolution: outside [start, end] is absent, up to
    start + late threshold (inclusive) is present, anything after is late.
    """

    t = minutes_since_midnight(timestamp)
    start = minutes_since_midnight(settings.start_time)
    end = minutes_since_midnight(settings.end_time)
    late_bound = start + settings.late_threshold_minutes

    if t < start or t > end:
        return AttendanceStatus.ABSENT
    if t <= late_bound:
        return AttendanceStatus.PRESENT
    return AttendanceStatus.LATE
