from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Any, Mapping

from ..common.datetime_utils import parse_clock_time
from ..core.constants import DEFAULT_END_TIME, DEFAULT_LATE_THRESHOLD_MINUTES, DEFAULT_START_TIME

START_TIME_KEY = "attendance_start_time"
END_TIME_KEY = "attendance_end_time"
LATE_THRESHOLD_KEY = "late_threshold_minutes"
SETTING_KEYS = (START_TIME_KEY, END_TIME_KEY, LATE_THRESHOLD_KEY)


@dataclass(frozen=True)
class AttendanceSettings:
    start_time: time
    end_time: time
    late_threshold_minutes: int

    @classmethod
    def defaults(cls) -> "AttendanceSettings":
        return cls(
            start_time=parse_clock_time(DEFAULT_START_TIME, time(8, 0)),
            end_time=parse_clock_time(DEFAULT_END_TIME, time(16, 0)),
            late_threshold_minutes=DEFAULT_LATE_THRESHOLD_MINUTES,
        )

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any], *, fallback: "AttendanceSettings") -> "AttendanceSettings":
        """Build settings from a flat row or key-value map, field by field.

        Missing or malformed fields take the fallback value.
        """

        try:
            threshold = int(values.get(LATE_THRESHOLD_KEY))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            threshold = fallback.late_threshold_minutes
        if threshold < 0:
            threshold = fallback.late_threshold_minutes

        return cls(
            start_time=parse_clock_time(values.get(START_TIME_KEY), fallback.start_time),
            end_time=parse_clock_time(values.get(END_TIME_KEY), fallback.end_time),
            late_threshold_minutes=threshold,
        )

    def to_dict(self) -> dict:
        return {
            START_TIME_KEY: self.start_time.strftime("%H:%M"),
            END_TIME_KEY: self.end_time.strftime("%H:%M"),
            LATE_THRESHOLD_KEY: self.late_threshold_minutes,
        }
