from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..core.enums import AttendanceStatus, ScanMethod
from ..subjects.model import SubjectRef
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

# EXCUSED is deliberately absent: it has no place in the upgrade order yet.
STATUS_RANK = {
    AttendanceStatus.ABSENT: 0,
    AttendanceStatus.LATE: 1,
    AttendanceStatus.PRESENT: 2,
}


def status_rank(status: AttendanceStatus) -> int:
    return STATUS_RANK.get(status, 0)


@dataclass(frozen=True)
class MergeOutcome:
    record_id: int
    created: bool
    upgraded: bool
    previous_status: Optional[AttendanceStatus] = None


class RecordMerger:
    """Collapses every scan of a subject/day onto one row.

    A scan may raise the stored status (absent < late < present) but never
    lower it; timestamp, method and confidence always follow the latest scan.
    """

    def __init__(self, attendance: AttendanceRepository, *, clock: Callable[[], datetime] = now_local):
        self._attendance = attendance
        self._clock = clock

    def merge(
        self,
        subject: SubjectRef,
        *,
        timestamp: datetime,
        status: AttendanceStatus,
        method: ScanMethod,
        match_confidence: Optional[float] = None,
        client_uuid: Optional[str] = None,
    ) -> MergeOutcome:
        existing = self._attendance.get_for_subject_and_day(subject, timestamp.date())

        if existing is None:
            record_id = self._attendance.create_record(
                client_uuid=client_uuid or str(uuid.uuid4()),
                subject=subject,
                timestamp=timestamp,
                status=status,
                method=method,
                match_confidence=match_confidence,
                synced=True,
            )
            logger.info("Created attendance record %s for %s with status %s", record_id, subject, status.value)
            return MergeOutcome(record_id=record_id, created=True, upgraded=False)

        upgraded = status_rank(status) > status_rank(existing.status)
        self._attendance.update_scan(
            record_id=existing.record_id,
            timestamp=timestamp,
            method=method,
            match_confidence=match_confidence,
            updated_at=self._clock(),
            status=status if upgraded else None,
        )
        if upgraded:
            logger.info(
                "Updated attendance record for %s from %s to %s",
                subject,
                existing.status.value,
                status.value,
            )
        else:
            logger.info("Updated timestamp for %s - status remains %s", subject, existing.status.value)

        return MergeOutcome(
            record_id=existing.record_id,
            created=False,
            upgraded=upgraded,
            previous_status=existing.status,
        )
