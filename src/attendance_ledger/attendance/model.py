from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus, ScanMethod, SubjectType
from ..subjects.model import SubjectRef


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: a subject's attendance for one calendar day."""

    record_id: int
    client_uuid: str
    subject: SubjectRef
    timestamp: datetime
    status: AttendanceStatus
    method: ScanMethod
    match_confidence: Optional[float] = None
    synced: bool = False
    syncing: bool = False
    updated_at: Optional[datetime] = None
    notes: Optional[str] = None

    @property
    def day(self) -> date:
        return self.timestamp.date()

    def to_sync_payload(self) -> dict:
        """Wire shape accepted by the sync ingest endpoint."""

        return {
            "client_uuid": self.client_uuid,
            "subject_id": self.subject.subject_id,
            "subject_type": self.subject.subject_type.value,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
            "method": self.method.value,
            "match_confidence": self.match_confidence,
        }

    def to_dict(self) -> dict:
        data = self.to_sync_payload()
        data.update(
            id=self.record_id,
            synced=self.synced,
            syncing=self.syncing,
            updated_at=self.updated_at.isoformat() if self.updated_at else None,
            notes=self.notes,
        )
        return data


@dataclass(frozen=True)
class AttendanceQuery:
    """Filters for listing attendance logs."""

    subject_id: Optional[int] = None
    subject_type: Optional[SubjectType] = None
    status: Optional[AttendanceStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
