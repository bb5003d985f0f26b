from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..common.datetime_utils import parse_iso_datetime
from ..common.validators import optional_float, require_enum, require_int, require_non_empty
from ..core.enums import AttendanceStatus, ScanMethod, SubjectType, SyncOutcome
from ..core.exceptions import ValidationError
from ..subjects.model import SubjectRef


@dataclass(frozen=True)
class IncomingRecord:
    """A client-originated record as received by the ingest endpoint."""

    client_uuid: str
    subject: SubjectRef
    timestamp: datetime
    status: AttendanceStatus
    method: ScanMethod
    match_confidence: Optional[float] = None

    @classmethod
    def from_payload(cls, raw: Any) -> "IncomingRecord":
        if not isinstance(raw, Mapping):
            raise ValidationError("Attendance record must be an object")

        timestamp = raw.get("timestamp")
        if not timestamp:
            raise ValidationError("timestamp is required")

        return cls(
            client_uuid=require_non_empty(raw.get("client_uuid"), "client_uuid"),
            subject=SubjectRef(
                subject_id=require_int(raw.get("subject_id"), "subject_id"),
                subject_type=require_enum(SubjectType, raw.get("subject_type"), "subject_type"),
            ),
            timestamp=parse_iso_datetime(timestamp),
            status=require_enum(AttendanceStatus, raw.get("status"), "status"),
            method=require_enum(ScanMethod, raw.get("method"), "method"),
            match_confidence=optional_float(raw.get("match_confidence"), "match_confidence"),
        )


@dataclass(frozen=True)
class SyncResult:
    client_uuid: Optional[str]
    status: SyncOutcome
    record_id: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"client_uuid": self.client_uuid, "status": self.status.value}
        if self.record_id is not None:
            data["id"] = self.record_id
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class UnsyncedBatch:
    records: Sequence[AttendanceRecord] = field(default_factory=tuple)

    @property
    def count(self) -> int:
        return len(self.records)

    def to_dict(self) -> dict:
        return {"count": self.count, "records": [r.to_dict() for r in self.records]}


@dataclass(frozen=True)
class ReconcileReport:
    pulled: int
    results: Sequence[dict] = field(default_factory=tuple)
    confirmed: int = 0

    def to_dict(self) -> dict:
        if not self.pulled:
            return {"message": "No unsynced records found", "count": 0}
        return {
            "message": f"Reconciled {self.confirmed} of {self.pulled} unsynced records",
            "count": self.pulled,
            "confirmed": self.confirmed,
            "results": list(self.results),
        }
