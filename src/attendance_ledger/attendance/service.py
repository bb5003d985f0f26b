from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional, Sequence

from ..common.datetime_utils import now_local, parse_iso_date, parse_iso_datetime
from ..common.validators import optional_float, require_enum, require_int
from ..core.enums import AttendanceStatus, ScanMethod, SubjectType
from ..core.exceptions import NotFoundError, StorageError, ValidationError
from ..settings.provider import SettingsProvider
from ..subjects.model import SubjectRef
from ..subjects.repository import SubjectRepository
from ..sync.queue import SyncQueue
from .classifier import classify_status
from .ledger import DailyLedgerInitializer
from .merger import RecordMerger
from .model import AttendanceQuery, AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def _optional_date(value: Optional[str], field_name: str) -> Optional[date]:
    if not value or not str(value).strip():
        return None
    try:
        return parse_iso_date(str(value).strip()[:10])
    except ValueError:
        raise ValidationError(f"{field_name} must be YYYY-MM-DD") from None


def _subject_type_filter(value: Optional[str]) -> Optional[SubjectType]:
    # "all" (or nothing) means no filter
    if not value or value == "all":
        return None
    return require_enum(SubjectType, value, "subject_type")

class AttendanceService:
    """Single entry point for scan events, live or replayed from offline clients."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        subjects: SubjectRepository,
        settings: SettingsProvider,
        *,
        ledger: Optional[DailyLedgerInitializer] = None,
        merger: Optional[RecordMerger] = None,
        sync_queue: Optional[SyncQueue] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._subjects = subjects
        self._settings = settings
        self._ledger = ledger or DailyLedgerInitializer(attendance, subjects)
        self._merger = merger or RecordMerger(attendance, clock=clock)
        self._sync_queue = sync_queue
        self._clock = clock

    def process_scan(
        self,
        subject: SubjectRef,
        *,
        timestamp: datetime,
        method: ScanMethod,
        match_confidence: Optional[float] = None,
        client_uuid: Optional[str] = None,
    ) -> AttendanceRecord:
        settings = self._settings.get()
        status = classify_status(timestamp, settings)
        logger.info("Processing attendance for %s at %s: classified %s", subject, timestamp.isoformat(), status.value)

        self._ledger.ensure_seeded(timestamp.date())

        outcome = self._merger.merge(
            subject,
            timestamp=timestamp,
            status=status,
            method=method,
            match_confidence=match_confidence,
            client_uuid=client_uuid,
        )
        record = self._attendance.get_by_id(outcome.record_id)
        if record is None:
            raise StorageError(f"Attendance record {outcome.record_id} missing after merge")
        return record

    def log_scan(self, payload: Mapping[str, Any]) -> AttendanceRecord:
        """Live scan path: validate, verify the subject, process, queue if offline."""

        subject = SubjectRef(
            subject_id=require_int(payload.get("subject_id"), "subject_id"),
            subject_type=require_enum(SubjectType, payload.get("subject_type"), "subject_type"),
        )
        method = require_enum(ScanMethod, payload.get("method") or ScanMethod.MANUAL.value, "method")
        match_confidence = optional_float(payload.get("match_confidence"), "match_confidence")
        raw_timestamp = payload.get("timestamp")
        timestamp = parse_iso_datetime(raw_timestamp) if raw_timestamp else self._clock()
        client_uuid = payload.get("client_uuid") or None
        offline = _truthy(payload.get("offline", payload.get("isOffline", False)))

        # Offline replays skip verification: the roster may not know the subject yet.
        if not offline and not self._subjects.exists(subject):
            raise NotFoundError("User not found")

        record = self.process_scan(
            subject,
            timestamp=timestamp,
            method=method,
            match_confidence=match_confidence,
            client_uuid=str(client_uuid) if client_uuid else None,
        )

        if offline:
            self._attendance.set_sync_state(record.client_uuid, synced=False, syncing=False)
            record = replace(record, synced=False, syncing=False)
            if self._sync_queue is not None:
                self._sync_queue.enqueue(record)

        return record

    def initialize_day(self, day: Optional[date] = None) -> int:
        return self._ledger.initialize(day or self._clock().date())

    def list_logs(self, params: Mapping[str, Any]) -> Sequence[AttendanceRecord]:
        status = params.get("status")
        subject_id = params.get("subject_id")
        query = AttendanceQuery(
            subject_id=require_int(subject_id, "subject_id") if subject_id not in (None, "") else None,
            subject_type=_subject_type_filter(params.get("subject_type")),
            status=require_enum(AttendanceStatus, status, "status") if status else None,
            start_date=_optional_date(params.get("start_date"), "start_date"),
            end_date=_optional_date(params.get("end_date"), "end_date"),
        )
        return self._attendance.list_records(query)

    def get_subject_history(
        self,
        subject: SubjectRef,
        *,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> Sequence[AttendanceRecord]:
        return self._attendance.list_records(
            AttendanceQuery(
                subject_id=subject.subject_id,
                subject_type=subject.subject_type,
                start_date=_optional_date(start_date, "start_date"),
                end_date=_optional_date(end_date, "end_date"),
            )
        )

    def get_summary(self, params: Mapping[str, Any]) -> dict:
        counts = self._attendance.count_by_status(
            start_date=_optional_date(params.get("start_date"), "start_date"),
            end_date=_optional_date(params.get("end_date"), "end_date"),
            subject_type=_subject_type_filter(params.get("subject_type")),
        )
        summary = {
            AttendanceStatus.PRESENT.value: 0,
            AttendanceStatus.LATE.value: 0,
            AttendanceStatus.ABSENT.value: 0,
        }
        for status, count in counts.items():
            summary[status.value] = int(count)
        return summary

    def correct(self, record_id: int, payload: Mapping[str, Any]) -> AttendanceRecord:
        """Manual correction by an administrator; the only way to set EXCUSED."""

        status = require_enum(AttendanceStatus, payload.get("status"), "status")
        notes = payload.get("notes")
        if not self._attendance.apply_correction(
            record_id=int(record_id),
            status=status,
            notes=str(notes) if notes is not None else None,
            updated_at=self._clock(),
        ):
            raise NotFoundError("Attendance record not found")

        record = self._attendance.get_by_id(int(record_id))
        if record is None:
            raise NotFoundError("Attendance record not found")
        return record

    def delete(self, record_id: int) -> None:
        if not self._attendance.delete(int(record_id)):
            raise NotFoundError("Attendance record not found")
