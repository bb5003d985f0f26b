from __future__ import annotations

from datetime import date, datetime
from typing import Mapping, Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus, ScanMethod, SubjectType
from ..subjects.model import SubjectRef
from .model import AttendanceQuery, AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_by_client_uuid(self, client_uuid: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_subject_and_day(self, subject: SubjectRef, day: date) -> Optional[AttendanceRecord]:
        """Oldest record of the subject whose timestamp falls on `day`."""

        raise NotImplementedError

    def create_record(
        self,
        *,
        client_uuid: str,
        subject: SubjectRef,
        timestamp: datetime,
        status: AttendanceStatus,
        method: ScanMethod,
        match_confidence: Optional[float] = None,
        synced: bool = True,
    ) -> int:
        """Insert a record; raises DuplicateRecordError on a known client_uuid."""

        raise NotImplementedError

    def update_scan(
        self,
        *,
        record_id: int,
        timestamp: datetime,
        method: ScanMethod,
        match_confidence: Optional[float],
        updated_at: datetime,
        status: Optional[AttendanceStatus] = None,
    ) -> bool:
        """Refresh scan metadata; `status` is only written when given."""

        raise NotImplementedError

    def seed_absent(
        self,
        *,
        day: date,
        subjects: Sequence[SubjectRef],
        only_if_day_empty: bool,
    ) -> int:
        """Insert one absent/system record per subject lacking one for `day`.

        Runs as a single transaction: either every insert lands or none does.
        With `only_if_day_empty` the "no record yet today" check is part of the
        same atomic unit and nothing is inserted when the day already has rows.
        """

        raise NotImplementedError

    def set_sync_state(self, client_uuid: str, *, syncing: bool, synced: Optional[bool] = None) -> bool:
        raise NotImplementedError

    def list_unsynced(self, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_records(self, query: AttendanceQuery) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def count_by_status(
        self,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        subject_type: Optional[SubjectType] = None,
    ) -> Mapping[AttendanceStatus, int]:
        raise NotImplementedError

    def apply_correction(
        self,
        *,
        record_id: int,
        status: AttendanceStatus,
        notes: Optional[str],
        updated_at: datetime,
    ) -> bool:
        """Admin-only override (manual corrections, excused absences)."""

        raise NotImplementedError

    def delete(self, record_id: int) -> bool:
        raise NotImplementedError
