from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Callable, Mapping, Optional, Sequence

import pytest

from attendance_ledger.attendance.model import AttendanceQuery, AttendanceRecord
from attendance_ledger.common.datetime_utils import day_bounds
from attendance_ledger.core.enums import AttendanceStatus, ScanMethod, SubjectType
from attendance_ledger.core.exceptions import DuplicateRecordError, StorageError, SyncTransportError
from attendance_ledger.subjects.model import SubjectRef


class InMemoryAttendance:
    def __init__(self):
        self._rows: dict[int, AttendanceRecord] = {}
        self._id = 0
        self._lock = threading.Lock()
        # Raise StorageError on the n-th insert of a seeding pass (1-based).
        self.fail_seed_at: Optional[int] = None
        self.fail_sync_state_for: set[str] = set()

    # helpers for assertions
    def all(self) -> list[AttendanceRecord]:
        return sorted(self._rows.values(), key=lambda r: r.record_id)

    def _next_id(self) -> int:
        self._id += 1
        return self._id

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        return self._rows.get(record_id)

    def get_by_client_uuid(self, client_uuid: str) -> Optional[AttendanceRecord]:
        return next((r for r in self.all() if r.client_uuid == client_uuid), None)

    def get_for_subject_and_day(self, subject: SubjectRef, day: date) -> Optional[AttendanceRecord]:
        return next((r for r in self.all() if r.subject == subject and r.timestamp.date() == day), None)

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
        with self._lock:
            if any(r.client_uuid == client_uuid for r in self._rows.values()):
                raise DuplicateRecordError(f"Duplicate entry '{client_uuid}'")
            record_id = self._next_id()
            self._rows[record_id] = AttendanceRecord(
                record_id=record_id,
                client_uuid=client_uuid,
                subject=subject,
                timestamp=timestamp,
                status=status,
                method=method,
                match_confidence=match_confidence,
                synced=synced,
            )
            return record_id

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
        current = self._rows.get(record_id)
        if current is None:
            return False
        self._rows[record_id] = replace(
            current,
            timestamp=timestamp,
            method=method,
            match_confidence=match_confidence,
            updated_at=updated_at,
            status=status if status is not None else current.status,
        )
        return True

    def seed_absent(self, *, day: date, subjects: Sequence[SubjectRef], only_if_day_empty: bool) -> int:
        start, _ = day_bounds(day)
        with self._lock:
            if only_if_day_empty and any(r.timestamp.date() == day for r in self._rows.values()):
                return 0

            staged: list[AttendanceRecord] = []
            next_id = self._id
            for n, subject in enumerate(subjects, start=1):
                if self.fail_seed_at == n:
                    raise StorageError("insert failed")
                if any(r.subject == subject and r.timestamp.date() == day for r in self._rows.values()):
                    continue
                next_id += 1
                staged.append(
                    AttendanceRecord(
                        record_id=next_id,
                        client_uuid=str(uuid.uuid4()),
                        subject=subject,
                        timestamp=start,
                        status=AttendanceStatus.ABSENT,
                        method=ScanMethod.SYSTEM,
                        synced=True,
                    )
                )

            # commit
            for record in staged:
                self._rows[record.record_id] = record
            self._id = next_id
            return len(staged)

    def set_sync_state(self, client_uuid: str, *, syncing: bool, synced: Optional[bool] = None) -> bool:
        if client_uuid in self.fail_sync_state_for:
            raise StorageError("database is locked")
        record = self.get_by_client_uuid(client_uuid)
        if record is None:
            return False
        self._rows[record.record_id] = replace(
            record,
            syncing=syncing,
            synced=record.synced if synced is None else synced,
        )
        return True

    def list_unsynced(self, limit: int) -> Sequence[AttendanceRecord]:
        return [r for r in self.all() if not r.synced and not r.syncing][:limit]

    def list_records(self, query: AttendanceQuery) -> Sequence[AttendanceRecord]:
        rows = self.all()
        if query.subject_id is not None:
            rows = [r for r in rows if r.subject.subject_id == query.subject_id]
        if query.subject_type is not None:
            rows = [r for r in rows if r.subject.subject_type == query.subject_type]
        if query.status is not None:
            rows = [r for r in rows if r.status == query.status]
        if query.start_date is not None:
            rows = [r for r in rows if r.timestamp.date() >= query.start_date]
        if query.end_date is not None:
            rows = [r for r in rows if r.timestamp.date() <= query.end_date]
        return sorted(rows, key=lambda r: (r.timestamp, r.record_id), reverse=True)

    def count_by_status(
        self,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        subject_type: Optional[SubjectType] = None,
    ) -> Mapping[AttendanceStatus, int]:
        counts: dict[AttendanceStatus, int] = {}
        for r in self.list_records(AttendanceQuery(subject_type=subject_type, start_date=start_date, end_date=end_date)):
            counts[r.status] = counts.get(r.status, 0) + 1
        return counts

    def apply_correction(self, *, record_id: int, status: AttendanceStatus, notes: Optional[str], updated_at: datetime) -> bool:
        current = self._rows.get(record_id)
        if current is None:
            return False
        self._rows[record_id] = replace(current, status=status, notes=notes, updated_at=updated_at)
        return True

    def delete(self, record_id: int) -> bool:
        return self._rows.pop(record_id, None) is not None


@dataclass
class InMemorySubjects:
    subjects: list[SubjectRef] = field(default_factory=list)

    def list_all(self) -> Sequence[SubjectRef]:
        return list(self.subjects)

    def exists(self, subject: SubjectRef) -> bool:
        return subject in self.subjects


@dataclass
class InMemorySettings:
    flat_row: Optional[dict] = None
    key_values: dict = field(default_factory=dict)
    broken: bool = False

    def get_flat_row(self):
        if self.broken:
            raise StorageError("no such table: attendance_settings")
        return self.flat_row

    def get_key_values(self, keys):
        return {k: v for k, v in self.key_values.items() if k in keys}


class _Call:
    def __init__(self, due: float, callback: Callable[[], None]):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic scheduler: nothing runs until the test advances the clock."""

    def __init__(self):
        self.now = 0.0
        self.calls: list[_Call] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> _Call:
        call = _Call(self.now + float(delay), callback)
        self.calls.append(call)
        return call

    @property
    def pending(self) -> list[_Call]:
        return [c for c in self.calls if not c.cancelled]

    def advance(self, seconds: float = 0.0) -> int:
        """Move the clock and run every due callback (including ones they schedule)."""

        self.now += seconds
        ran = 0
        while True:
            due = [c for c in self.calls if not c.cancelled and c.due <= self.now]
            if not due:
                return ran
            call = min(due, key=lambda c: c.due)
            self.calls.remove(call)
            call.callback()
            ran += 1


class RecordingTransport:
    def __init__(self):
        self.batches: list[list[dict]] = []
        self.fail = False

    def send(self, records):
        batch = list(records)
        self.batches.append(batch)
        if self.fail:
            raise SyncTransportError("connect timeout")
        return [{"client_uuid": r["client_uuid"], "status": "synced", "id": i} for i, r in enumerate(batch, start=1)]


@pytest.fixture()
def fixed_now() -> datetime:
    return datetime(2026, 2, 2, 8, 5, 0)


@pytest.fixture()
def roster() -> list[SubjectRef]:
    return [
        SubjectRef(1, SubjectType.STUDENT),
        SubjectRef(2, SubjectType.STUDENT),
        SubjectRef(3, SubjectType.STUDENT),
        SubjectRef(1, SubjectType.EMPLOYEE),
    ]


@pytest.fixture()
def attendance_repo() -> InMemoryAttendance:
    return InMemoryAttendance()


@pytest.fixture()
def subjects_repo(roster) -> InMemorySubjects:
    return InMemorySubjects(list(roster))


@pytest.fixture()
def settings_repo() -> InMemorySettings:
    return InMemorySettings()


@pytest.fixture()
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()
