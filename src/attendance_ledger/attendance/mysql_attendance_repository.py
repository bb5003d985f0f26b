from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Sequence

from ..common.datetime_utils import day_bounds
from ..core.constants import SEED_LOCK_TIMEOUT_SECONDS
from ..core.enums import AttendanceStatus, ScanMethod, SubjectType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from ..subjects.model import SubjectRef
from .model import AttendanceQuery, AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    id, client_uuid, subject_id, subject_type, scanned_at, status, method,
    match_confidence, synced, syncing, updated_at, notes
"""


def _to_record(r: Dict[str, Any]) -> AttendanceRecord:
    confidence = r.get("match_confidence")
    return AttendanceRecord(
        record_id=int(r["id"]),
        client_uuid=str(r["client_uuid"]),
        subject=SubjectRef(int(r["subject_id"]), SubjectType(r["subject_type"])),
        timestamp=r["scanned_at"],
        status=AttendanceStatus(r["status"]),
        method=ScanMethod(r["method"]),
        match_confidence=float(confidence) if confidence is not None else None,
        synced=bool(r["synced"]),
        syncing=bool(r["syncing"]),
        updated_at=r.get("updated_at"),
        notes=r.get("notes"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, seed_lock_timeout: int = SEED_LOCK_TIMEOUT_SECONDS):
        self._conn_factory = conn_factory
        self._seed_lock_timeout = int(seed_lock_timeout)

    def get_by_id(self, record_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_logs WHERE id=%s", (int(record_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_by_client_uuid(self, client_uuid: str) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_logs WHERE client_uuid=%s", (client_uuid,))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_for_subject_and_day(self, subject: SubjectRef, day: date) -> Optional[AttendanceRecord]:
        start, end = day_bounds(day)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_logs
                WHERE subject_type=%s AND subject_id=%s AND scanned_at >= %s AND scanned_at < %s
                ORDER BY id
                LIMIT 1
                """,
                (subject.subject_type.value, int(subject.subject_id), start, end),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_logs
                    (client_uuid, subject_id, subject_type, scanned_at, status, method, match_confidence, synced)
                VALUES (%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    client_uuid,
                    int(subject.subject_id),
                    subject.subject_type.value,
                    timestamp,
                    status.value,
                    method.value,
                    match_confidence,
                    int(synced),
                ),
            )
            return int(cur.lastrowid)

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
        with db_cursor(self._conn_factory) as (_, cur):
            if status is None:
                cur.execute(
                    """
                    UPDATE attendance_logs
                    SET scanned_at=%s, method=%s, match_confidence=%s, updated_at=%s
                    WHERE id=%s
                    """,
                    (timestamp, method.value, match_confidence, updated_at, int(record_id)),
                )
            else:
                cur.execute(
                    """
                    UPDATE attendance_logs
                    SET scanned_at=%s, status=%s, method=%s, match_confidence=%s, updated_at=%s
                    WHERE id=%s
                    """,
                    (timestamp, status.value, method.value, match_confidence, updated_at, int(record_id)),
                )
            return cur.rowcount > 0

    def seed_absent(
        self,
        *,
        day: date,
        subjects: Sequence[SubjectRef],
        only_if_day_empty: bool,
    ) -> int:
        start, end = day_bounds(day)
        created = 0
        with db_cursor(
            self._conn_factory,
            lock=f"attendance_seed:{day.isoformat()}",
            lock_timeout=self._seed_lock_timeout,
        ) as (_, cur):
            if only_if_day_empty:
                cur.execute(
                    "SELECT COUNT(*) AS n FROM attendance_logs WHERE scanned_at >= %s AND scanned_at < %s",
                    (start, end),
                )
                if int(fetchone(cur)["n"]) > 0:
                    return 0

            for subject in subjects:
                cur.execute(
                    """
                    INSERT INTO attendance_logs
                        (client_uuid, subject_id, subject_type, scanned_at, status, method, match_confidence, synced)
                    SELECT %s, %s, %s, %s, 'absent', 'system', NULL, 1
                    FROM DUAL
                    WHERE NOT EXISTS (
                        SELECT 1 FROM attendance_logs
                        WHERE subject_type=%s AND subject_id=%s AND scanned_at >= %s AND scanned_at < %s
                    )
                    """,
                    (
                        str(uuid.uuid4()),
                        int(subject.subject_id),
                        subject.subject_type.value,
                        start,
                        subject.subject_type.value,
                        int(subject.subject_id),
                        start,
                        end,
                    ),
                )
                created += cur.rowcount
        return created

    def set_sync_state(self, client_uuid: str, *, syncing: bool, synced: Optional[bool] = None) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            if synced is None:
                cur.execute(
                    "UPDATE attendance_logs SET syncing=%s WHERE client_uuid=%s",
                    (int(syncing), client_uuid),
                )
            else:
                cur.execute(
                    "UPDATE attendance_logs SET synced=%s, syncing=%s WHERE client_uuid=%s",
                    (int(synced), int(syncing), client_uuid),
                )
            return cur.rowcount > 0

    def list_unsynced(self, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_logs
                WHERE synced=0 AND syncing=0
                ORDER BY id
                LIMIT %s
                """,
                (int(limit),),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_records(self, query: AttendanceQuery) -> Sequence[AttendanceRecord]:
        clauses = ["1=1"]
        params: list[object] = []

        if query.subject_id is not None:
            clauses.append("subject_id=%s")
            params.append(int(query.subject_id))
        if query.subject_type is not None:
            clauses.append("subject_type=%s")
            params.append(query.subject_type.value)
        if query.status is not None:
            clauses.append("status=%s")
            params.append(query.status.value)
        if query.start_date is not None:
            clauses.append("scanned_at >= %s")
            params.append(day_bounds(query.start_date)[0])
        if query.end_date is not None:
            clauses.append("scanned_at < %s")
            params.append(day_bounds(query.end_date)[1])

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_logs WHERE {where} ORDER BY scanned_at DESC, id DESC",
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def count_by_status(
        self,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        subject_type: Optional[SubjectType] = None,
    ) -> Mapping[AttendanceStatus, int]:
        clauses = ["1=1"]
        params: list[object] = []
        if start_date is not None:
            clauses.append("scanned_at >= %s")
            params.append(day_bounds(start_date)[0])
        if end_date is not None:
            clauses.append("scanned_at < %s")
            params.append(day_bounds(end_date)[1])
        if subject_type is not None:
            clauses.append("subject_type=%s")
            params.append(subject_type.value)

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT status, COUNT(*) AS n FROM attendance_logs WHERE {where} GROUP BY status",
                tuple(params),
            )
            return {AttendanceStatus(r["status"]): int(r["n"]) for r in fetchall(cur)}

    def apply_correction(
        self,
        *,
        record_id: int,
        status: AttendanceStatus,
        notes: Optional[str],
        updated_at: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE attendance_logs SET status=%s, notes=%s, updated_at=%s WHERE id=%s",
                (status.value, notes, updated_at, int(record_id)),
            )
            return cur.rowcount > 0

    def delete(self, record_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_logs WHERE id=%s", (int(record_id),))
            return cur.rowcount > 0
