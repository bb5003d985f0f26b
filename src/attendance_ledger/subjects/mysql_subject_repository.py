from __future__ import annotations

from typing import Sequence

from ..core.enums import SubjectType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import SubjectRef
from .repository import SubjectRepository

_TABLES = {
    SubjectType.STUDENT: "students",
    SubjectType.EMPLOYEE: "employees",
}


class MySQLSubjectRepository(SubjectRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[SubjectRef]:
        subjects: list[SubjectRef] = []
        with db_cursor(self._conn_factory) as (_, cur):
            for subject_type, table in _TABLES.items():
                cur.execute(f"SELECT id FROM {table} ORDER BY id")
                subjects.extend(SubjectRef(int(r["id"]), subject_type) for r in fetchall(cur))
        return subjects

    def exists(self, subject: SubjectRef) -> bool:
        table = _TABLES[subject.subject_type]
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT id FROM {table} WHERE id=%s", (int(subject.subject_id),))
            return fetchone(cur) is not None
