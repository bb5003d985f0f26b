from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .repository import SettingsRepository


class MySQLSettingsRepository(SettingsRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_flat_row(self) -> Optional[Mapping[str, Any]]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT attendance_start_time, attendance_end_time, late_threshold_minutes
                FROM attendance_settings
                ORDER BY id
                LIMIT 1
                """
            )
            return fetchone(cur)

    def get_key_values(self, keys: Sequence[str]) -> Mapping[str, Any]:
        if not keys:
            return {}
        placeholders = ",".join(["%s"] * len(keys))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT `key`, `value` FROM settings WHERE `key` IN ({placeholders})",
                tuple(keys),
            )
            return {r["key"]: r["value"] for r in fetchall(cur)}
