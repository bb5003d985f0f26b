from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import mysql.connector
from mysql.connector import errorcode

from ..core.constants import SEED_LOCK_TIMEOUT_SECONDS
from ..core.exceptions import DuplicateRecordError, StorageError
from .connection import DatabaseConnection


def _acquire_lock(cur, name: str, timeout: int) -> None:
    cur.execute("SELECT GET_LOCK(%s, %s) AS acquired", (name, int(timeout)))
    row = fetchone(cur)
    if not row or int(row["acquired"] or 0) != 1:
        raise StorageError(f"Timed out waiting for lock {name!r}")


def _release_lock(cur, name: str) -> None:
    cur.execute("SELECT RELEASE_LOCK(%s) AS released", (name,))
    cur.fetchall()


@contextmanager
def db_cursor(
    conn_factory: DatabaseConnection,
    *,
    dictionary: bool = True,
    lock: Optional[str] = None,
    lock_timeout: int = SEED_LOCK_TIMEOUT_SECONDS,
):
    """One connection, one transaction.

    Commits when the block exits normally and rolls back otherwise. With `lock`
    set, a named MySQL advisory lock is held for the whole transaction and only
    released after the commit, so the next holder sees the committed rows.
    Driver errors surface as `StorageError`.
    """

    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            if lock:
                _acquire_lock(cur, lock, lock_timeout)
            try:
                yield conn, cur
                conn.commit()
            finally:
                if lock:
                    _release_lock(cur, lock)
        finally:
            cur.close()
    except mysql.connector.IntegrityError as e:
        conn.rollback()
        if e.errno == errorcode.ER_DUP_ENTRY:
            raise DuplicateRecordError(str(e)) from e
        raise StorageError(str(e)) from e
    except mysql.connector.Error as e:
        conn.rollback()
        raise StorageError(str(e)) from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])
