from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .attendance.ledger import DailyLedgerInitializer
from .attendance.merger import RecordMerger
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .common.datetime_utils import now_local
from .core.constants import SEED_LOCK_TIMEOUT_SECONDS, SYNC_BATCH_SIZE, SYNC_RETRY_DELAY_SECONDS, SYNC_TIMEOUT_SECONDS
from .database.connection import DatabaseConnection, DBConfig
from .settings.mysql_settings_repository import MySQLSettingsRepository
from .settings.provider import SettingsProvider
from .settings.repository import SettingsRepository
from .subjects.mysql_subject_repository import MySQLSubjectRepository
from .subjects.repository import SubjectRepository
from .sync.queue import SyncQueue
from .sync.scheduler import Scheduler
from .sync.service import SyncService
from .sync.transport import HttpSyncTransport, SyncTransport


@dataclass(frozen=True)
class Container:
    attendance_repo: AttendanceRepository
    subjects_repo: SubjectRepository
    settings_repo: SettingsRepository

    settings_provider: SettingsProvider
    ledger: DailyLedgerInitializer
    sync_queue: SyncQueue
    attendance_service: AttendanceService
    sync_service: SyncService

    conn: Optional[DatabaseConnection] = None


def assemble_container(
    *,
    attendance_repo: AttendanceRepository,
    subjects_repo: SubjectRepository,
    settings_repo: SettingsRepository,
    transport: SyncTransport,
    scheduler: Optional[Scheduler] = None,
    sync_batch_size: int = SYNC_BATCH_SIZE,
    sync_retry_delay: float = SYNC_RETRY_DELAY_SECONDS,
    requeue_on_failure: bool = False,
    conn: Optional[DatabaseConnection] = None,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    """Wire services over already-built repositories (MySQL or in-memory)."""

    settings_provider = SettingsProvider(settings_repo)
    ledger = DailyLedgerInitializer(attendance_repo, subjects_repo)
    sync_queue = SyncQueue(
        attendance_repo,
        transport,
        scheduler=scheduler,
        batch_size=sync_batch_size,
        retry_delay=sync_retry_delay,
        requeue_on_failure=requeue_on_failure,
    )
    attendance_service = AttendanceService(
        attendance_repo,
        subjects_repo,
        settings_provider,
        ledger=ledger,
        merger=RecordMerger(attendance_repo, clock=clock),
        sync_queue=sync_queue,
        clock=clock,
    )
    sync_service = SyncService(attendance_repo, transport=transport)

    return Container(
        attendance_repo=attendance_repo,
        subjects_repo=subjects_repo,
        settings_repo=settings_repo,
        settings_provider=settings_provider,
        ledger=ledger,
        sync_queue=sync_queue,
        attendance_service=attendance_service,
        sync_service=sync_service,
        conn=conn,
    )


def build_container(
    *,
    db_config: dict,
    sync_endpoint: str,
    sync_timeout: float = SYNC_TIMEOUT_SECONDS,
    sync_batch_size: int = SYNC_BATCH_SIZE,
    sync_retry_delay: float = SYNC_RETRY_DELAY_SECONDS,
    requeue_on_failure: bool = False,
    seed_lock_timeout: int = SEED_LOCK_TIMEOUT_SECONDS,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    return assemble_container(
        attendance_repo=MySQLAttendanceRepository(conn, seed_lock_timeout=seed_lock_timeout),
        subjects_repo=MySQLSubjectRepository(conn),
        settings_repo=MySQLSettingsRepository(conn),
        transport=HttpSyncTransport(sync_endpoint, timeout=sync_timeout),
        sync_batch_size=sync_batch_size,
        sync_retry_delay=sync_retry_delay,
        requeue_on_failure=requeue_on_failure,
        conn=conn,
    )


def build_container_from_settings(settings) -> Container:
    """Build from a settings module (see `attendance_ledger.config`)."""

    return build_container(
        db_config=dict(settings.DB_CONFIG),
        sync_endpoint=str(settings.SYNC_ENDPOINT),
        sync_timeout=getattr(settings, "SYNC_TIMEOUT_SECONDS", SYNC_TIMEOUT_SECONDS),
        sync_batch_size=getattr(settings, "SYNC_BATCH_SIZE", SYNC_BATCH_SIZE),
        sync_retry_delay=getattr(settings, "SYNC_RETRY_DELAY_SECONDS", SYNC_RETRY_DELAY_SECONDS),
        requeue_on_failure=bool(getattr(settings, "SYNC_REQUEUE_ON_FAILURE", False)),
        seed_lock_timeout=getattr(settings, "SEED_LOCK_TIMEOUT_SECONDS", SEED_LOCK_TIMEOUT_SECONDS),
    )
