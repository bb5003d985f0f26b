from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Deque, Optional, Sequence

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..core.constants import SYNC_BATCH_SIZE, SYNC_RETRY_DELAY_SECONDS
from ..core.exceptions import StorageError, SyncTransportError
from .scheduler import ScheduledCall, Scheduler, ThreadingScheduler
from .transport import SyncTransport

logger = logging.getLogger(__name__)


class SyncQueue:
    """Producer side of offline sync.

    Records produced while disconnected are buffered (FIFO, unbounded) and
    flushed in batches of `batch_size`; at most one flush runs at a time.

    When a batch fails to send, its records are marked `syncing = false` and
    the flush loop is retried after `retry_delay` seconds. The failed batch is
    NOT put back into the buffer (unless `requeue_on_failure`): those records
    are recovered through the unsynced query / manual reconciliation path.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        transport: SyncTransport,
        *,
        scheduler: Optional[Scheduler] = None,
        batch_size: int = SYNC_BATCH_SIZE,
        retry_delay: float = SYNC_RETRY_DELAY_SECONDS,
        requeue_on_failure: bool = False,
    ):
        if int(batch_size) <= 0:
            raise ValueError("batch_size must be positive")

        self._attendance = attendance
        self._transport = transport
        self._scheduler = scheduler or ThreadingScheduler()
        self._batch_size = int(batch_size)
        self._retry_delay = float(retry_delay)
        self._requeue_on_failure = bool(requeue_on_failure)

        self._lock = threading.Lock()
        self._buffer: Deque[AttendanceRecord] = deque()
        self._flushing = False
        self._flush_scheduled = False
        self._retry: Optional[ScheduledCall] = None
        self._closed = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)

    @property
    def is_flushing(self) -> bool:
        with self._lock:
            return self._flushing

    def enqueue(self, record: AttendanceRecord) -> None:
        with self._lock:
            if self._closed:
                logger.warning("Sync queue closed; %s left for reconciliation", record.client_uuid)
                return
            self._buffer.append(record)
            if self._flushing or self._flush_scheduled:
                return
            self._flush_scheduled = True
        self._scheduler.call_later(0, self.flush)

    def flush(self) -> int:
        """Send one batch. Returns the number of records confirmed as synced."""

        with self._lock:
            self._flush_scheduled = False
            if self._flushing or self._closed or not self._buffer:
                return 0
            self._flushing = True
            batch = [self._buffer.popleft() for _ in range(min(self._batch_size, len(self._buffer)))]

        sent = False
        try:
            sent = self._send(batch)
        finally:
            with self._lock:
                self._flushing = False
                schedule_next = sent and bool(self._buffer) and not self._closed and not self._flush_scheduled
                if schedule_next:
                    self._flush_scheduled = True

        if not sent:
            self._schedule_retry()
            return 0
        if schedule_next:
            self._scheduler.call_later(0, self.flush)
        return len(batch)

    def close(self) -> None:
        """Stop scheduling flushes and cancel a pending retry."""

        with self._lock:
            self._closed = True
            retry, self._retry = self._retry, None
        if retry is not None:
            retry.cancel()

    def _send(self, batch: Sequence[AttendanceRecord]) -> bool:
        logger.info("Syncing %d attendance records...", len(batch))
        self._mark(batch, syncing=True)
        try:
            self._transport.send([r.to_sync_payload() for r in batch])
        except SyncTransportError as e:
            logger.error("Error syncing attendance records: %s", e)
            self._mark(batch, syncing=False)
            if self._requeue_on_failure:
                with self._lock:
                    self._buffer.extendleft(reversed(batch))
            return False

        self._mark(batch, syncing=False, synced=True)
        logger.info("Successfully synced %d attendance records", len(batch))
        return True

    def _mark(self, batch: Sequence[AttendanceRecord], *, syncing: bool, synced: Optional[bool] = None) -> None:
        for record in batch:
            try:
                self._attendance.set_sync_state(record.client_uuid, syncing=syncing, synced=synced)
            except StorageError as e:
                logger.warning("Could not update sync state of %s: %s", record.client_uuid, e)

    def _schedule_retry(self) -> None:
        with self._lock:
            if self._closed:
                return
            previous = self._retry
        if previous is not None:
            previous.cancel()
        handle = self._scheduler.call_later(self._retry_delay, self._run_retry)
        with self._lock:
            self._retry = handle

    def _run_retry(self) -> None:
        with self._lock:
            self._retry = None
        self.flush()
