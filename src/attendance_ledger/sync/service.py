from __future__ import annotations

import logging
from typing import Any, Optional

from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..core.constants import UNSYNCED_QUERY_LIMIT
from ..core.enums import SyncOutcome
from ..core.exceptions import DuplicateRecordError, StorageError, ValidationError
from .model import IncomingRecord, ReconcileReport, SyncResult, UnsyncedBatch
from .transport import SyncTransport

logger = logging.getLogger(__name__)

_CONFIRMED = {SyncOutcome.SYNCED.value, SyncOutcome.DUPLICATE.value}


class SyncService:
    """Consumer side of offline sync plus the unsynced/reconcile pull path."""

    def __init__(self, attendance: AttendanceRepository, *, transport: Optional[SyncTransport] = None):
        self._attendance = attendance
        self._transport = transport

    def ingest(self, payload: Any) -> list[SyncResult]:
        """Idempotent upsert keyed by client_uuid; one result per input record."""

        if not isinstance(payload, list):
            raise ValidationError("Expected an array of attendance records")
        if not payload:
            raise ValidationError("Expected a non-empty array of attendance records")

        results = [self._ingest_one(raw) for raw in payload]
        logger.info(
            "Ingested %d records (%d synced, %d duplicate, %d error)",
            len(results),
            sum(1 for r in results if r.status == SyncOutcome.SYNCED),
            sum(1 for r in results if r.status == SyncOutcome.DUPLICATE),
            sum(1 for r in results if r.status == SyncOutcome.ERROR),
        )
        return results

    def _ingest_one(self, raw: Any) -> SyncResult:
        client_uuid = raw.get("client_uuid") if isinstance(raw, dict) else None
        try:
            incoming = IncomingRecord.from_payload(raw)
            existing = self._attendance.get_by_client_uuid(incoming.client_uuid)
            if existing is not None:
                return SyncResult(incoming.client_uuid, SyncOutcome.DUPLICATE, record_id=existing.record_id)

            try:
                record_id = self._attendance.create_record(
                    client_uuid=incoming.client_uuid,
                    subject=incoming.subject,
                    timestamp=incoming.timestamp,
                    status=incoming.status,
                    method=incoming.method,
                    match_confidence=incoming.match_confidence,
                    synced=True,
                )
            except DuplicateRecordError:
                # Lost a race with a concurrent ingest of the same client_uuid.
                existing = self._attendance.get_by_client_uuid(incoming.client_uuid)
                if existing is None:
                    raise
                return SyncResult(incoming.client_uuid, SyncOutcome.DUPLICATE, record_id=existing.record_id)

            return SyncResult(incoming.client_uuid, SyncOutcome.SYNCED, record_id=record_id)
        except (ValidationError, StorageError) as e:
            logger.error("Error processing record %s: %s", client_uuid, e)
            return SyncResult(client_uuid, SyncOutcome.ERROR, error=str(e))

    def list_unsynced(self, limit: int = UNSYNCED_QUERY_LIMIT) -> UnsyncedBatch:
        return UnsyncedBatch(records=tuple(self._attendance.list_unsynced(int(limit))))

    def reconcile(self, limit: int = UNSYNCED_QUERY_LIMIT) -> ReconcileReport:
        """Pull unsynced records and push them to the ingest endpoint in one cycle.

        Records the endpoint reports as synced or duplicate are marked synced;
        the rest stay unsynced for the next cycle. Transport failures propagate.
        """

        pulled = self.list_unsynced(limit)
        if not pulled.count:
            return ReconcileReport(pulled=0)
        if self._transport is None:
            raise ValidationError("No sync endpoint configured")

        # Rows whose in-flight flag could not be set are left for the next cycle.
        records = [r for r in pulled.records if self._mark(r, syncing=True)]
        if not records:
            return ReconcileReport(pulled=pulled.count)
        try:
            results = self._transport.send([r.to_sync_payload() for r in records])
        except Exception:
            for record in records:
                self._mark(record, syncing=False)
            raise

        accepted = {
            str(r.get("client_uuid"))
            for r in results
            if isinstance(r, dict) and r.get("status") in _CONFIRMED
        }
        confirmed = 0
        for record in records:
            done = record.client_uuid in accepted
            if self._mark(record, syncing=False, synced=True if done else None):
                confirmed += int(done)
            else:
                # release so the row reappears in the unsynced query
                self._mark(record, syncing=False)

        logger.info("Reconciled %d of %d unsynced records", confirmed, pulled.count)
        return ReconcileReport(pulled=pulled.count, results=tuple(results), confirmed=confirmed)

    def _mark(self, record: AttendanceRecord, *, syncing: bool, synced: Optional[bool] = None) -> bool:
        try:
            self._attendance.set_sync_state(record.client_uuid, syncing=syncing, synced=synced)
        except StorageError as e:
            logger.warning("Could not update sync state of %s: %s", record.client_uuid, e)
            return False
        return True
