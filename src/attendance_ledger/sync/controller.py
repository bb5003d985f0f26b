from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ..attendance.controller import PREFIX
from ..common.responses import error_response
from ..core.exceptions import StorageError, SyncTransportError, ValidationError
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    service = container.sync_service

    @app.route(f"{PREFIX}/sync", methods=["POST"], endpoint="attendance_sync")
    def attendance_sync():
        try:
            results = service.ingest(request.get_json(silent=True))
        except ValidationError as e:
            return error_response(str(e), 400)
        return jsonify({"results": [r.to_dict() for r in results]})

    @app.route(f"{PREFIX}/unsynced", methods=["GET"], endpoint="attendance_unsynced")
    def attendance_unsynced():
        try:
            batch = service.list_unsynced()
        except StorageError as e:
            logger.error("Error checking for unsynced records: %s", e)
            return error_response("Failed to check for unsynced records", 500, details=str(e))
        return jsonify(batch.to_dict())

    @app.route(f"{PREFIX}/manual-sync", methods=["POST"], endpoint="attendance_manual_sync")
    def attendance_manual_sync():
        try:
            report = service.reconcile()
        except ValidationError as e:
            return error_response(str(e), 400)
        except SyncTransportError as e:
            logger.error("Manual sync failed: %s", e)
            return error_response("Manual sync failed", 502, details=str(e))
        except StorageError as e:
            logger.error("Manual sync failed: %s", e)
            return error_response("Manual sync failed", 500, details=str(e))
        return jsonify(report.to_dict())
