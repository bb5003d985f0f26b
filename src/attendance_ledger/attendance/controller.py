from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ..common.responses import error_response
from ..common.validators import require_enum
from ..core.enums import SubjectType
from ..core.exceptions import NotFoundError, StorageError, ValidationError
from ..container import Container
from ..subjects.model import SubjectRef

logger = logging.getLogger(__name__)

PREFIX = "/api/v1/attendance"


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route(PREFIX, methods=["POST"], endpoint="attendance_log")
    def attendance_log():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            return error_response("Expected a JSON object", 400)
        try:
            record = service.log_scan(payload)
        except NotFoundError as e:
            return error_response(str(e), 404)
        except ValidationError as e:
            return error_response(str(e), 400)
        except StorageError as e:
            logger.error("Error logging attendance: %s", e)
            return error_response("Failed to log attendance", 500, details=str(e))
        return jsonify(record.to_dict()), 201

    @app.route(PREFIX, methods=["GET"], endpoint="attendance_list")
    def attendance_list():
        try:
            records = service.list_logs(request.args)
        except ValidationError as e:
            return error_response(str(e), 400)
        except StorageError as e:
            logger.error("Error fetching attendance logs: %s", e)
            return error_response("Failed to fetch attendance logs", 500, details=str(e))
        return jsonify([r.to_dict() for r in records])

    @app.route(f"{PREFIX}/summary", methods=["GET"], endpoint="attendance_summary")
    def attendance_summary():
        try:
            summary = service.get_summary(request.args)
        except ValidationError as e:
            return error_response(str(e), 400)
        except StorageError as e:
            logger.error("Error fetching attendance summary: %s", e)
            return error_response("Failed to fetch attendance summary", 500, details=str(e))
        return jsonify(summary)

    @app.route(f"{PREFIX}/subject/<subject_type>/<int:subject_id>", methods=["GET"], endpoint="attendance_subject")
    def attendance_subject(subject_type: str, subject_id: int):
        try:
            subject = SubjectRef(subject_id, require_enum(SubjectType, subject_type, "subject_type"))
            records = service.get_subject_history(
                subject,
                start_date=request.args.get("start_date"),
                end_date=request.args.get("end_date"),
            )
        except ValidationError as e:
            return error_response(str(e), 400)
        except StorageError as e:
            logger.error("Error fetching attendance for %s/%s: %s", subject_type, subject_id, e)
            return error_response("Failed to fetch user attendance", 500, details=str(e))
        return jsonify([r.to_dict() for r in records])

    @app.route(f"{PREFIX}/<int:record_id>", methods=["PUT"], endpoint="attendance_update")
    def attendance_update(record_id: int):
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            return error_response("Expected a JSON object", 400)
        try:
            record = service.correct(record_id, payload)
        except NotFoundError as e:
            return error_response(str(e), 404)
        except ValidationError as e:
            return error_response(str(e), 400)
        except StorageError as e:
            logger.error("Error updating attendance %s: %s", record_id, e)
            return error_response("Failed to update attendance", 500, details=str(e))
        return jsonify(record.to_dict())

    @app.route(f"{PREFIX}/<int:record_id>", methods=["DELETE"], endpoint="attendance_delete")
    def attendance_delete(record_id: int):
        try:
            service.delete(record_id)
        except NotFoundError as e:
            return error_response(str(e), 404)
        except StorageError as e:
            logger.error("Error deleting attendance %s: %s", record_id, e)
            return error_response("Failed to delete attendance record", 500, details=str(e))
        return "", 204
