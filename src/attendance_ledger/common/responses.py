from __future__ import annotations

from typing import Optional

from flask import jsonify


def error_response(message: str, status_code: int, *, details: Optional[str] = None):
    """Structured error body shared by the JSON endpoints."""

    body = {"status": "error", "message": message}
    if details:
        body["details"] = details
    return jsonify(body), status_code
