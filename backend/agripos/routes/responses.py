# Overview: Shared JSON error responses for API routes.

from __future__ import annotations

from flask import current_app, jsonify, request

from ..extensions import db
from ..services.errors import ServiceError, ValidationError


def service_error(e: ServiceError):
    """Map a domain error to its HTTP status with a JSON body."""
    return jsonify({"error": e.message, "details": e.details}), e.status_code


def internal_error(message: str):
    db.session.rollback()
    current_app.logger.exception(message)
    return jsonify({"error": "Internal server error"}), 500


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def optional_bool(data: dict, key: str) -> bool | None:
    """A JSON boolean field; absent or null gives None."""
    value = data.get(key)
    if value is None or isinstance(value, bool):
        return value
    raise ValidationError(f"{key} must be true or false")
