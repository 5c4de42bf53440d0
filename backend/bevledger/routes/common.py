# backend/bevledger/routes/common.py
from flask import current_app, request

from ..store import StoreError
from ..time_utils import parse_iso_date
from ..validation import ValidationError, ConflictError, NotFoundError


def json_error(exc: Exception):
    """Map service exceptions onto (body, status)."""
    if isinstance(exc, ConflictError):
        return {"error": str(exc)}, 409
    if isinstance(exc, ValidationError):
        return {"error": str(exc)}, 400
    if isinstance(exc, NotFoundError):
        return {"error": str(exc)}, 404
    if isinstance(exc, StoreError):
        current_app.logger.exception("Store failure")
        return {"error": "Database error"}, 500
    current_app.logger.exception("Unhandled error")
    return {"error": "Internal server error"}, 500


def date_arg(name: str):
    """Optional ISO date query parameter; raises ValidationError when malformed."""
    raw = request.args.get(name)
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date")


def int_arg(name: str, default=None):
    """Optional integer query parameter; raises ValidationError when malformed."""
    raw = request.args.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


def json_body() -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload
