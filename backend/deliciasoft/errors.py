# Overview: Error taxonomy shared by services and routes, plus JSON rendering helpers.

"""
Every service raises one of these; routes render them with ``error_response``.

Status mapping:
- ValidationError            400  missing/malformed input (lists every missing field)
- AuthenticationError        401  bad credentials, expired/invalid codes
- NotFoundError              404  referenced entity does not exist
- InsufficientInventoryError 409  direct sale asks for more than on hand
- ReferentialIntegrityError  400  foreign-key style violation
- UpstreamServiceError       502  email / CAPTCHA / image collaborator failed
"""

from __future__ import annotations

import traceback

from flask import current_app, jsonify


class AppError(Exception):
    """Base class for errors that map to a user-facing HTTP response."""
    status_code = 400
    code = "ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, missing_fields: list[str] | None = None, details: dict | None = None):
        details = dict(details or {})
        if missing_fields:
            details["missing_fields"] = list(missing_fields)
        super().__init__(message, details)
        self.missing_fields = list(missing_fields or [])


class AuthenticationError(AppError):
    status_code = 401
    code = "AUTHENTICATION_FAILED"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"


class InsufficientInventoryError(ConflictError):
    code = "INSUFFICIENT_INVENTORY"

    def __init__(self, product_id: int, location_id: int, available, requested):
        super().__init__(
            f"Insufficient inventory for product {product_id}: available {available}, requested {requested}",
            details={
                "product_id": product_id,
                "location_id": location_id,
                "available": str(available),
                "requested": str(requested),
            },
        )
        self.product_id = product_id
        self.location_id = location_id
        self.available = available
        self.requested = requested


class ReferentialIntegrityError(AppError):
    status_code = 400
    code = "REFERENTIAL_INTEGRITY"


class UpstreamServiceError(AppError):
    status_code = 502
    code = "UPSTREAM_ERROR"


def require_fields(data: dict, fields: list[str]) -> None:
    """Raise a single ValidationError naming every missing or blank field."""
    missing = [f for f in fields if data.get(f) is None or (isinstance(data.get(f), str) and not data[f].strip())]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", missing_fields=missing)


def error_response(exc: AppError):
    return jsonify(exc.to_dict()), exc.status_code


def internal_error_response(exc: Exception, log_message: str):
    """Log the failure and return a 500; stack traces only leave the server outside production."""
    current_app.logger.exception(log_message)
    body = {"error": "Internal server error", "code": "INTERNAL_ERROR"}
    if current_app.config.get("APP_ENV") != "production":
        body["message"] = str(exc)
        body["trace"] = traceback.format_exc()
    return jsonify(body), 500
