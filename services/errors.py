"""
Service-level error taxonomy.

Every error carries the HTTP status and the machine-readable code used in the
error envelope, so the Flask layer can map them without knowing each type.
"""
from __future__ import annotations


class ServiceError(Exception):
    status = 400
    error = "BAD_REQUEST"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(ServiceError):
    """Missing or malformed input."""
    status = 422
    error = "VALIDATION_ERROR"


class AuthenticationError(ServiceError):
    """Bad credentials or an unusable token; never says which part was wrong."""
    status = 401
    error = "UNAUTHORIZED"


class ConflictError(ServiceError):
    status = 409
    error = "CONFLICT"


class NotFoundError(ServiceError):
    status = 404
    error = "NOT_FOUND"


class InternalError(ServiceError):
    """Server-side fault. The message is logged, never sent to the client."""
    status = 500
    error = "INTERNAL_ERROR"


class TokenSigningError(InternalError):
    """Signing is misconfigured (missing secret, unsupported algorithm)."""


class UploadError(ServiceError):
    status = 502
    error = "UPLOAD_FAILED"
