# Overview: Domain error taxonomy shared by services and routes.

"""
Every failure the engine reports to a caller is one of these types.

They are raised before any mutation is applied; the transaction helper in
services/concurrency.py rolls back anything flushed in the meantime. Routes
render them as {"error": message, "details": {...}} with the class status code.
"""

from __future__ import annotations


class PosError(Exception):
    """Base class for typed, caller-visible failures."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(PosError):
    """Malformed or missing input."""
    status_code = 400


class UnauthorizedError(PosError):
    """Role or ownership mismatch."""
    status_code = 403


class NotFoundError(PosError):
    status_code = 404


class ConflictError(PosError):
    """Uniqueness conflict (barcode, username, category name)."""
    status_code = 409


class InsufficientStockError(PosError):
    status_code = 409


class InsufficientPaymentError(PosError):
    status_code = 409


class SessionAlreadyOpenError(PosError):
    status_code = 409


class SessionNotOpenError(PosError):
    status_code = 409


class AlreadyCancelledError(PosError):
    status_code = 409


class StorageUnavailableError(PosError):
    """The database could not complete the request; nothing was committed."""
    status_code = 503
