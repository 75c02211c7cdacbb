"""
Domain errors raised by the transaction services.

Each error carries the HTTP status it maps to and a stable machine code;
gcdl.app.main renders them as {"detail": ..., "code": ...}.
"""

from __future__ import annotations

from decimal import Decimal


class GCDLError(Exception):
    status_code = 500
    code = "error"
    default_message = "Server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class AccessDenied(GCDLError):
    status_code = 403
    code = "access_denied"
    default_message = "Access denied"


class NotFound(GCDLError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class ValidationError(GCDLError):
    status_code = 400
    code = "validation_error"
    default_message = "Validation failed"


class InsufficientStock(GCDLError):
    status_code = 400
    code = "insufficient_stock"
    default_message = "Insufficient stock"

    def __init__(self, *, available: Decimal | None = None, requested: Decimal | None = None) -> None:
        self.available = available
        self.requested = requested
        message = self.default_message
        if available is not None:
            message = f"{message} (available={available})"
        super().__init__(message)


class ConflictAlreadyExists(GCDLError):
    status_code = 400
    code = "already_exists"
    default_message = "Already exists"


class PersistenceFailure(GCDLError):
    status_code = 500
    code = "persistence_failure"
    default_message = "Storage failure, transaction rolled back"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            f"{self.default_message}: {message}" if message else self.default_message
        )
