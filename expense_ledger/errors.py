"""
Error taxonomy for Expense Ledger.

Every failure a client can see is one of these. Each carries the HTTP
status it maps to and a stable machine-readable code; the API layer
turns them into JSON without knowing anything about individual errors.
"""

from typing import Any, Optional


class LedgerError(Exception):
    """Base exception for all client-visible failures."""

    status_code: int = 500
    code: str = "ledger_error"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"message": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(LedgerError):
    """Input is missing, of the wrong type, or breaks a policy."""

    status_code = 400
    code = "validation_error"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.field = field
        details = dict(details or {})
        if field:
            details.setdefault("field", field)
        super().__init__(message, details)


class ConflictError(LedgerError):
    """The email address is already registered."""

    status_code = 400
    code = "conflict"


class NotFoundError(LedgerError):
    """User or transaction does not exist."""

    status_code = 404
    code = "not_found"


class AuthenticationError(LedgerError):
    """Credentials were checked and did not match."""

    status_code = 401
    code = "authentication_failed"


class UnauthorizedError(LedgerError):
    """Session token missing, malformed, tampered with or expired."""

    status_code = 401
    code = "unauthorized"


class InvalidCodeError(LedgerError):
    """Reset code does not match the stored hash."""

    status_code = 400
    code = "invalid_reset_code"


class ExpiredCodeError(LedgerError):
    """Reset code matched but its expiration has passed."""

    status_code = 400
    code = "expired_reset_code"


class DeliveryError(LedgerError):
    """Mail could not be handed to the delivery service."""

    status_code = 500
    code = "delivery_failed"


class InternalError(LedgerError):
    """Anything unexpected, including storage failures."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "Internal server error", error: Optional[str] = None):
        self.error = error
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["error"] = self.error or "An unexpected error occurred"
        return body
