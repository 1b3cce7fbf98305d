"""
Audit Models for Expense Ledger

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every balance change
2. Debugging information when things go wrong
3. A record of authentication and password-reset activity

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Reset codes, passwords and tokens never appear in event details.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from expense_ledger.models.ledger import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Accounts
    USER_REGISTERED = "user_registered"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"

    # Ledger
    TRANSACTION_RECORDED = "transaction_recorded"
    TRANSACTION_DELETED = "transaction_deleted"

    # Password reset
    RESET_REQUESTED = "reset_requested"
    RESET_COMPLETED = "reset_completed"
    RESET_FAILED = "reset_failed"

    # System events
    DELIVERY_FAILED = "delivery_failed"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'user', 'transaction')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events of one request
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.user_registered(user_id, email, correlation_id)
        event = AuditEventBuilder.transaction_recorded(...)
    """

    @staticmethod
    def user_registered(
        user_id: str,
        email: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"User registered: {email}",
            details={"email": email},
            is_user_action=True,
        )

    @staticmethod
    def login_succeeded(
        user_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_SUCCEEDED,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="User logged in",
            is_user_action=True,
        )

    @staticmethod
    def login_failed(
        email: str,
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            correlation_id=correlation_id,
            description=f"Login failed for {email}: {reason}",
            details={"email": email, "reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def transaction_recorded(
        transaction_id: str,
        user_id: str,
        transaction_type: str,
        amount: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{transaction_type.capitalize()} of {amount} recorded",
            details={
                "user_id": user_id,
                "transaction_type": transaction_type,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        user_id: str,
        balance_delta: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction deleted, balance adjusted by {balance_delta}",
            details={
                "user_id": user_id,
                "balance_delta": balance_delta,
            },
            is_user_action=True,
        )

    @staticmethod
    def reset_requested(
        user_id: str,
        expires_at: datetime,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESET_REQUESTED,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Password reset code issued",
            details={"expires_at": expires_at.isoformat()},
            is_user_action=True,
        )

    @staticmethod
    def reset_completed(
        user_id: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESET_COMPLETED,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Password reset completed",
            is_user_action=True,
        )

    @staticmethod
    def reset_failed(
        user_id: str,
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESET_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Password reset rejected: {reason}",
            details={"reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def delivery_failed(
        recipient: str,
        purpose: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DELIVERY_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Mail delivery failed: {purpose}",
            error_message=error_message,
            details={"recipient": recipient, "purpose": purpose},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
