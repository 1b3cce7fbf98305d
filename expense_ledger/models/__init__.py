"""
Data Models Package

This package contains all Pydantic models used in the Expense Ledger.
All data flowing through the system must conform to these schemas.
"""

from expense_ledger.models.ledger import (
    Dashboard,
    LoginResult,
    Money,
    PublicUser,
    Transaction,
    TransactionPage,
    TransactionType,
    User,
    new_object_id,
    utc_now,
)
from expense_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Dashboard",
    "LoginResult",
    "Money",
    "PublicUser",
    "Transaction",
    "TransactionPage",
    "TransactionType",
    "User",
    "new_object_id",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
