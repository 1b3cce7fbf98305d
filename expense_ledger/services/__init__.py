"""Services package."""

from expense_ledger.services.mail import (
    MailMessage,
    MailServiceInterface,
    SmtpMailService,
)
from expense_ledger.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryDatabase,
    InMemoryTransactionStorage,
    InMemoryUserStorage,
    MongoAuditStorage,
    MongoClientManager,
    MongoTransactionStorage,
    MongoUserStorage,
    StorageConnectionError,
    StorageError,
    TransactionStorageInterface,
    UserStorageInterface,
)

__all__ = [
    # Mail services
    "MailMessage",
    "MailServiceInterface",
    "SmtpMailService",
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryDatabase",
    "InMemoryTransactionStorage",
    "InMemoryUserStorage",
    "MongoAuditStorage",
    "MongoClientManager",
    "MongoTransactionStorage",
    "MongoUserStorage",
    "StorageConnectionError",
    "StorageError",
    "TransactionStorageInterface",
    "UserStorageInterface",
]
