"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
MongoDB is the production backend; the in-memory backend serves local
development and the test suite.
"""

from expense_ledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    StorageConnectionError,
    StorageError,
    TransactionStorageInterface,
    UserStorageInterface,
)
from expense_ledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryDatabase,
    InMemoryTransactionStorage,
    InMemoryUserStorage,
)
from expense_ledger.services.storage.mongo import (
    MongoAuditStorage,
    MongoClientManager,
    MongoTransactionStorage,
    MongoUserStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "TransactionStorageInterface",
    "UserStorageInterface",
    # Exceptions
    "DuplicateError",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryDatabase",
    "InMemoryTransactionStorage",
    "InMemoryUserStorage",
    # MongoDB implementation
    "MongoAuditStorage",
    "MongoClientManager",
    "MongoTransactionStorage",
    "MongoUserStorage",
]
