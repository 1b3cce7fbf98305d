"""
In-Memory Storage Implementation

Dict-backed storage with the same semantics as the MongoDB backend:
unique emails, owner-scoped transaction lookups, newest-first listing.

Selected with STORAGE_BACKEND=memory for local development, and used by
the test suite. Nothing survives a restart.

Every method completes without awaiting, so each call is atomic on the
event loop; that includes the ledger write pairs.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from expense_ledger.models.audit import AuditEvent
from expense_ledger.models.ledger import Transaction, TransactionType, User, utc_now
from expense_ledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    StorageError,
    TransactionStorageInterface,
    UserStorageInterface,
)


class InMemoryDatabase:
    """Shared state for the in-memory stores."""

    def __init__(self):
        self.users: dict[str, User] = {}
        self.transactions: dict[str, Transaction] = {}
        self.audit_events: list[AuditEvent] = []


class InMemoryUserStorage(UserStorageInterface):
    """In-memory implementation of user storage."""

    def __init__(self, database: Optional[InMemoryDatabase] = None):
        self._db = database or InMemoryDatabase()

    async def create_user(self, user: User) -> User:
        if any(existing.email == user.email for existing in self._db.users.values()):
            raise DuplicateError(f"Email already registered: {user.email}")
        self._db.users[user.id] = user.model_copy(deep=True)
        return user

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        user = self._db.users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        for user in self._db.users.values():
            if user.email == email:
                return user.model_copy(deep=True)
        return None

    async def set_reset_code(
        self,
        user_id: str,
        code_hash: str,
        expires_at: datetime,
    ) -> bool:
        user = self._db.users.get(user_id)
        if user is None:
            return False
        user.reset_code_hash = code_hash
        user.reset_code_expires_at = expires_at
        user.updated_at = utc_now()
        return True

    async def replace_password(self, user_id: str, password_hash: str) -> bool:
        user = self._db.users.get(user_id)
        if user is None:
            return False
        user.password_hash = password_hash
        user.reset_code_hash = None
        user.reset_code_expires_at = None
        user.updated_at = utc_now()
        return True


class InMemoryTransactionStorage(TransactionStorageInterface):
    """In-memory implementation of ledger storage."""

    def __init__(self, database: Optional[InMemoryDatabase] = None):
        self._db = database or InMemoryDatabase()

    def _adjust_balance(self, user_id: str, balance_delta: Decimal) -> None:
        user = self._db.users.get(user_id)
        if user is None:
            raise StorageError(f"Cannot adjust balance, user not found: {user_id}")
        user.balance += balance_delta
        user.updated_at = utc_now()

    async def apply_transaction(
        self,
        transaction: Transaction,
        balance_delta: Decimal,
    ) -> None:
        if transaction.user_id not in self._db.users:
            raise StorageError(f"Cannot record transaction, user not found: {transaction.user_id}")
        self._db.transactions[transaction.id] = transaction.model_copy(deep=True)
        self._adjust_balance(transaction.user_id, balance_delta)

    async def revert_transaction(
        self,
        transaction: Transaction,
        balance_delta: Decimal,
    ) -> bool:
        stored = self._db.transactions.get(transaction.id)
        if stored is None or stored.user_id != transaction.user_id:
            return False
        self._adjust_balance(transaction.user_id, balance_delta)
        del self._db.transactions[transaction.id]
        return True

    async def get_transaction(
        self,
        user_id: str,
        transaction_id: str,
    ) -> Optional[Transaction]:
        transaction = self._db.transactions.get(transaction_id)
        if transaction is None or transaction.user_id != user_id:
            return None
        return transaction.model_copy(deep=True)

    def _matching(
        self,
        user_id: str,
        transaction_type: Optional[TransactionType],
    ) -> list[Transaction]:
        return [
            t for t in self._db.transactions.values()
            if t.user_id == user_id
            and (transaction_type is None or t.type == transaction_type)
        ]

    async def list_transactions(
        self,
        user_id: str,
        transaction_type: Optional[TransactionType] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[Transaction]:
        matches = self._matching(user_id, transaction_type)
        # Ids are ObjectIds, so they also increase with creation time
        matches.sort(key=lambda t: (t.created_at, t.id), reverse=True)
        return [t.model_copy(deep=True) for t in matches[offset:offset + limit]]

    async def count_transactions(
        self,
        user_id: str,
        transaction_type: Optional[TransactionType] = None,
    ) -> int:
        return len(self._matching(user_id, transaction_type))


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only in-memory audit log."""

    def __init__(self, database: Optional[InMemoryDatabase] = None):
        self._db = database or InMemoryDatabase()

    async def append_event(self, event: AuditEvent) -> bool:
        self._db.audit_events.append(event)
        return True
