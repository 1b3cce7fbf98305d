"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run against MongoDB in production
2. Use in-memory storage for development and testing
3. Keep ledger rules decoupled from the document store

The ledger write pairs (insert + balance change, balance change + delete)
are single interface methods. That lets a backend make them atomic when
it can, without the ledger engine knowing how.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Optional

from expense_ledger.models.audit import AuditEvent
from expense_ledger.models.ledger import Transaction, TransactionType, User


class UserStorageInterface(ABC):
    """
    Abstract interface for user storage operations.

    Emails are stored already normalized; lookups expect normalized input.
    """

    @abstractmethod
    async def create_user(self, user: User) -> User:
        """
        Insert a new user.

        Raises:
            DuplicateError: If the email is already taken
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        """Return the user or None."""
        pass

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Return the user with this normalized email or None."""
        pass

    @abstractmethod
    async def set_reset_code(
        self,
        user_id: str,
        code_hash: str,
        expires_at: datetime,
    ) -> bool:
        """
        Store a reset code hash and its expiration in one update.

        Returns:
            True if the user existed and was updated
        """
        pass

    @abstractmethod
    async def replace_password(self, user_id: str, password_hash: str) -> bool:
        """
        Set a new password hash and clear both reset-code fields
        in one update.

        Returns:
            True if the user existed and was updated
        """
        pass


class TransactionStorageInterface(ABC):
    """
    Abstract interface for ledger storage.

    Implementations must never persist a negative amount.
    """

    @abstractmethod
    async def apply_transaction(
        self,
        transaction: Transaction,
        balance_delta: Decimal,
    ) -> None:
        """
        Insert the transaction, then add balance_delta to the owner's balance.

        Raises:
            StorageError: If either write fails. The insert may already
                have happened unless the backend runs both atomically.
        """
        pass

    @abstractmethod
    async def revert_transaction(
        self,
        transaction: Transaction,
        balance_delta: Decimal,
    ) -> bool:
        """
        Delete the transaction, then add balance_delta to the owner's balance.

        The balance is only touched when a document was actually removed.

        Returns:
            False if the transaction was already gone

        Raises:
            StorageError: If either write fails
        """
        pass

    @abstractmethod
    async def get_transaction(
        self,
        user_id: str,
        transaction_id: str,
    ) -> Optional[Transaction]:
        """Return the transaction if it exists and belongs to user_id."""
        pass

    @abstractmethod
    async def list_transactions(
        self,
        user_id: str,
        transaction_type: Optional[TransactionType] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[Transaction]:
        """
        List a user's transactions, newest first.

        Args:
            user_id: Owner
            transaction_type: Only this type if given
            limit: Maximum number of results
            offset: Number of results to skip
        """
        pass

    @abstractmethod
    async def count_transactions(
        self,
        user_id: str,
        transaction_type: Optional[TransactionType] = None,
    ) -> int:
        """Count a user's transactions with the same filter as list_transactions."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
