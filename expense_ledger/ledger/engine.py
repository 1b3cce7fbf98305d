"""
Ledger Engine

Applies income and expense entries to a user's running balance.

GUARANTEES:
- Amounts are stored positive; income adds, expense subtracts
- Deleting an entry applies the exact opposite of its original effect,
  so record-then-delete leaves the balance where it started
- Users only ever see or delete their own entries

CONSISTENCY:
The record and its balance change are written as one storage call.
Whether that call is atomic depends on the backend (see
MONGO_USE_TRANSACTIONS). Without atomicity, a failure between the two
writes leaves the balance out of step with the records, and the error
surfaces to the caller as a 500.
"""

import math
from typing import Any, Optional
from uuid import UUID

import structlog

from expense_ledger.audit import AuditLogger
from expense_ledger.errors import NotFoundError
from expense_ledger.models.ledger import (
    Dashboard,
    Transaction,
    TransactionPage,
    TransactionType,
)
from expense_ledger.services.storage import (
    TransactionStorageInterface,
    UserStorageInterface,
)
from expense_ledger.validation import (
    parse_amount,
    parse_transaction_type,
    validate_description,
    validate_object_id,
    validate_pagination,
)


logger = structlog.get_logger(__name__)


class LedgerEngine:
    """
    Income/expense recording, listing and deletion.

    Args:
        users: User storage, for ownership checks and the dashboard
        transactions: Ledger storage
        max_page_size: Largest limit list_transactions accepts
        dashboard_recent_limit: How many entries the dashboard shows
        audit_logger: Audit trail; skipped when None
    """

    def __init__(
        self,
        users: UserStorageInterface,
        transactions: TransactionStorageInterface,
        max_page_size: int = 100,
        dashboard_recent_limit: int = 10,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._users = users
        self._transactions = transactions
        self._max_page_size = max_page_size
        self._dashboard_recent_limit = dashboard_recent_limit
        self._audit_logger = audit_logger

    async def record_income(
        self,
        user_id: str,
        amount: Any,
        description: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """Add an income entry and raise the balance by its amount."""
        return await self._record(
            user_id, TransactionType.INCOME, amount, description, correlation_id
        )

    async def record_expense(
        self,
        user_id: str,
        amount: Any,
        description: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """Add an expense entry and lower the balance by its amount."""
        return await self._record(
            user_id, TransactionType.EXPENSE, amount, description, correlation_id
        )

    async def _record(
        self,
        user_id: str,
        transaction_type: TransactionType,
        amount: Any,
        description: Any,
        correlation_id: Optional[UUID],
    ) -> Transaction:
        """
        Raises:
            ValidationError: Missing, non-numeric, negative or zero amount;
                missing description
            NotFoundError: The owning user no longer exists
        """
        parsed_amount = parse_amount(amount)
        parsed_description = validate_description(description)

        if await self._users.get_user_by_id(user_id) is None:
            raise NotFoundError("User not found")

        transaction = Transaction(
            user_id=user_id,
            amount=parsed_amount,
            type=transaction_type,
            description=parsed_description,
        )
        await self._transactions.apply_transaction(transaction, transaction.balance_effect)

        logger.info(
            "transaction_recorded",
            transaction_id=transaction.id,
            user_id=user_id,
            transaction_type=transaction_type.value,
        )
        if self._audit_logger:
            await self._audit_logger.log_transaction_recorded(
                transaction_id=transaction.id,
                user_id=user_id,
                transaction_type=transaction_type.value,
                amount=str(transaction.amount),
                correlation_id=correlation_id,
            )
        return transaction

    async def list_transactions(
        self,
        user_id: str,
        transaction_type: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> TransactionPage:
        """
        One page of the user's entries, newest first.

        Raises:
            ValidationError: Unknown type filter or out-of-range page/limit
        """
        type_filter = parse_transaction_type(transaction_type)
        page, limit = validate_pagination(page, limit, self._max_page_size)

        total = await self._transactions.count_transactions(user_id, type_filter)
        items = await self._transactions.list_transactions(
            user_id,
            transaction_type=type_filter,
            limit=limit,
            offset=(page - 1) * limit,
        )
        return TransactionPage(
            total_transactions=total,
            current_page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
            transactions=items,
        )

    async def delete_transaction(
        self,
        user_id: str,
        transaction_id: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Remove an entry and undo its balance effect.

        Raises:
            ValidationError: Malformed id
            NotFoundError: No such entry owned by this user
        """
        transaction_id = validate_object_id(
            transaction_id, "transactionId", "Invalid transaction ID"
        )
        transaction = await self._transactions.get_transaction(user_id, transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction not found")

        reversal = -transaction.balance_effect
        # a concurrent delete may have removed it since the lookup
        if not await self._transactions.revert_transaction(transaction, reversal):
            raise NotFoundError("Transaction not found")

        logger.info(
            "transaction_deleted",
            transaction_id=transaction.id,
            user_id=user_id,
        )
        if self._audit_logger:
            await self._audit_logger.log_transaction_deleted(
                transaction_id=transaction.id,
                user_id=user_id,
                balance_delta=str(reversal),
                correlation_id=correlation_id,
            )
        return transaction

    async def dashboard(self, user_id: str) -> Dashboard:
        """
        Profile plus most recent entries.

        Raises:
            NotFoundError: The user no longer exists
        """
        user = await self._users.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")

        recent = await self._transactions.list_transactions(
            user_id,
            limit=self._dashboard_recent_limit,
        )
        return Dashboard(user=user.to_public(), transactions=recent)
