"""
MongoDB Storage Implementation

DESIGN DECISION: MongoDB is the production backend because:
1. Users and transactions are natural documents
2. The unique index on email gives us the uniqueness guarantee for free
3. $inc gives us per-document atomic balance updates

TRADEOFFS:
- Multi-document transactions need a replica set. With
  MONGO_USE_TRANSACTIONS=false (the default) a ledger write pair is two
  independent writes: a crash between them leaves the balance out of step
  with the records. With it enabled, both writes commit or neither does.
- Amounts are stored as Decimal128 so balances never pick up float drift.

The implementation follows the abstract interface, so the ledger engine
does not know which backend it is running on.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional

import structlog
from bson import ObjectId
from bson.decimal128 import Decimal128
from pymongo import ASCENDING, DESCENDING, AsyncMongoClient
from pymongo.errors import DuplicateKeyError, PyMongoError
from tenacity import retry, stop_after_attempt, wait_exponential

from expense_ledger.config import MongoSettings
from expense_ledger.models.audit import AuditEvent
from expense_ledger.models.ledger import Transaction, TransactionType, User, utc_now
from expense_ledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    StorageConnectionError,
    StorageError,
    TransactionStorageInterface,
    UserStorageInterface,
)


logger = structlog.get_logger(__name__)


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal128):
        return value.to_decimal()
    return Decimal(str(value))


def _object_id(value: str) -> Optional[ObjectId]:
    return ObjectId(value) if ObjectId.is_valid(value) else None


class MongoClientManager:
    """
    Low-level MongoDB client wrapper.

    Owns the driver client, provides retry logic for the startup
    connection check and creates the indexes the stores rely on.
    """

    def __init__(self, settings: MongoSettings):
        self._settings = settings
        self._client: Optional[AsyncMongoClient] = None

    @property
    def settings(self) -> MongoSettings:
        return self._settings

    @property
    def client(self) -> AsyncMongoClient:
        if self._client is None:
            self._client = AsyncMongoClient(
                self._settings.uri,
                tz_aware=True,
                uuidRepresentation="standard",
                serverSelectionTimeoutMS=self._settings.server_selection_timeout_ms,
            )
        return self._client

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def connect(self) -> None:
        """
        Check the server is reachable.

        Raises:
            StorageConnectionError: After three failed attempts
        """
        try:
            await self.client.admin.command("ping")
        except PyMongoError as e:
            logger.warning("mongo_ping_failed", error=str(e))
            raise StorageConnectionError(f"Failed to connect to MongoDB: {e}") from e
        logger.info("mongo_connected", database=self._settings.database)

    def get_database(self):
        return self.client[self._settings.database]

    @property
    def users(self):
        return self.get_database()[self._settings.users_collection]

    @property
    def transactions(self):
        return self.get_database()[self._settings.transactions_collection]

    @property
    def audit_log(self):
        return self.get_database()[self._settings.audit_collection]

    async def ensure_indexes(self) -> None:
        """Create the unique email index and the per-user listing index."""
        try:
            await self.users.create_index([("email", ASCENDING)], unique=True)
            await self.transactions.create_index(
                [("user", ASCENDING), ("created_at", DESCENDING), ("_id", DESCENDING)]
            )
        except PyMongoError as e:
            raise StorageError(f"Failed to create indexes: {e}") from e

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None


class MongoUserStorage(UserStorageInterface):
    """MongoDB implementation of user storage."""

    def __init__(self, manager: MongoClientManager):
        self._manager = manager

    def _user_to_doc(self, user: User) -> dict:
        return {
            "_id": ObjectId(user.id),
            "name": user.name,
            "email": user.email,
            "password_hash": user.password_hash,
            "balance": Decimal128(user.balance),
            "reset_code_hash": user.reset_code_hash,
            "reset_code_expires_at": user.reset_code_expires_at,
            "created_at": user.created_at,
            "updated_at": user.updated_at,
        }

    def _doc_to_user(self, doc: dict) -> User:
        return User(
            id=str(doc["_id"]),
            name=doc["name"],
            email=doc["email"],
            password_hash=doc["password_hash"],
            balance=_to_decimal(doc.get("balance", 0)),
            reset_code_hash=doc.get("reset_code_hash"),
            reset_code_expires_at=doc.get("reset_code_expires_at"),
            created_at=doc["created_at"],
            updated_at=doc.get("updated_at", doc["created_at"]),
        )

    async def create_user(self, user: User) -> User:
        try:
            await self._manager.users.insert_one(self._user_to_doc(user))
        except DuplicateKeyError as e:
            raise DuplicateError(f"Email already registered: {user.email}") from e
        except PyMongoError as e:
            raise StorageError(f"Failed to create user: {e}") from e
        return user

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        oid = _object_id(user_id)
        if oid is None:
            return None
        try:
            doc = await self._manager.users.find_one({"_id": oid})
        except PyMongoError as e:
            raise StorageError(f"Failed to get user: {e}") from e
        return self._doc_to_user(doc) if doc else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        try:
            doc = await self._manager.users.find_one({"email": email})
        except PyMongoError as e:
            raise StorageError(f"Failed to get user: {e}") from e
        return self._doc_to_user(doc) if doc else None

    async def _update(self, user_id: str, update: dict) -> bool:
        oid = _object_id(user_id)
        if oid is None:
            return False
        try:
            result = await self._manager.users.update_one({"_id": oid}, update)
        except PyMongoError as e:
            raise StorageError(f"Failed to update user: {e}") from e
        return result.matched_count == 1

    async def set_reset_code(
        self,
        user_id: str,
        code_hash: str,
        expires_at: datetime,
    ) -> bool:
        return await self._update(user_id, {
            "$set": {
                "reset_code_hash": code_hash,
                "reset_code_expires_at": expires_at,
                "updated_at": utc_now(),
            },
        })

    async def replace_password(self, user_id: str, password_hash: str) -> bool:
        return await self._update(user_id, {
            "$set": {
                "password_hash": password_hash,
                "reset_code_hash": None,
                "reset_code_expires_at": None,
                "updated_at": utc_now(),
            },
        })


class MongoTransactionStorage(TransactionStorageInterface):
    """
    MongoDB implementation of ledger storage.

    Transactions live in their own collection and reference the owner by
    ObjectId; the running balance lives on the user document.
    """

    def __init__(self, manager: MongoClientManager):
        self._manager = manager
        self._use_transactions = manager.settings.use_transactions

    def _transaction_to_doc(self, transaction: Transaction) -> dict:
        return {
            "_id": ObjectId(transaction.id),
            "user": ObjectId(transaction.user_id),
            "amount": Decimal128(transaction.amount),
            "transaction_type": transaction.type.value,
            "description": transaction.description,
            "created_at": transaction.created_at,
        }

    def _doc_to_transaction(self, doc: dict) -> Transaction:
        return Transaction(
            id=str(doc["_id"]),
            user_id=str(doc["user"]),
            amount=_to_decimal(doc["amount"]),
            type=TransactionType(doc["transaction_type"]),
            description=doc["description"],
            created_at=doc["created_at"],
        )

    def _filter(self, user_id: str, transaction_type: Optional[TransactionType]) -> dict:
        query: dict = {"user": _object_id(user_id)}
        if transaction_type is not None:
            query["transaction_type"] = transaction_type.value
        return query

    async def _adjust_balance(self, user_id: str, balance_delta: Decimal, session) -> None:
        result = await self._manager.users.update_one(
            {"_id": ObjectId(user_id)},
            {
                "$inc": {"balance": Decimal128(balance_delta)},
                "$set": {"updated_at": utc_now()},
            },
            session=session,
        )
        if result.matched_count == 0:
            raise StorageError(f"Cannot adjust balance, user not found: {user_id}")

    async def _run_pair(self, writes: Callable[[Any], Awaitable[Any]], action: str) -> Any:
        try:
            if self._use_transactions:
                async with self._manager.client.start_session() as session:
                    async with await session.start_transaction():
                        return await writes(session)
            return await writes(None)
        except StorageError:
            raise
        except PyMongoError as e:
            logger.error("ledger_write_failed", action=action, error=str(e))
            raise StorageError(f"Failed to {action}: {e}") from e

    async def apply_transaction(
        self,
        transaction: Transaction,
        balance_delta: Decimal,
    ) -> None:
        doc = self._transaction_to_doc(transaction)

        async def writes(session) -> None:
            await self._manager.transactions.insert_one(doc, session=session)
            await self._adjust_balance(transaction.user_id, balance_delta, session)

        await self._run_pair(writes, "record transaction")

    async def revert_transaction(
        self,
        transaction: Transaction,
        balance_delta: Decimal,
    ) -> bool:
        query = {"_id": ObjectId(transaction.id), "user": ObjectId(transaction.user_id)}

        async def writes(session) -> bool:
            result = await self._manager.transactions.delete_one(query, session=session)
            if result.deleted_count == 0:
                return False
            await self._adjust_balance(transaction.user_id, balance_delta, session)
            return True

        return await self._run_pair(writes, "delete transaction")

    async def get_transaction(
        self,
        user_id: str,
        transaction_id: str,
    ) -> Optional[Transaction]:
        oid = _object_id(transaction_id)
        owner = _object_id(user_id)
        if oid is None or owner is None:
            return None
        try:
            doc = await self._manager.transactions.find_one({"_id": oid, "user": owner})
        except PyMongoError as e:
            raise StorageError(f"Failed to get transaction: {e}") from e
        return self._doc_to_transaction(doc) if doc else None

    async def list_transactions(
        self,
        user_id: str,
        transaction_type: Optional[TransactionType] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[Transaction]:
        try:
            cursor = (
                self._manager.transactions
                .find(self._filter(user_id, transaction_type))
                .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
                .skip(offset)
                .limit(limit)
            )
            return [self._doc_to_transaction(doc) async for doc in cursor]
        except PyMongoError as e:
            raise StorageError(f"Failed to list transactions: {e}") from e

    async def count_transactions(
        self,
        user_id: str,
        transaction_type: Optional[TransactionType] = None,
    ) -> int:
        try:
            return await self._manager.transactions.count_documents(
                self._filter(user_id, transaction_type)
            )
        except PyMongoError as e:
            raise StorageError(f"Failed to count transactions: {e}") from e


class MongoAuditStorage(AuditStorageInterface):
    """
    MongoDB implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, manager: MongoClientManager):
        self._manager = manager

    async def append_event(self, event: AuditEvent) -> bool:
        doc = event.model_dump(mode="json")
        doc["_id"] = doc.pop("event_id")
        doc["timestamp"] = event.timestamp
        try:
            await self._manager.audit_log.insert_one(doc)
            return True
        except PyMongoError as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_write_failed", error=str(e), event_id=str(event.event_id))
            return False
