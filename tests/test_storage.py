"""Tests for the storage backends."""

import pytest
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock

from bson import ObjectId
from bson.decimal128 import Decimal128
from pymongo.errors import PyMongoError

from expense_ledger.config import MongoSettings
from expense_ledger.models.ledger import Transaction, TransactionType, User, utc_now
from expense_ledger.services.storage import (
    DuplicateError,
    MongoClientManager,
    MongoTransactionStorage,
    MongoUserStorage,
    StorageError,
)


def _user(email: str = "alice@mail.com", **overrides) -> User:
    return User(name="Alice", email=email, password_hash="$2b$04$hash", **overrides)


def _transaction(user_id: str, amount: str = "10", kind=TransactionType.INCOME, **overrides):
    return Transaction(
        user_id=user_id,
        amount=Decimal(amount),
        type=kind,
        description="Entry",
        **overrides,
    )


class TestInMemoryUserStorage:
    """Tests for the in-memory user store."""

    async def test_create_and_fetch(self, user_storage):
        user = await user_storage.create_user(_user())

        assert (await user_storage.get_user_by_id(user.id)).email == "alice@mail.com"
        assert (await user_storage.get_user_by_email("alice@mail.com")).id == user.id
        assert await user_storage.get_user_by_email("bob@mail.com") is None

    async def test_duplicate_email(self, user_storage):
        await user_storage.create_user(_user())

        with pytest.raises(DuplicateError):
            await user_storage.create_user(_user())

    async def test_returns_copies(self, user_storage):
        """Mutating a returned user must not change what is stored."""
        user = await user_storage.create_user(_user())

        fetched = await user_storage.get_user_by_id(user.id)
        fetched.balance = Decimal("999")

        assert (await user_storage.get_user_by_id(user.id)).balance == Decimal("0")

    async def test_reset_code_lifecycle(self, user_storage):
        user = await user_storage.create_user(_user())
        expires_at = utc_now() + timedelta(hours=1)

        assert await user_storage.set_reset_code(user.id, "code-hash", expires_at) is True
        stored = await user_storage.get_user_by_id(user.id)
        assert stored.reset_code_hash == "code-hash"
        assert stored.reset_code_expires_at == expires_at

        assert await user_storage.replace_password(user.id, "new-hash") is True
        stored = await user_storage.get_user_by_id(user.id)
        assert stored.password_hash == "new-hash"
        assert stored.reset_code_hash is None
        assert stored.reset_code_expires_at is None

    async def test_updates_on_missing_user(self, user_storage):
        missing = str(ObjectId())
        assert await user_storage.set_reset_code(missing, "h", utc_now()) is False
        assert await user_storage.replace_password(missing, "h") is False


class TestInMemoryTransactionStorage:
    """Tests for the in-memory ledger store."""

    async def test_apply_and_revert(self, user_storage, transaction_storage):
        user = await user_storage.create_user(_user())
        txn = _transaction(user.id, "25.50")

        await transaction_storage.apply_transaction(txn, txn.balance_effect)
        assert (await user_storage.get_user_by_id(user.id)).balance == Decimal("25.50")
        assert await transaction_storage.count_transactions(user.id) == 1

        assert await transaction_storage.revert_transaction(txn, -txn.balance_effect) is True
        assert (await user_storage.get_user_by_id(user.id)).balance == Decimal("0")
        assert await transaction_storage.get_transaction(user.id, txn.id) is None

    async def test_revert_twice_changes_balance_once(self, user_storage, transaction_storage):
        user = await user_storage.create_user(_user())
        txn = _transaction(user.id, "40")
        await transaction_storage.apply_transaction(txn, txn.balance_effect)
        await transaction_storage.revert_transaction(txn, -txn.balance_effect)

        assert await transaction_storage.revert_transaction(txn, -txn.balance_effect) is False
        assert (await user_storage.get_user_by_id(user.id)).balance == Decimal("0")

    async def test_apply_for_missing_user(self, transaction_storage, database):
        txn = _transaction(str(ObjectId()))

        with pytest.raises(StorageError):
            await transaction_storage.apply_transaction(txn, txn.balance_effect)
        assert database.transactions == {}

    async def test_get_is_owner_scoped(self, user_storage, transaction_storage):
        alice = await user_storage.create_user(_user())
        bob = await user_storage.create_user(_user("bob@mail.com"))
        txn = _transaction(alice.id)
        await transaction_storage.apply_transaction(txn, txn.balance_effect)

        assert await transaction_storage.get_transaction(alice.id, txn.id) is not None
        assert await transaction_storage.get_transaction(bob.id, txn.id) is None

    async def test_listing_order_and_filters(self, user_storage, transaction_storage):
        user = await user_storage.create_user(_user())
        now = utc_now()
        oldest = _transaction(user.id, "1", created_at=now - timedelta(minutes=2))
        middle = _transaction(user.id, "2", TransactionType.EXPENSE, created_at=now - timedelta(minutes=1))
        newest = _transaction(user.id, "3", created_at=now)
        for txn in (middle, newest, oldest):
            await transaction_storage.apply_transaction(txn, txn.balance_effect)

        listed = await transaction_storage.list_transactions(user.id)
        assert [t.id for t in listed] == [newest.id, middle.id, oldest.id]

        page = await transaction_storage.list_transactions(user.id, limit=1, offset=1)
        assert [t.id for t in page] == [middle.id]

        incomes = await transaction_storage.list_transactions(
            user.id, transaction_type=TransactionType.INCOME
        )
        assert [t.id for t in incomes] == [newest.id, oldest.id]
        assert await transaction_storage.count_transactions(user.id, TransactionType.EXPENSE) == 1


class TestMongoDocumentMapping:
    """Document shapes for the MongoDB backend. No server needed."""

    @pytest.fixture
    def manager(self):
        return MongoClientManager(MongoSettings(uri="mongodb://localhost:27017"))

    def test_user_document(self, manager):
        storage = MongoUserStorage(manager)
        user = _user(balance=Decimal("12.34"))

        doc = storage._user_to_doc(user)

        assert doc["_id"] == ObjectId(user.id)
        assert doc["balance"] == Decimal128("12.34")
        assert storage._doc_to_user(doc) == user

    def test_transaction_document(self, manager):
        storage = MongoTransactionStorage(manager)
        txn = _transaction(str(ObjectId()), "99.99", TransactionType.EXPENSE)

        doc = storage._transaction_to_doc(txn)

        assert doc["user"] == ObjectId(txn.user_id)
        assert doc["amount"] == Decimal128("99.99")
        assert doc["transaction_type"] == "expense"
        assert storage._doc_to_transaction(doc) == txn

    def test_type_filter(self, manager):
        storage = MongoTransactionStorage(manager)
        user_id = str(ObjectId())

        assert storage._filter(user_id, None) == {"user": ObjectId(user_id)}
        assert storage._filter(user_id, TransactionType.INCOME) == {
            "user": ObjectId(user_id),
            "transaction_type": "income",
        }


def _recorder(calls: list, name: str, result=None) -> AsyncMock:
    def record(*args, **kwargs):
        calls.append(name)
        return result
    return AsyncMock(side_effect=record)


class TestMongoLedgerWrites:
    """Write ordering and error mapping for ledger pairs, against fake collections."""

    @pytest.fixture
    def calls(self):
        return []

    @pytest.fixture
    def users(self, calls):
        return SimpleNamespace(
            update_one=_recorder(calls, "update_one", SimpleNamespace(matched_count=1)),
        )

    @pytest.fixture
    def transactions(self, calls):
        return SimpleNamespace(
            insert_one=_recorder(calls, "insert_one"),
            delete_one=_recorder(calls, "delete_one", SimpleNamespace(deleted_count=1)),
        )

    @pytest.fixture
    def storage(self, monkeypatch, users, transactions):
        monkeypatch.setattr(MongoClientManager, "users", property(lambda self: users))
        monkeypatch.setattr(MongoClientManager, "transactions", property(lambda self: transactions))
        manager = MongoClientManager(MongoSettings(uri="mongodb://localhost:27017"))
        return MongoTransactionStorage(manager)

    async def test_apply_inserts_then_increments(self, storage, calls, users):
        txn = _transaction(str(ObjectId()), "25.50", TransactionType.EXPENSE)

        await storage.apply_transaction(txn, txn.balance_effect)

        assert calls == ["insert_one", "update_one"]
        update = users.update_one.await_args.args[1]
        assert update["$inc"] == {"balance": Decimal128("-25.50")}

    async def test_revert_deletes_then_increments(self, storage, calls, users, transactions):
        txn = _transaction(str(ObjectId()), "25.50", TransactionType.EXPENSE)

        assert await storage.revert_transaction(txn, -txn.balance_effect) is True

        assert calls == ["delete_one", "update_one"]
        assert transactions.delete_one.await_args.args[0] == {
            "_id": ObjectId(txn.id),
            "user": ObjectId(txn.user_id),
        }
        assert users.update_one.await_args.args[1]["$inc"] == {"balance": Decimal128("25.50")}

    async def test_revert_of_missing_document_leaves_balance(self, storage, calls, transactions):
        """Two overlapping deletes must only reverse the balance once."""
        transactions.delete_one = _recorder(calls, "delete_one", SimpleNamespace(deleted_count=0))
        txn = _transaction(str(ObjectId()))

        assert await storage.revert_transaction(txn, -txn.balance_effect) is False
        assert calls == ["delete_one"]

    async def test_driver_error_becomes_storage_error(self, storage, users, transactions):
        transactions.insert_one = AsyncMock(side_effect=PyMongoError("connection reset"))
        txn = _transaction(str(ObjectId()))

        with pytest.raises(StorageError, match="Failed to record transaction"):
            await storage.apply_transaction(txn, txn.balance_effect)
        users.update_one.assert_not_awaited()

    async def test_missing_owner_is_storage_error(self, storage, users):
        users.update_one = AsyncMock(return_value=SimpleNamespace(matched_count=0))
        txn = _transaction(str(ObjectId()))

        with pytest.raises(StorageError, match="user not found"):
            await storage.apply_transaction(txn, txn.balance_effect)
