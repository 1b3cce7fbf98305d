"""
Tests for Expense Ledger

Test strategy:
1. Unit tests for individual components (models, validators, tokens)
2. Service tests for the credential store, reset flow and ledger
   (in-memory storage, recording mailer)
3. HTTP tests through FastAPI's TestClient
4. No real database or SMTP server in tests
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from expense_ledger.models.ledger import (
    Dashboard,
    PublicUser,
    Transaction,
    TransactionPage,
    TransactionType,
    User,
)
from expense_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


def _user(**overrides) -> User:
    fields = {
        "name": "Alice",
        "email": "alice@mail.com",
        "password_hash": "$2b$04$abcdefghijklmnopqrstuv",
    }
    fields.update(overrides)
    return User(**fields)


class TestUserModels:
    """Tests for user models."""

    def test_user_defaults(self):
        """Test new users start at zero with no reset code."""
        user = _user()
        assert user.balance == Decimal("0")
        assert user.reset_code_hash is None
        assert user.reset_code_expires_at is None
        assert len(user.id) == 24

    def test_user_strips_whitespace(self):
        """Test that whitespace is stripped from the name."""
        user = _user(name="  Alice  ")
        assert user.name == "Alice"

    def test_to_public_drops_secrets(self):
        """Test the public view carries no hashes."""
        user = _user(reset_code_hash="hash", balance=Decimal("12.50"))
        public = user.to_public()

        assert isinstance(public, PublicUser)
        dumped = public.model_dump(mode="json")
        assert "password_hash" not in dumped
        assert "reset_code_hash" not in dumped
        assert "reset_code_expires_at" not in dumped
        assert dumped["balance"] == 12.5

    def test_public_balance_is_json_number(self):
        """Test balances serialize as numbers, not strings."""
        public = _user(balance=Decimal("-3.25")).to_public()
        assert public.model_dump(mode="json")["balance"] == -3.25
        assert public.model_dump()["balance"] == Decimal("-3.25")


class TestTransactionModels:
    """Tests for ledger entry models."""

    def test_income_adds_to_balance(self):
        """Test income has a positive balance effect."""
        txn = Transaction(
            user_id="a" * 24,
            amount=Decimal("100"),
            type=TransactionType.INCOME,
            description="Salary",
        )
        assert txn.balance_effect == Decimal("100")

    def test_expense_subtracts_from_balance(self):
        """Test expense has a negative balance effect."""
        txn = Transaction(
            user_id="a" * 24,
            amount=Decimal("30"),
            type=TransactionType.EXPENSE,
            description="Groceries",
        )
        assert txn.balance_effect == Decimal("-30")

    def test_transaction_rejects_non_positive_amount(self):
        """Test that zero and negative amounts are rejected."""
        for amount in (Decimal("0"), Decimal("-5")):
            with pytest.raises(ValueError):
                Transaction(
                    user_id="a" * 24,
                    amount=amount,
                    type=TransactionType.INCOME,
                    description="Test",
                )

    def test_transaction_rejects_blank_description(self):
        """Test description is required after trimming."""
        with pytest.raises(ValueError):
            Transaction(
                user_id="a" * 24,
                amount=Decimal("1"),
                type=TransactionType.INCOME,
                description="   ",
            )

    def test_transaction_json_shape(self):
        """Test the JSON form of a transaction."""
        txn = Transaction(
            user_id="a" * 24,
            amount=Decimal("19.99"),
            type=TransactionType.EXPENSE,
            description="Lunch",
        )
        dumped = txn.model_dump(mode="json")
        assert dumped["amount"] == 19.99
        assert dumped["type"] == "expense"
        assert dumped["user_id"] == "a" * 24
        assert set(dumped) == {"id", "user_id", "amount", "type", "description", "created_at"}

    def test_page_and_dashboard_defaults(self):
        """Test container models default to empty lists."""
        page = TransactionPage(total_transactions=0, current_page=1, limit=10, total_pages=0)
        assert page.transactions == []

        dashboard = Dashboard(user=_user().to_public())
        assert dashboard.transactions == []


class TestTransactionTypes:
    """Tests for the transaction type enum."""

    def test_all_types_exist(self):
        """Test only income and expense exist."""
        assert {t.value for t in TransactionType} == {"income", "expense"}

    def test_sign(self):
        assert TransactionType.INCOME.sign == Decimal(1)
        assert TransactionType.EXPENSE.sign == Decimal(-1)


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            description="Test event",
        )
        assert event.event_type == AuditEventType.USER_REGISTERED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to a structured log dict."""
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_RECORDED,
            entity_type="transaction",
            entity_id="b" * 24,
            correlation_id=correlation_id,
            description="Test",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "transaction_recorded"
        assert log_dict["entity_id"] == "b" * 24
        assert log_dict["correlation_id"] == str(correlation_id)

    def test_audit_event_builder_login_failed(self):
        """Test the login-failed builder."""
        event = AuditEventBuilder.login_failed(
            email="alice@mail.com",
            reason="wrong_password",
        )
        assert event.event_type == AuditEventType.LOGIN_FAILED
        assert event.severity == AuditSeverity.WARNING
        assert event.is_user_action is True

    def test_audit_event_builder_transaction_recorded(self):
        """Test the transaction-recorded builder."""
        event = AuditEventBuilder.transaction_recorded(
            transaction_id="c" * 24,
            user_id="a" * 24,
            transaction_type="income",
            amount="100.00",
        )
        assert event.event_type == AuditEventType.TRANSACTION_RECORDED
        assert event.entity_type == "transaction"
        assert event.entity_id == "c" * 24

    def test_audit_event_builder_system_error(self):
        """Test system errors are logged at error severity."""
        event = AuditEventBuilder.system_error(
            error_type="RuntimeError",
            error_message="boom",
        )
        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "boom"
