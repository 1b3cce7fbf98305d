"""
Shared fixtures.

Everything runs against in-memory storage, a recording mailer and a
clock the test controls. bcrypt runs at its minimum cost to keep the
suite fast.
"""

import re
from datetime import datetime, timedelta
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from expense_ledger.api import create_app
from expense_ledger.auth import PasswordHasher, TokenService
from expense_ledger.config import (
    AppSettings,
    AuthSettings,
    MailSettings,
    MongoSettings,
    Settings,
)
from expense_ledger.errors import DeliveryError
from expense_ledger.models.ledger import utc_now
from expense_ledger.orchestrator import create_app_components
from expense_ledger.services.mail import MailMessage, MailServiceInterface
from expense_ledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryDatabase,
    InMemoryTransactionStorage,
    InMemoryUserStorage,
)


STRONG_PASSWORD = "Passw0rd!"
OTHER_STRONG_PASSWORD = "N3wPassw0rd$"

_CODE_PATTERN = re.compile(r"reset code is: (\d{6})")


class RecordingMailer(MailServiceInterface):
    """Keeps every message instead of sending it; can be told to fail."""

    def __init__(self):
        self.sent: list[MailMessage] = []
        self.failing_purposes: set[str] = set()

    def fail_on(self, *purposes: str) -> None:
        self.failing_purposes.update(purposes)

    async def send(self, message: MailMessage) -> None:
        if message.purpose in self.failing_purposes:
            raise DeliveryError("Failed to send email", details={"purpose": message.purpose})
        self.sent.append(message)

    def by_purpose(self, purpose: str) -> list[MailMessage]:
        return [m for m in self.sent if m.purpose == purpose]

    def last_reset_code(self) -> Optional[str]:
        for message in reversed(self.sent):
            match = _CODE_PATTERN.search(message.body)
            if match:
                return match.group(1)
        return None


class MutableClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or utc_now()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        app=AppSettings(storage_backend="memory", cors_origins="*"),
        auth=AuthSettings(secret="test-signing-secret", bcrypt_rounds=4),
        mongo=MongoSettings(),
        mail=MailSettings(),
    )


@pytest.fixture
def database() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def user_storage(database) -> InMemoryUserStorage:
    return InMemoryUserStorage(database)


@pytest.fixture
def transaction_storage(database) -> InMemoryTransactionStorage:
    return InMemoryTransactionStorage(database)


@pytest.fixture
def audit_storage(database) -> InMemoryAuditStorage:
    return InMemoryAuditStorage(database)


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def tokens(settings, clock) -> TokenService:
    return TokenService(settings.auth, clock=clock)


@pytest.fixture
def components(settings, user_storage, transaction_storage, audit_storage, mailer, clock):
    return create_app_components(
        settings,
        user_storage=user_storage,
        transaction_storage=transaction_storage,
        audit_storage=audit_storage,
        mail_service=mailer,
        clock=clock,
    )


@pytest.fixture
def client(components):
    with TestClient(create_app(components)) as test_client:
        yield test_client


@pytest.fixture
def register_and_login(client):
    """
    Create a user over HTTP and return auth headers for them.

    Usage:
        headers = register_and_login("a@b.com")
    """

    def _register_and_login(
        email: str = "alice@mail.com",
        password: str = STRONG_PASSWORD,
        name: str = "Alice",
        balance=None,
    ) -> dict[str, str]:
        body = {"name": name, "email": email, "password": password}
        if balance is not None:
            body["balance"] = balance
        response = client.post("/api/user/register", json=body)
        assert response.status_code == 201, response.text

        response = client.post(
            "/api/user/login",
            json={"email": email, "password": password},
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _register_and_login
