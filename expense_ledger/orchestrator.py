"""
Component Wiring for Expense Ledger

This module builds every component from settings and hands each one
exactly what it needs: storage backends, the signing secret, the mail
service, the audit logger.

DESIGN DECISION: This is the only place that turns configuration into
objects. Services never read settings or globals themselves, so tests can
swap any collaborator (in-memory storage, a fake mailer, a fixed clock)
by passing it here.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog

from expense_ledger.accounts import CredentialStore, ResetFlowCoordinator
from expense_ledger.audit import AuditLogger
from expense_ledger.auth import PasswordHasher, TokenService
from expense_ledger.config import Settings
from expense_ledger.ledger import LedgerEngine
from expense_ledger.models.ledger import utc_now
from expense_ledger.services.mail import MailServiceInterface, SmtpMailService
from expense_ledger.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryDatabase,
    InMemoryTransactionStorage,
    InMemoryUserStorage,
    MongoAuditStorage,
    MongoClientManager,
    MongoTransactionStorage,
    MongoUserStorage,
    TransactionStorageInterface,
    UserStorageInterface,
)


logger = structlog.get_logger(__name__)


@dataclass
class AppComponents:
    """Everything the API layer talks to."""
    settings: Settings
    credentials: CredentialStore
    reset_flow: ResetFlowCoordinator
    ledger: LedgerEngine
    tokens: TokenService
    audit_logger: AuditLogger
    mongo: Optional[MongoClientManager] = None

    async def startup(self) -> None:
        """Connect to the store and make sure indexes exist."""
        if self.mongo:
            await self.mongo.connect()
            await self.mongo.ensure_indexes()
        logger.info(
            "components_started",
            storage_backend="mongo" if self.mongo else "memory",
        )

    async def shutdown(self) -> None:
        if self.mongo:
            await self.mongo.close()


def create_app_components(
    settings: Settings,
    user_storage: Optional[UserStorageInterface] = None,
    transaction_storage: Optional[TransactionStorageInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
    mail_service: Optional[MailServiceInterface] = None,
    clock: Callable[[], datetime] = utc_now,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Full configuration
        user_storage, transaction_storage, audit_storage: Override the
            backends chosen by settings.app.storage_backend. All three
            must be given together.
        mail_service: Override the SMTP mailer
        clock: Time source for tokens and reset-code expiry

    Returns:
        AppComponents ready for startup()
    """
    mongo = None

    if user_storage is None or transaction_storage is None or audit_storage is None:
        if settings.app.storage_backend == "mongo":
            mongo = MongoClientManager(settings.mongo)
            user_storage = MongoUserStorage(mongo)
            transaction_storage = MongoTransactionStorage(mongo)
            audit_storage = MongoAuditStorage(mongo)
        else:
            database = InMemoryDatabase()
            user_storage = InMemoryUserStorage(database)
            transaction_storage = InMemoryTransactionStorage(database)
            audit_storage = InMemoryAuditStorage(database)

    mail_service = mail_service or SmtpMailService(settings.mail)
    audit_logger = AuditLogger(audit_storage)
    tokens = TokenService(settings.auth, clock=clock)
    hasher = PasswordHasher(rounds=settings.auth.bcrypt_rounds)

    credentials = CredentialStore(
        users=user_storage,
        hasher=hasher,
        tokens=tokens,
        reset_code_ttl=timedelta(minutes=settings.app.reset_code_ttl_minutes),
        mail_service=mail_service,
        audit_logger=audit_logger,
        clock=clock,
    )
    reset_flow = ResetFlowCoordinator(
        credentials=credentials,
        mail_service=mail_service,
        audit_logger=audit_logger,
    )
    ledger = LedgerEngine(
        users=user_storage,
        transactions=transaction_storage,
        max_page_size=settings.app.max_page_size,
        dashboard_recent_limit=settings.app.dashboard_recent_limit,
        audit_logger=audit_logger,
    )

    return AppComponents(
        settings=settings,
        credentials=credentials,
        reset_flow=reset_flow,
        ledger=ledger,
        tokens=tokens,
        audit_logger=audit_logger,
        mongo=mongo,
    )
