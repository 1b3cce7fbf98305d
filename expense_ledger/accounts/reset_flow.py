"""
Password Reset Flow

Ties the credential store's reset-code handling to mail delivery.
Both steps are reachable without a session token, since the user has
lost their password.

Flow:
1. forgot_password → code issued and stored hashed → code emailed
2. reset_password  → code checked → password replaced → notice emailed

If the code email fails, the stored hash is NOT rolled back: the code
stays valid until it expires, and the caller gets a DeliveryError.
"""

from typing import Any, Optional
from uuid import UUID

import structlog

from expense_ledger.accounts.credentials import CredentialStore
from expense_ledger.audit import AuditLogger
from expense_ledger.errors import DeliveryError
from expense_ledger.services.mail import (
    MailServiceInterface,
    password_changed_message,
    reset_code_message,
)


logger = structlog.get_logger(__name__)


class ResetFlowCoordinator:
    """Orchestrates password recovery across the credential store and mail."""

    def __init__(
        self,
        credentials: CredentialStore,
        mail_service: MailServiceInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._credentials = credentials
        self._mail_service = mail_service
        self._audit_logger = audit_logger

    async def forgot_password(
        self,
        email: Any,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Issue a reset code and email it.

        Raises:
            ValidationError: Missing or malformed email
            NotFoundError: Unknown email
            DeliveryError: Code stored but the email could not be sent
        """
        user, code = await self._credentials.request_password_reset(
            email,
            correlation_id=correlation_id,
        )
        ttl_minutes = int(self._credentials.reset_code_ttl.total_seconds() // 60)
        message = reset_code_message(user.name, user.email, code, ttl_minutes)

        try:
            await self._mail_service.send(message)
        except DeliveryError as e:
            if self._audit_logger:
                await self._audit_logger.log_delivery_failed(
                    recipient=user.email,
                    purpose=message.purpose,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

    async def reset_password(
        self,
        email: Any,
        code: Any,
        new_password: Any,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Check the code and set the new password.

        The password-changed notice is best effort; the reset has already
        happened by the time it is sent.
        """
        user = await self._credentials.complete_password_reset(
            email,
            code,
            new_password,
            correlation_id=correlation_id,
        )

        message = password_changed_message(user.name, user.email)
        try:
            await self._mail_service.send(message)
        except DeliveryError as e:
            logger.warning("password_changed_email_failed", user_id=user.id, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_delivery_failed(
                    recipient=user.email,
                    purpose=message.purpose,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
