"""
Credential Store

Owns everything about who a user is: registration, login, profile
lookups and the stored half of the password-reset flow.

CRITICAL BOUNDARIES:
- Plaintext passwords and reset codes are hashed before they reach storage
- Nothing returned from here carries a password or reset-code hash
- Reset codes are handed back to the caller, never persisted in clear
"""

import secrets
from datetime import datetime, timedelta
from typing import Any, Callable, Optional
from uuid import UUID

import structlog

from expense_ledger.audit import AuditLogger
from expense_ledger.auth import PasswordHasher, TokenService
from expense_ledger.errors import (
    AuthenticationError,
    ConflictError,
    DeliveryError,
    ExpiredCodeError,
    InvalidCodeError,
    NotFoundError,
)
from expense_ledger.models.ledger import LoginResult, PublicUser, User, utc_now
from expense_ledger.services.mail import MailServiceInterface, welcome_message
from expense_ledger.services.storage import DuplicateError, UserStorageInterface
from expense_ledger.validation import (
    require_fields,
    require_strings,
    validate_email_address,
    validate_login,
    validate_password_policy,
    validate_registration,
)


logger = structlog.get_logger(__name__)


def generate_reset_code() -> str:
    """Six random digits, never starting with zero."""
    return str(100000 + secrets.randbelow(900000))


class CredentialStore:
    """
    Registration, authentication and reset-code storage.

    Args:
        users: User storage backend
        hasher: Password/reset-code hasher
        tokens: Session token issuer
        reset_code_ttl: How long an issued reset code stays valid
        mail_service: Sends the welcome email; skipped when None
        audit_logger: Audit trail; skipped when None
        clock: Current time; tests pass a controllable clock
    """

    def __init__(
        self,
        users: UserStorageInterface,
        hasher: PasswordHasher,
        tokens: TokenService,
        reset_code_ttl: timedelta = timedelta(hours=1),
        mail_service: Optional[MailServiceInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._users = users
        self._hasher = hasher
        self._tokens = tokens
        self._reset_code_ttl = reset_code_ttl
        self._mail_service = mail_service
        self._audit_logger = audit_logger
        self._clock = clock

    @property
    def reset_code_ttl(self) -> timedelta:
        return self._reset_code_ttl

    async def register(
        self,
        name: Any,
        email: Any,
        password: Any,
        initial_balance: Any = None,
        correlation_id: Optional[UUID] = None,
    ) -> PublicUser:
        """
        Create a user.

        Raises:
            ValidationError: Missing/blank/mistyped fields, bad email, weak password
            ConflictError: Email already registered
        """
        data = validate_registration(name, email, password, initial_balance)

        if await self._users.get_user_by_email(data.email):
            raise ConflictError("User already exists")

        user = User(
            name=data.name,
            email=data.email,
            password_hash=await self._hasher.hash(data.password),
            balance=data.initial_balance,
        )
        try:
            await self._users.create_user(user)
        except DuplicateError:
            # Lost a race with a concurrent registration
            raise ConflictError("User already exists")

        if self._audit_logger:
            await self._audit_logger.log_user_registered(
                user_id=user.id,
                email=user.email,
                correlation_id=correlation_id,
            )

        await self._send_welcome(user, correlation_id)
        return user.to_public()

    async def _send_welcome(self, user: User, correlation_id: Optional[UUID]) -> None:
        """Best effort: the account exists whether or not the email arrives."""
        if not self._mail_service:
            return
        message = welcome_message(user.name, user.email)
        try:
            await self._mail_service.send(message)
        except DeliveryError as e:
            logger.warning("welcome_email_failed", user_id=user.id, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_delivery_failed(
                    recipient=user.email,
                    purpose=message.purpose,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )

    async def login(
        self,
        email: Any,
        password: Any,
        correlation_id: Optional[UUID] = None,
    ) -> LoginResult:
        """
        Check credentials and issue a session token.

        Raises:
            ValidationError: Missing fields or bad email syntax
            NotFoundError: No user with this email
            AuthenticationError: Wrong password
        """
        normalized_email, password = validate_login(email, password)

        user = await self._users.get_user_by_email(normalized_email)
        if user is None:
            if self._audit_logger:
                await self._audit_logger.log_login_failed(
                    email=normalized_email,
                    reason="unknown_email",
                    correlation_id=correlation_id,
                )
            raise NotFoundError("User not found")

        if not await self._hasher.verify(password, user.password_hash):
            if self._audit_logger:
                await self._audit_logger.log_login_failed(
                    email=normalized_email,
                    reason="wrong_password",
                    correlation_id=correlation_id,
                )
            raise AuthenticationError("Invalid credentials")

        issued = self._tokens.issue(user.id)
        if self._audit_logger:
            await self._audit_logger.log_login_succeeded(
                user_id=user.id,
                correlation_id=correlation_id,
            )
        return LoginResult(
            token=issued.token,
            expires_at=issued.expires_at,
            user=user.to_public(),
        )

    async def request_password_reset(
        self,
        email: Any,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[User, str]:
        """
        Issue a reset code for the user.

        Only the code's hash and expiration are stored. The plaintext code
        is returned so the caller can deliver it.

        Returns:
            (user, plaintext_code)

        Raises:
            ValidationError: Missing or malformed email
            NotFoundError: No user with this email
        """
        require_fields("Email is required", email=email)
        require_strings(email=email)
        normalized_email = validate_email_address(email)

        user = await self._users.get_user_by_email(normalized_email)
        if user is None:
            raise NotFoundError("User not found")

        code = generate_reset_code()
        expires_at = self._clock() + self._reset_code_ttl
        code_hash = await self._hasher.hash(code)
        await self._users.set_reset_code(user.id, code_hash, expires_at)

        if self._audit_logger:
            await self._audit_logger.log_reset_requested(
                user_id=user.id,
                expires_at=expires_at,
                correlation_id=correlation_id,
            )
        return user, code

    async def complete_password_reset(
        self,
        email: Any,
        code: Any,
        new_password: Any,
        correlation_id: Optional[UUID] = None,
    ) -> User:
        """
        Replace the password if the reset code checks out.

        The new hash is written and both reset fields are cleared in a
        single update, so a code can only be used once.

        Raises:
            ValidationError: Missing fields or new password fails the policy
            NotFoundError: No user with this email
            InvalidCodeError: No code issued, or the code does not match
            ExpiredCodeError: The code matched but has expired
        """
        require_fields(
            "All fields are required",
            email=email,
            resetCode=code,
            newPassword=new_password,
        )
        require_strings(email=email, resetCode=code, newPassword=new_password)
        validate_password_policy(new_password, field="newPassword")
        normalized_email = validate_email_address(email)

        user = await self._users.get_user_by_email(normalized_email)
        if user is None:
            raise NotFoundError("User not found")

        if not user.reset_code_hash or not await self._hasher.verify(
            code.strip(), user.reset_code_hash
        ):
            await self._reset_failed(user, "invalid_code", correlation_id)
            raise InvalidCodeError("Invalid reset code")

        if user.reset_code_expires_at is None or user.reset_code_expires_at <= self._clock():
            await self._reset_failed(user, "expired_code", correlation_id)
            raise ExpiredCodeError("Reset code has expired")

        await self._users.replace_password(user.id, await self._hasher.hash(new_password))

        if self._audit_logger:
            await self._audit_logger.log_reset_completed(
                user_id=user.id,
                correlation_id=correlation_id,
            )
        return user

    async def _reset_failed(
        self,
        user: User,
        reason: str,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_reset_failed(
                user_id=user.id,
                reason=reason,
                correlation_id=correlation_id,
            )
