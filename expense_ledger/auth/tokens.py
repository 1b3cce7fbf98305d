"""
Session Token Issuer/Verifier

Tokens are HS256 JWTs carrying the user id in `sub` and a fixed
expiration. There is no refresh, rotation or revocation: a token stays
valid for its whole lifetime, even across password changes.

The signing secret comes from AuthSettings at construction time.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog
from jose import ExpiredSignatureError, JWTError, jwt

from expense_ledger.config import AuthSettings
from expense_ledger.errors import UnauthorizedError
from expense_ledger.models.ledger import utc_now


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


class TokenService:
    """
    Issues and verifies signed, time-limited session tokens.

    Args:
        settings: Secret, algorithm and lifetime
        clock: Source of the issue time; tests pass a fixed clock
    """

    def __init__(
        self,
        settings: AuthSettings,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._secret = settings.secret
        self._algorithm = settings.algorithm
        self._ttl = timedelta(hours=settings.token_ttl_hours)
        self._clock = clock

    def issue(self, user_id: str) -> IssuedToken:
        issued_at = self._clock()
        expires_at = issued_at + self._ttl
        token = jwt.encode(
            {"sub": user_id, "iat": issued_at, "exp": expires_at},
            self._secret,
            algorithm=self._algorithm,
        )
        return IssuedToken(token=token, expires_at=expires_at)

    def verify(self, token: Optional[str]) -> str:
        """
        Check signature and expiry and return the user id.

        Raises:
            UnauthorizedError: Token missing, invalid, expired or without a subject
        """
        if not token:
            raise UnauthorizedError("Authentication token is missing")

        try:
            claims = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError:
            raise UnauthorizedError("Authentication token has expired")
        except JWTError as e:
            logger.info("token_rejected", reason=str(e))
            raise UnauthorizedError("Invalid authentication token")

        user_id = claims.get("sub")
        if not user_id or not isinstance(user_id, str):
            raise UnauthorizedError("Invalid authentication token")
        return user_id
