"""Authentication package: password hashing and session tokens."""

from expense_ledger.auth.passwords import BCRYPT_MAX_BYTES, PasswordHasher
from expense_ledger.auth.tokens import IssuedToken, TokenService

__all__ = [
    "BCRYPT_MAX_BYTES",
    "IssuedToken",
    "PasswordHasher",
    "TokenService",
]
