"""
Input Validation

DESIGN DECISION: All client input is checked here, in the service layer,
not only in the HTTP request models. Any caller of the credential store or
the ledger engine gets the same ValidationError for the same bad input.

Checks run in a fixed order so the first problem reported is stable:
presence, then type, then format, then policy.

IMPORTANT: Validation NEVER silently fixes issues, except for the
documented normalizations (trimmed text, lower-cased email, amounts
rounded to cents).
"""

import math
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from bson import ObjectId
from email_validator import EmailNotValidError, validate_email

from expense_ledger.auth.passwords import BCRYPT_MAX_BYTES
from expense_ledger.errors import ValidationError
from expense_ledger.models.ledger import (
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    TransactionType,
)


PASSWORD_SYMBOLS = "@$!%*?&"
PASSWORD_PATTERN = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$"
)
PASSWORD_POLICY_MESSAGE = (
    "Password must be at least 8 characters long and contain at least one "
    "uppercase letter, one lowercase letter, one number, and one special "
    f"character ({PASSWORD_SYMBOLS})"
)

NUMERIC_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)$")
CENTS = Decimal("0.01")
MAX_AMOUNT = Decimal("1000000000000")


@dataclass(frozen=True)
class RegistrationInput:
    """Registration fields after validation and normalization."""
    name: str
    email: str
    password: str
    initial_balance: Decimal


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_fields(message: str, **fields: Any) -> None:
    """Raise if any field is missing or only whitespace."""
    for field, value in fields.items():
        if _is_blank(value):
            raise ValidationError(message, field=field)


def require_strings(**fields: Any) -> None:
    for field, value in fields.items():
        if not isinstance(value, str):
            raise ValidationError("Invalid data type", field=field)


def validate_email_address(email: str) -> str:
    """Check syntax and return the normalized address."""
    normalized = normalize_email(email)
    try:
        validate_email(normalized, check_deliverability=False)
    except EmailNotValidError:
        raise ValidationError("Invalid email address", field="email")
    return normalized


def validate_password_policy(password: str, field: str = "password") -> str:
    if not PASSWORD_PATTERN.match(password):
        raise ValidationError(PASSWORD_POLICY_MESSAGE, field=field)
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValidationError(
            f"Password must be at most {BCRYPT_MAX_BYTES} characters long",
            field=field,
        )
    return password


def _to_decimal(value: Any) -> Optional[Decimal]:
    """
    Convert a JSON number or numeric string to Decimal.

    Returns None for anything that is not a finite number. Booleans are
    not numbers here, even though Python treats them as ints.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        return Decimal(str(value))
    if isinstance(value, (int, Decimal)):
        number = Decimal(value)
        return number if number.is_finite() else None
    if isinstance(value, str):
        text = value.strip()
        if not NUMERIC_PATTERN.match(text):
            return None
        try:
            return Decimal(text)
        except InvalidOperation:
            return None
    return None


def parse_initial_balance(balance: Any) -> Decimal:
    """Opening balance: optional, must be a JSON number, may be negative."""
    if balance is None:
        return Decimal("0")
    if isinstance(balance, str):
        raise ValidationError("Invalid data type", field="balance")
    number = _to_decimal(balance)
    if number is None:
        raise ValidationError("Invalid data type", field="balance")
    return number


def parse_amount(amount: Any) -> Decimal:
    """
    Validate a transaction amount and round it to cents.

    Zero is rejected: a ledger entry has to move the balance.
    """
    if _is_blank(amount):
        raise ValidationError("Amount and description are required", field="amount")

    number = _to_decimal(amount)
    if number is None:
        raise ValidationError("Amount must be a number", field="amount")
    if number < 0:
        raise ValidationError("Amount must be a positive number", field="amount")
    if number > MAX_AMOUNT:
        raise ValidationError("Amount is too large", field="amount")

    number = number.quantize(CENTS, rounding=ROUND_HALF_UP)
    if number == 0:
        raise ValidationError("Amount must be greater than zero", field="amount")
    return number


def validate_description(description: Any) -> str:
    if _is_blank(description):
        raise ValidationError("Amount and description are required", field="description")
    if not isinstance(description, str):
        raise ValidationError("Description must be text", field="description")
    description = description.strip()
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters",
            field="description",
        )
    return description


def parse_transaction_type(value: Optional[str]) -> Optional[TransactionType]:
    """Empty means no filter; anything else must be income or expense."""
    if value is None or value == "":
        return None
    try:
        return TransactionType(value)
    except ValueError:
        raise ValidationError("Invalid transaction type", field="transaction_type")


def validate_pagination(page: int, limit: int, max_page_size: int) -> tuple[int, int]:
    if page < 1:
        raise ValidationError("Page must be 1 or greater", field="page")
    if limit < 1 or limit > max_page_size:
        raise ValidationError(
            f"Limit must be between 1 and {max_page_size}",
            field="limit",
        )
    return page, limit


def validate_object_id(value: Any, field: str, message: str) -> str:
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise ValidationError(message, field=field)
    return value


def validate_registration(
    name: Any,
    email: Any,
    password: Any,
    balance: Any = None,
) -> RegistrationInput:
    """
    Full registration check.

    Raises:
        ValidationError: On the first problem found
    """
    require_fields("All fields are required", name=name, email=email, password=password)
    require_strings(name=name, email=email, password=password)
    if len(name.strip()) > MAX_NAME_LENGTH:
        raise ValidationError(
            f"Name must be at most {MAX_NAME_LENGTH} characters",
            field="name",
        )
    normalized_email = validate_email_address(email)
    validate_password_policy(password)
    initial_balance = parse_initial_balance(balance)

    return RegistrationInput(
        name=name.strip(),
        email=normalized_email,
        password=password,
        initial_balance=initial_balance,
    )


def validate_login(email: Any, password: Any) -> tuple[str, str]:
    """Presence, type and email syntax; the password itself is checked by hash."""
    require_fields("All fields are required", email=email, password=password)
    require_strings(email=email, password=password)
    return validate_email_address(email), password
