"""
Core Data Models for Expense Ledger

These models define the schemas for everything the ledger stores or returns.
They are designed to:
1. Enforce type safety at runtime
2. Keep secrets (password and reset-code hashes) out of anything public
3. Be serializable for storage and JSON responses

DESIGN DECISION: Amounts are Decimal end to end. They are only turned into
JSON numbers at the response boundary.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

from bson import ObjectId
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
)


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def new_object_id() -> str:
    return str(ObjectId())


# Decimal in Python, plain number in JSON
Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]

MAX_NAME_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 500


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """
    Direction of a ledger entry.

    The amount on a transaction is always positive; the type decides
    whether it adds to or subtracts from the balance.
    """
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def sign(self) -> Decimal:
        return Decimal(1) if self is TransactionType.INCOME else Decimal(-1)


# =============================================================================
# USER
# =============================================================================

class User(BaseModel):
    """
    A stored user, secrets included.

    CRITICAL: Never return this from the API. Use to_public().
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_object_id,
        description="Document id (24-hex ObjectId)"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=MAX_NAME_LENGTH,
    )
    email: str = Field(
        ...,
        description="Lower-cased, trimmed email address; unique"
    )
    password_hash: str = Field(
        ...,
        description="bcrypt hash of the password"
    )
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Running balance (income minus expenses plus opening balance)"
    )

    # Password reset material; both set together, both cleared together
    reset_code_hash: Optional[str] = None
    reset_code_expires_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def to_public(self) -> "PublicUser":
        return PublicUser(
            id=self.id,
            name=self.name,
            email=self.email,
            balance=self.balance,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class PublicUser(BaseModel):
    """What clients get to see of a user."""

    id: str
    name: str
    email: str
    balance: Money
    created_at: datetime
    updated_at: datetime


class LoginResult(BaseModel):
    """Outcome of a successful login."""

    token: str
    expires_at: datetime
    user: PublicUser


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    One ledger entry.

    Transactions are never edited. Deleting one reverses its balance effect.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_object_id)
    user_id: str = Field(
        ...,
        description="Owning user's id"
    )
    amount: Money = Field(
        ...,
        gt=0,
        description="Always positive; sign comes from type"
    )
    type: TransactionType
    description: str = Field(
        ...,
        min_length=1,
        max_length=MAX_DESCRIPTION_LENGTH,
    )
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def balance_effect(self) -> Decimal:
        """Signed change this entry made to the owner's balance."""
        return self.amount * self.type.sign


class TransactionPage(BaseModel):
    """One page of a user's transactions, newest first."""

    total_transactions: int = Field(ge=0)
    current_page: int = Field(ge=1)
    limit: int = Field(ge=1)
    total_pages: int = Field(ge=0)
    transactions: list[Transaction] = Field(default_factory=list)


class Dashboard(BaseModel):
    """User profile plus their most recent activity."""

    user: PublicUser
    transactions: list[Transaction] = Field(default_factory=list)
