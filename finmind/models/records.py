"""
Core Data Models for FinMind

These models define the strict schemas for all records flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and the HTTP API

DESIGN DECISION: Money is always Decimal. It is only turned into a JSON
number at the serialization boundary, never inside a computation.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
    model_validator,
)


# Decimal internally, plain number on the wire
Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def parse_loose_date(v: Any) -> Optional[date]:
    """A date from a date, datetime or ISO string; None for anything else."""
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    if isinstance(v, str):
        text = v.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            return None
    return None


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionKind(str, Enum):
    """Direction of a cash flow. The sign of the amount must agree with it."""
    INCOME = "income"
    EXPENSE = "expense"


class Plan(str, Enum):
    """
    Subscription plans.

    TRIAL is premium only while its window is open; PRIME is never metered.
    """
    FREE = "free"
    TRIAL = "trial"
    PLUS = "plus"
    PRIME = "prime"

    @property
    def is_paid(self) -> bool:
        return self in (Plan.PLUS, Plan.PRIME)


# =============================================================================
# BALANCE RECORDS
# =============================================================================

class BalanceRecord(BaseModel):
    """
    A point-in-time balance owned by one account.

    Balances contribute to totals regardless of the transaction period.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = Field(
        default=None,
        description="Storage-assigned identifier"
    )
    owner_id: int = Field(
        ...,
        description="Owning account"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    tag: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Free-form label (e.g. Cash, ETF, Auto)"
    )
    value: Annotated[Money, Field(ge=0)]
    created_at: datetime = Field(default_factory=utcnow)


class Asset(BalanceRecord):
    """Something the account owns."""


class Liability(BalanceRecord):
    """Something the account owes."""


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense.

    INVARIANT: kind = income => amount >= 0, kind = expense => amount <= 0.
    Checked whenever a Transaction is built. Updates replace the stored
    record with a freshly built one, so they are checked the same way.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = None
    owner_id: int
    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    category: Optional[str] = Field(
        default=None,
        max_length=100,
    )
    kind: TransactionKind
    amount: Money
    occurred_on: Optional[date] = Field(
        default=None,
        description="When the transaction happened; None if missing or unparseable"
    )
    created_at: Optional[datetime] = Field(
        default_factory=utcnow,
        description="When the record was created; fallback effective date"
    )

    @field_validator("occurred_on", mode="before")
    @classmethod
    def coerce_unparseable_date(cls, v: Any) -> Optional[date]:
        """Unparseable dates become None so the creation time takes over."""
        return parse_loose_date(v)

    @field_validator("category")
    @classmethod
    def blank_category_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @model_validator(mode="after")
    def check_sign_matches_kind(self) -> "Transaction":
        if self.kind == TransactionKind.INCOME and self.amount < 0:
            raise ValueError("Income transactions must have a non-negative amount")
        if self.kind == TransactionKind.EXPENSE and self.amount > 0:
            raise ValueError("Expense transactions must have a non-positive amount")
        return self

    @staticmethod
    def signed_amount(kind: TransactionKind, amount: Decimal) -> Decimal:
        """Apply the sign convention: income positive, expense negative."""
        magnitude = abs(Decimal(amount))
        return magnitude if kind == TransactionKind.INCOME else -magnitude

    @property
    def effective_at(self) -> Optional[datetime]:
        """Transaction date (UTC midnight), falling back to creation time."""
        if self.occurred_on is not None:
            return datetime(
                self.occurred_on.year,
                self.occurred_on.month,
                self.occurred_on.day,
                tzinfo=timezone.utc,
            )
        if self.created_at is None:
            return None
        if self.created_at.tzinfo is None:
            return self.created_at.replace(tzinfo=timezone.utc)
        return self.created_at


# =============================================================================
# ACCOUNT / ENTITLEMENT
# =============================================================================

class Account(BaseModel):
    """
    An account and its entitlement row.

    The stored values are not ground truth between accesses: the plan is
    normalized (expired trials and plans downgraded) every time it is read
    on behalf of a request.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: int
    email: str = Field(
        ...,
        min_length=3,
        max_length=254,
    )
    display_name: Optional[str] = Field(
        default=None,
        max_length=100,
    )
    plan: Plan = Plan.FREE
    trial_started_at: datetime = Field(default_factory=utcnow)
    trial_expires_at: Optional[datetime] = None
    plan_expires_at: Optional[datetime] = None
    ai_quota: Optional[int] = Field(default=None, ge=0)
    ai_quota_remaining: Optional[int] = Field(default=None, ge=0)
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator(
        "trial_started_at",
        "trial_expires_at",
        "plan_expires_at",
        "created_at",
    )
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Naive timestamps coming back from storage are UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v
