"""
Shared fixtures.

Test strategy:
1. Unit tests for the pure engine (periods, metrics, rules, entitlement state)
2. Contract tests run against both storage backends
3. Flow and HTTP tests on the in-memory backend with a fixed clock
4. No real API calls in tests (advice generators are fakes)
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest
import pytest_asyncio

from finmind.audit import AuditLogger
from finmind.models import Account, Plan, TransactionKind, Transaction
from finmind.services.storage import InMemoryStorage, SqlStorage


NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """A clock tests can move forward by hand."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_account(
    user_id: int = 1,
    plan: Plan = Plan.TRIAL,
    trial_expires_at: Optional[datetime] = None,
    plan_expires_at: Optional[datetime] = None,
    ai_quota: Optional[int] = None,
    ai_quota_remaining: Optional[int] = None,
    email: str = "user@example.com",
) -> Account:
    return Account(
        user_id=user_id,
        email=email,
        plan=plan,
        trial_started_at=NOW - timedelta(days=1),
        trial_expires_at=trial_expires_at,
        plan_expires_at=plan_expires_at,
        ai_quota=ai_quota,
        ai_quota_remaining=ai_quota_remaining,
        created_at=NOW - timedelta(days=1),
    )


def make_transaction(
    amount: str,
    category: Optional[str] = None,
    occurred_on=None,
    owner_id: int = 1,
    title: str = "Entry",
) -> Transaction:
    """Signed amount string in, transaction of the matching kind out."""
    value = Decimal(amount)
    kind = TransactionKind.INCOME if value >= 0 else TransactionKind.EXPENSE
    return Transaction(
        owner_id=owner_id,
        title=title,
        category=category,
        kind=kind,
        amount=value,
        occurred_on=occurred_on if occurred_on is not None else NOW.date(),
        created_at=NOW,
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest_asyncio.fixture(params=["memory", "sql"])
async def storage(request):
    """Every storage backend, for contract tests."""
    if request.param == "memory":
        backend = InMemoryStorage()
    else:
        backend = SqlStorage("sqlite://")
    await backend.initialize()
    return backend


@pytest.fixture
def audit_logger(memory_storage) -> AuditLogger:
    return AuditLogger(memory_storage)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep tests independent of the developer's environment."""
    for name in (
        "GEMINI_API_KEY",
        "FINMIND_DB_URL",
        "FINMIND_AUTH_ALLOW_DEV_HEADER",
        "FINMIND_DEBUG_MODE",
        "FINMIND_APP_ENVIRONMENT",
        "FINMIND_TRIAL_DAYS",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("FINMIND_SEED_DEMO_DATA", "false")
    from finmind.config import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
