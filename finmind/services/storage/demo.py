"""
Demo data seeding.

Gives a fresh in-memory deployment one populated account so the insights
endpoint has something to work with out of the box.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

import bcrypt
import structlog

from finmind.entitlements.state import signup_entitlement
from finmind.models.records import (
    Account,
    Asset,
    Liability,
    Plan,
    Transaction,
    TransactionKind,
    utcnow,
)
from finmind.services.storage.interface import Storage

logger = structlog.get_logger()

DEMO_EMAIL = "demo@finmind.ai"
DEMO_PASSWORD = "demo123"

DEMO_ASSETS = [
    ("Crypto Portfolio", "DeFi", "42000"),
    ("Cash Reserve", "Cash", "15000"),
    ("Index Fund", "ETF", "18000"),
]

DEMO_LIABILITIES = [
    ("Car Loan", "Auto", "12000"),
    ("Credit Card", "Revolving", "3500"),
    ("Student Loan", "Education", "24000"),
]

# (title, category, kind, amount, days ago)
DEMO_TRANSACTIONS = [
    ("Salary Deposit", "Salary", TransactionKind.INCOME, "5200", 9),
    ("Food Expense", "Dining", TransactionKind.EXPENSE, "320", 8),
    ("Car Loan Payment", "Debt", TransactionKind.EXPENSE, "420", 7),
    ("Crypto Yield", "Investments", TransactionKind.INCOME, "280", 6),
    ("Groceries", "Living", TransactionKind.EXPENSE, "180", 5),
]


async def seed_demo_data(
    storage: Storage,
    now: Optional[datetime] = None,
    trial_days: int = 7,
) -> Optional[Account]:
    """
    Create the demo account with its records, unless it already exists.

    Transactions are dated relative to `now` so they always fall inside
    the default period.
    """
    now = now or utcnow()
    if await storage.get_credentials(DEMO_EMAIL) is not None:
        return None

    entitlement = signup_entitlement(Plan.TRIAL, now, trial_days)
    password_hash = bcrypt.hashpw(DEMO_PASSWORD.encode(), bcrypt.gensalt()).decode()
    account = await storage.create_account(
        Account(
            user_id=0,
            email=DEMO_EMAIL,
            display_name="Demo User",
            created_at=now,
            **entitlement._asdict(),
        ),
        password_hash,
    )

    for name, tag, value in DEMO_ASSETS:
        await storage.add_asset(
            Asset(owner_id=account.user_id, name=name, tag=tag, value=Decimal(value), created_at=now)
        )
    for name, tag, value in DEMO_LIABILITIES:
        await storage.add_liability(
            Liability(owner_id=account.user_id, name=name, tag=tag, value=Decimal(value), created_at=now)
        )
    for title, category, kind, amount, days_ago in DEMO_TRANSACTIONS:
        await storage.add_transaction(
            Transaction(
                owner_id=account.user_id,
                title=title,
                category=category,
                kind=kind,
                amount=Transaction.signed_amount(kind, Decimal(amount)),
                occurred_on=(now - timedelta(days=days_ago)).date(),
                created_at=now,
            )
        )

    logger.info("demo_data_seeded", user_id=account.user_id, email=DEMO_EMAIL)
    return account
