"""
Metrics Aggregator

Reduces assets, liabilities and period-filtered transactions into a
MetricsSnapshot.

DESIGN DECISION: Balances are point-in-time and use the FULL asset and
liability lists. Flows (income, expense, savings) use only transactions
inside the resolved period. Filtering balances by the period would be wrong.

All arithmetic is exact Decimal arithmetic. Nothing is rounded here;
rounding is a display concern.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from finmind.insights.periods import LAST_90D, resolve_period
from finmind.models.insights import FinancialSummary, MetricsSnapshot, PeriodWindow
from finmind.models.records import Asset, Liability, Transaction, TransactionKind

UNCATEGORIZED = "Uncategorized"

# Fixed 30-day month, not calendar-accurate
DAYS_PER_MONTH = 30

ZERO = Decimal("0")


def _in_window(transaction: Transaction, window: PeriodWindow) -> bool:
    if window.start is None:
        return True
    moment = transaction.effective_at
    if moment is None:
        return False
    return window.contains(moment)


def filter_transactions_by_period(
    transactions: Iterable[Transaction],
    period: str = LAST_90D,
    now: Optional[datetime] = None,
) -> list[Transaction]:
    """Keep the transactions whose effective date falls inside the period."""
    window = resolve_period(period, now)
    return [t for t in transactions if _in_window(t, window)]


def _sum_values(records: Iterable[Asset | Liability]) -> Decimal:
    return sum((record.value for record in records), ZERO)


def compute_metrics(
    assets: Sequence[Asset] = (),
    liabilities: Sequence[Liability] = (),
    transactions: Sequence[Transaction] = (),
    period: str = LAST_90D,
    now: Optional[datetime] = None,
) -> MetricsSnapshot:
    """
    Compute the metrics snapshot for one account.

    Args:
        assets: Every asset of the account (unfiltered)
        liabilities: Every liability of the account (unfiltered)
        transactions: Transactions to consider; filtered by period here
        period: Period token
        now: Reference time (defaults to the current UTC time)
    """
    window = resolve_period(period, now)
    filtered = [t for t in transactions if _in_window(t, window)]

    asset_total = _sum_values(assets)
    liability_total = _sum_values(liabilities)
    net_worth = asset_total - liability_total

    total_income = ZERO
    total_expense = ZERO
    expense_by_category: dict[str, Decimal] = {}

    for t in filtered:
        magnitude = abs(t.amount)
        if t.kind == TransactionKind.INCOME:
            total_income += magnitude
        else:
            total_expense += magnitude
            category = t.category or UNCATEGORIZED
            expense_by_category[category] = expense_by_category.get(category, ZERO) + magnitude

    savings_amount = total_income - total_expense
    average_daily_expense = total_expense / window.days

    return MetricsSnapshot(
        period=period,
        asset_total=asset_total,
        liability_total=liability_total,
        net_worth=net_worth,
        debt_to_asset_ratio=liability_total / asset_total if asset_total > 0 else None,
        total_income=total_income,
        total_expense=total_expense,
        savings_amount=savings_amount,
        savings_rate=savings_amount / total_income if total_income > 0 else None,
        expense_by_category=expense_by_category,
        average_daily_expense=average_daily_expense,
        monthly_burn=average_daily_expense * DAYS_PER_MONTH,
        transaction_count=len(filtered),
    )


def summarize_records(
    assets: Sequence[Asset] = (),
    liabilities: Sequence[Liability] = (),
    transactions: Sequence[Transaction] = (),
) -> FinancialSummary:
    """Totals over everything passed in, with no period filter."""
    asset_total = _sum_values(assets)
    liability_total = _sum_values(liabilities)
    income_total = sum(
        (abs(t.amount) for t in transactions if t.kind == TransactionKind.INCOME), ZERO
    )
    expense_total = sum(
        (abs(t.amount) for t in transactions if t.kind == TransactionKind.EXPENSE), ZERO
    )
    return FinancialSummary(
        asset_total=asset_total,
        liability_total=liability_total,
        net_worth=asset_total - liability_total,
        income_total=income_total,
        expense_total=expense_total,
    )
