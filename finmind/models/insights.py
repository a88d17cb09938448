"""
Insights Models

Derived, never persisted: a metrics snapshot lives for exactly one
request and is fully determined by its inputs and the period.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from finmind.models.records import Money


class Severity(str, Enum):
    """Severity of a rule finding."""
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class PeriodWindow(BaseModel):
    """
    A resolved period.

    `start` is None for unrestricted periods; `days` is then only used to
    normalize per-day figures, never to filter.
    """
    model_config = ConfigDict(frozen=True)

    token: str
    start: Optional[datetime] = None
    end: datetime
    days: int = Field(..., ge=1)

    def contains(self, moment: datetime) -> bool:
        if self.start is None:
            return True
        return self.start <= moment <= self.end


class MetricsSnapshot(BaseModel):
    """
    Balance and flow metrics for one account and one period.

    Balances (asset/liability totals, net worth) use the full record set;
    flows (income, expense, savings) use the period-filtered transactions.
    Ratios are plain fractions, not percentages.
    """
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    period: str
    asset_total: Money
    liability_total: Money
    net_worth: Money
    debt_to_asset_ratio: Optional[Money] = None
    total_income: Money
    total_expense: Money
    savings_amount: Money
    savings_rate: Optional[Money] = None
    expense_by_category: dict[str, Money] = Field(default_factory=dict)
    average_daily_expense: Money
    monthly_burn: Money
    transaction_count: int = Field(..., ge=0)


class RuleFinding(BaseModel):
    """
    One advisory observation.

    `id` is a catalog key, not an instance identifier.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    severity: Severity
    title: str
    message: str
    tags: list[str] = Field(default_factory=list)


class InsightsReport(BaseModel):
    """Response body of the insights endpoint."""

    period: str
    lang: str
    metrics: MetricsSnapshot
    rules: list[RuleFinding] = Field(default_factory=list)
    llm_advice: Optional[str] = None


class FinancialSummary(BaseModel):
    """Unwindowed balance and flow totals for the dashboard header."""
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    asset_total: Money
    liability_total: Money
    net_worth: Money
    income_total: Money
    expense_total: Money
