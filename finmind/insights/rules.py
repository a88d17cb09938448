"""
Rule Evaluator

A static, ordered catalog of independent checks. Each rule pairs a
predicate over a MetricsSnapshot with a builder for its finding.

DESIGN DECISION: The catalog order is authoritative. Rules are evaluated
in declaration order and the output keeps that order, so identical
snapshots always produce identical findings. The evaluator holds no
state between calls.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Optional

from finmind.models.insights import MetricsSnapshot, RuleFinding, Severity

DEBT_RATIO_CRITICAL = Decimal("0.9")
DEBT_RATIO_WARNING = Decimal("0.5")
LOW_SAVINGS_RATE = Decimal("0.1")
MIN_RUNWAY_MONTHS = Decimal("3")
CONCENTRATION_SHARE = Decimal("0.4")


@dataclass(frozen=True)
class Rule:
    """One catalog entry."""
    id: str
    severity: Severity
    title: str
    tags: tuple[str, ...]
    predicate: Callable[[MetricsSnapshot], bool]
    message: Callable[[MetricsSnapshot], str]

    def evaluate(self, metrics: MetricsSnapshot) -> Optional[RuleFinding]:
        if not self.predicate(metrics):
            return None
        return RuleFinding(
            id=self.id,
            severity=self.severity,
            title=self.title,
            message=self.message(metrics),
            tags=list(self.tags),
        )


def top_expense_category(metrics: MetricsSnapshot) -> Optional[tuple[str, Decimal, Decimal]]:
    """
    Largest expense category with its share of all category expenses.

    Ties go to the first category encountered (stable sort).

    Returns:
        (category, amount, share) or None when there is nothing to compare
    """
    if not metrics.expense_by_category:
        return None
    total = sum(metrics.expense_by_category.values(), Decimal("0"))
    if total <= 0:
        return None
    ranked = sorted(metrics.expense_by_category.items(), key=lambda item: item[1], reverse=True)
    category, amount = ranked[0]
    return category, amount, amount / total


def _debt_ratio_at_least(threshold: Decimal) -> Callable[[MetricsSnapshot], bool]:
    return lambda m: m.debt_to_asset_ratio is not None and m.debt_to_asset_ratio >= threshold


def _is_high_leverage(m: MetricsSnapshot) -> bool:
    ratio = m.debt_to_asset_ratio
    return ratio is not None and DEBT_RATIO_WARNING < ratio < DEBT_RATIO_CRITICAL


def _is_short_runway(m: MetricsSnapshot) -> bool:
    return (
        m.net_worth > 0
        and m.monthly_burn > 0
        and m.net_worth / m.monthly_burn < MIN_RUNWAY_MONTHS
    )


def _is_concentrated(m: MetricsSnapshot) -> bool:
    top = top_expense_category(m)
    return top is not None and top[2] > CONCENTRATION_SHARE


def _concentration_message(m: MetricsSnapshot) -> str:
    category, _, share = top_expense_category(m)
    percent = (share * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return (
        f"High spend concentration in {category} ({percent}% of expenses). "
        "Diversify or cap this category."
    )


def _fixed(text: str) -> Callable[[MetricsSnapshot], str]:
    return lambda _m: text


RULE_CATALOG: tuple[Rule, ...] = (
    Rule(
        id="no-assets",
        severity=Severity.CRITICAL,
        title="Liabilities without assets",
        tags=("assets", "debt"),
        predicate=lambda m: m.asset_total == 0 and m.liability_total > 0,
        message=_fixed(
            "You have liabilities but no recorded assets. "
            "Add assets or reduce debt to avoid negative net worth."
        ),
    ),
    Rule(
        id="debt-ratio-critical",
        severity=Severity.CRITICAL,
        title="Debt heavy portfolio",
        tags=("debt",),
        predicate=_debt_ratio_at_least(DEBT_RATIO_CRITICAL),
        message=_fixed("Debt-to-asset ratio is above 90%. Prioritize paying down liabilities."),
    ),
    Rule(
        id="debt-ratio-warning",
        severity=Severity.WARNING,
        title="High leverage",
        tags=("debt",),
        predicate=_is_high_leverage,
        message=_fixed(
            "Debt-to-asset ratio is above 50%. "
            "Consider reducing liabilities or increasing assets."
        ),
    ),
    Rule(
        id="low-savings-rate",
        severity=Severity.WARNING,
        title="Low savings rate",
        tags=("cashflow",),
        predicate=lambda m: m.savings_rate is not None and m.savings_rate < LOW_SAVINGS_RATE,
        message=_fixed("Savings rate is below 10%. Try trimming expenses or boosting income."),
    ),
    Rule(
        id="negative-savings",
        severity=Severity.CRITICAL,
        title="Spending exceeds income",
        tags=("cashflow",),
        predicate=lambda m: m.savings_rate is not None and m.savings_rate < 0,
        message=_fixed("Expenses exceed income. Review recurring costs and discretionary spend."),
    ),
    Rule(
        id="expense-over-income",
        severity=Severity.WARNING,
        title="Expenses exceed income",
        tags=("cashflow",),
        predicate=lambda m: m.total_expense > m.total_income and m.total_income > 0,
        message=_fixed(
            "Your expenses in this period are higher than income. "
            "Adjust spend or increase earnings."
        ),
    ),
    Rule(
        id="short-runway",
        severity=Severity.WARNING,
        title="Short financial runway",
        tags=("liquidity",),
        predicate=_is_short_runway,
        message=_fixed("Net worth covers less than 3 months of expenses. Build a larger buffer."),
    ),
    Rule(
        id="expense-concentration",
        severity=Severity.INFO,
        title="Expense concentration",
        tags=("spending",),
        predicate=_is_concentrated,
        message=_concentration_message,
    ),
)


def evaluate_rules(metrics: MetricsSnapshot) -> list[RuleFinding]:
    """Run the catalog against a snapshot, in catalog order."""
    findings = []
    for rule in RULE_CATALOG:
        finding = rule.evaluate(metrics)
        if finding is not None:
            findings.append(finding)
    return findings
