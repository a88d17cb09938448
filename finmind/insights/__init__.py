"""Financial insights engine: periods, metrics and rules."""

from finmind.insights.metrics import (
    UNCATEGORIZED,
    compute_metrics,
    filter_transactions_by_period,
    summarize_records,
)
from finmind.insights.periods import LAST_30D, LAST_90D, YTD, resolve_period
from finmind.insights.rules import RULE_CATALOG, Rule, evaluate_rules, top_expense_category

__all__ = [
    "LAST_30D",
    "LAST_90D",
    "RULE_CATALOG",
    "Rule",
    "UNCATEGORIZED",
    "YTD",
    "compute_metrics",
    "evaluate_rules",
    "filter_transactions_by_period",
    "resolve_period",
    "summarize_records",
    "top_expense_category",
]
