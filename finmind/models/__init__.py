"""
Data Models Package

This package contains all Pydantic models used in FinMind.
All data flowing through the system must conform to these schemas.
"""

from finmind.models.records import (
    Account,
    Asset,
    BalanceRecord,
    Liability,
    Money,
    Plan,
    Transaction,
    TransactionKind,
    parse_loose_date,
    utcnow,
)
from finmind.models.insights import (
    FinancialSummary,
    InsightsReport,
    MetricsSnapshot,
    PeriodWindow,
    RuleFinding,
    Severity,
)
from finmind.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Record models
    "Account",
    "Asset",
    "BalanceRecord",
    "Liability",
    "Money",
    "Plan",
    "Transaction",
    "TransactionKind",
    "parse_loose_date",
    "utcnow",
    # Insights models
    "FinancialSummary",
    "InsightsReport",
    "MetricsSnapshot",
    "PeriodWindow",
    "RuleFinding",
    "Severity",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
