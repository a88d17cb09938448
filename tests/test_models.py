"""
Tests for the FinMind data models.
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from finmind.models import (
    Account,
    Asset,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    InsightsReport,
    MetricsSnapshot,
    Plan,
    Transaction,
    TransactionKind,
)


class TestTransactionModel:
    """Tests for the transaction sign invariant and date handling."""

    def test_income_with_positive_amount(self):
        """Income carries a non-negative amount."""
        t = Transaction(owner_id=1, title="Salary", kind=TransactionKind.INCOME, amount=Decimal("5200"))
        assert t.amount == Decimal("5200")

    def test_income_with_negative_amount_rejected(self):
        """A negative income violates the sign invariant."""
        with pytest.raises(ValidationError):
            Transaction(owner_id=1, title="Salary", kind=TransactionKind.INCOME, amount=Decimal("-1"))

    def test_expense_with_positive_amount_rejected(self):
        """A positive expense violates the sign invariant."""
        with pytest.raises(ValidationError):
            Transaction(owner_id=1, title="Rent", kind=TransactionKind.EXPENSE, amount=Decimal("1800"))

    def test_replacement_record_revalidates_sign(self):
        """Flipping the kind of a stored expense without its sign fails."""
        t = Transaction(id=7, owner_id=1, title="Rent", kind=TransactionKind.EXPENSE, amount=Decimal("-1800"))
        with pytest.raises(ValidationError):
            Transaction.model_validate({**t.model_dump(), "kind": TransactionKind.INCOME})

    def test_signed_amount(self):
        """The kind decides the sign, whatever sign was sent."""
        assert Transaction.signed_amount(TransactionKind.INCOME, Decimal("-50")) == Decimal("50")
        assert Transaction.signed_amount(TransactionKind.EXPENSE, Decimal("50")) == Decimal("-50")
        assert Transaction.signed_amount(TransactionKind.EXPENSE, Decimal("-50")) == Decimal("-50")

    def test_unparseable_date_becomes_none(self):
        """An unparseable date falls back to the creation time."""
        created = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)
        t = Transaction(
            owner_id=1,
            title="Coffee",
            kind=TransactionKind.EXPENSE,
            amount=Decimal("-4"),
            occurred_on="not a date",
            created_at=created,
        )
        assert t.occurred_on is None
        assert t.effective_at == created

    def test_iso_string_date_parsed(self):
        t = Transaction(
            owner_id=1,
            title="Coffee",
            kind=TransactionKind.EXPENSE,
            amount=Decimal("-4"),
            occurred_on="2024-03-02",
        )
        assert t.occurred_on == date(2024, 3, 2)
        assert t.effective_at == datetime(2024, 3, 2, tzinfo=timezone.utc)

    def test_naive_created_at_treated_as_utc(self):
        t = Transaction(
            owner_id=1,
            title="Coffee",
            kind=TransactionKind.EXPENSE,
            amount=Decimal("-4"),
            created_at=datetime(2024, 3, 1, 9, 30),
        )
        assert t.effective_at.tzinfo is not None

    def test_blank_category_is_none(self):
        t = Transaction(
            owner_id=1, title="Misc", kind=TransactionKind.EXPENSE, amount=Decimal("-4"), category="   "
        )
        assert t.category is None


class TestBalanceModels:

    def test_asset_strips_whitespace(self):
        asset = Asset(owner_id=1, name="  Cash Reserve  ", value=Decimal("15000"))
        assert asset.name == "Cash Reserve"

    def test_negative_value_rejected(self):
        """Balances are magnitudes; debt goes in liabilities."""
        with pytest.raises(ValidationError):
            Asset(owner_id=1, name="Cash", value=Decimal("-1"))

    def test_money_serializes_as_number(self):
        asset = Asset(owner_id=1, name="Cash", value=Decimal("15000.50"))
        assert asset.model_dump(mode="json")["value"] == 15000.5
        assert asset.model_dump()["value"] == Decimal("15000.50")


class TestAccountModel:

    def test_naive_timestamps_become_utc(self):
        """Naive timestamps from storage are read as UTC."""
        account = Account(
            user_id=1,
            email="a@b.c",
            trial_started_at=datetime(2024, 1, 1),
            trial_expires_at=datetime(2024, 1, 8),
        )
        assert account.trial_started_at.tzinfo == timezone.utc
        assert account.trial_expires_at == datetime(2024, 1, 8, tzinfo=timezone.utc)

    def test_negative_quota_rejected(self):
        with pytest.raises(ValidationError):
            Account(user_id=1, email="a@b.c", ai_quota_remaining=-1)

    def test_paid_plans(self):
        assert Plan.PLUS.is_paid
        assert Plan.PRIME.is_paid
        assert not Plan.TRIAL.is_paid
        assert not Plan.FREE.is_paid


class TestInsightsModels:

    def _metrics(self) -> MetricsSnapshot:
        return MetricsSnapshot(
            period="last_30d",
            asset_total=Decimal("75000"),
            liability_total=Decimal("20000"),
            net_worth=Decimal("55000"),
            debt_to_asset_ratio=None,
            total_income=Decimal("0"),
            total_expense=Decimal("0"),
            savings_amount=Decimal("0"),
            savings_rate=None,
            expense_by_category={},
            average_daily_expense=Decimal("0"),
            monthly_burn=Decimal("0"),
            transaction_count=0,
        )

    def test_metrics_dump_uses_camel_case(self):
        data = self._metrics().model_dump(mode="json", by_alias=True)
        assert data["assetTotal"] == 75000
        assert data["debtToAssetRatio"] is None
        assert "transactionCount" in data

    def test_report_keeps_llm_advice_key(self):
        """The advice key is snake_case and always present."""
        report = InsightsReport(period="last_30d", lang="en", metrics=self._metrics())
        data = report.model_dump(mode="json", by_alias=True)
        assert data["llm_advice"] is None
        assert data["rules"] == []
        assert data["metrics"]["netWorth"] == 55000


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            description="Account created",
        )
        assert event.event_id is not None
        assert event.severity == AuditSeverity.INFO
        assert event.timestamp.tzinfo is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        correlation_id = uuid4()
        event = AuditEventBuilder.quota_consumed(7, 4, correlation_id)
        log_dict = event.to_log_dict()

        assert log_dict["event_type"] == "quota_consumed"
        assert log_dict["user_id"] == 7
        assert log_dict["correlation_id"] == str(correlation_id)
        assert log_dict["details"] == {"ai_quota_remaining": 4}

    def test_audit_event_builder_downgrade(self):
        event = AuditEventBuilder.entitlement_downgraded(3, "trial", "trial_expired")
        assert event.event_type == AuditEventType.ENTITLEMENT_DOWNGRADED
        assert event.severity == AuditSeverity.WARNING
        assert "trial" in event.description

    def test_audit_event_builder_denied(self):
        event = AuditEventBuilder.insights_denied(3, "quota_exhausted", uuid4())
        assert event.details == {"code": "quota_exhausted"}
