"""
Tests for the entitlement state machine (pure functions).
"""

from datetime import datetime, timedelta, timezone

import pytest

from finmind.entitlements import (
    add_months,
    downgrade_reason,
    is_active_trial,
    is_premium,
    is_trial_expired,
    normalize_entitlement,
    plan_allotment,
    signup_entitlement,
)
from finmind.models import Plan

from conftest import NOW, make_account


class TestAddMonths:

    def test_plain(self):
        assert add_months(NOW, 1) == datetime(2024, 7, 15, 12, 0, tzinfo=timezone.utc)

    def test_clamps_to_month_end(self):
        assert add_months(datetime(2024, 1, 31, tzinfo=timezone.utc), 1).day == 29
        assert add_months(datetime(2023, 1, 31, tzinfo=timezone.utc), 1).day == 28

    def test_year_rollover(self):
        assert add_months(datetime(2024, 12, 10), 1) == datetime(2025, 1, 10)


class TestAllotments:

    def test_plus(self):
        allotment = plan_allotment(Plan.PLUS, NOW)
        assert allotment.ai_quota == 10
        assert allotment.ai_quota_remaining == 10
        assert allotment.plan_expires_at == add_months(NOW, 1)

    def test_prime(self):
        assert plan_allotment(Plan.PRIME, NOW).ai_quota == 30

    @pytest.mark.parametrize("plan", [Plan.FREE, Plan.TRIAL])
    def test_unpaid_plans_get_nothing(self, plan):
        assert plan_allotment(plan, NOW) == (None, None, None)


class TestSignup:

    def test_default_is_seven_day_trial(self):
        entitlement = signup_entitlement(None, NOW)
        assert entitlement.plan == Plan.TRIAL
        assert entitlement.trial_expires_at == NOW + timedelta(days=7)
        assert entitlement.ai_quota is None

    def test_free_request_still_starts_trial(self):
        assert signup_entitlement(Plan.FREE, NOW).plan == Plan.TRIAL

    def test_plus_applies_immediately(self):
        entitlement = signup_entitlement(Plan.PLUS, NOW)
        assert entitlement.plan == Plan.PLUS
        assert entitlement.ai_quota_remaining == 10
        assert entitlement.trial_expires_at is not None

    def test_prime_has_no_trial_window(self):
        entitlement = signup_entitlement(Plan.PRIME, NOW)
        assert entitlement.plan == Plan.PRIME
        assert entitlement.trial_expires_at is None
        assert entitlement.ai_quota == 30


class TestNormalization:

    def test_active_trial_is_premium(self):
        account = make_account(plan=Plan.TRIAL, trial_expires_at=NOW + timedelta(days=1))
        assert is_active_trial(account, NOW)
        assert is_premium(account, NOW)
        assert normalize_entitlement(account, NOW) is account

    def test_trial_expiry_boundary_counts_as_expired(self):
        account = make_account(plan=Plan.TRIAL, trial_expires_at=NOW)
        assert is_trial_expired(account, NOW)
        assert not is_premium(account, NOW)

    def test_trial_without_expiry_is_expired(self):
        account = make_account(plan=Plan.TRIAL, trial_expires_at=None)
        assert downgrade_reason(account, NOW) == "trial_expired"

    def test_expired_trial_downgrades_idempotently(self):
        account = make_account(plan=Plan.TRIAL, trial_expires_at=NOW - timedelta(days=1))
        once = normalize_entitlement(account, NOW)
        twice = normalize_entitlement(once, NOW)
        assert once.plan == Plan.FREE
        assert once.ai_quota_remaining == 0
        assert once.ai_quota == 0
        assert twice == once

    def test_expired_paid_plan_downgrades(self):
        account = make_account(
            plan=Plan.PLUS,
            plan_expires_at=NOW - timedelta(seconds=1),
            ai_quota=10,
            ai_quota_remaining=4,
        )
        assert downgrade_reason(account, NOW) == "plan_expired"
        normalized = normalize_entitlement(account, NOW)
        assert normalized.plan == Plan.FREE
        assert normalized.ai_quota_remaining == 0

    def test_plan_expiry_at_exactly_now_is_still_active(self):
        account = make_account(plan=Plan.PRIME, plan_expires_at=NOW, ai_quota=30, ai_quota_remaining=30)
        assert downgrade_reason(account, NOW) is None

    def test_free_account_unchanged(self):
        account = make_account(plan=Plan.FREE, plan_expires_at=NOW - timedelta(days=3))
        assert normalize_entitlement(account, NOW) is account
        assert not is_premium(account, NOW)

    def test_paid_plan_is_premium_regardless_of_trial(self):
        account = make_account(plan=Plan.PLUS, trial_expires_at=NOW - timedelta(days=30))
        assert is_premium(account, NOW)
        assert downgrade_reason(account, NOW) is None
