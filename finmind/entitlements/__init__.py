"""Entitlement state machine, quota gate and account lifecycle."""

from finmind.entitlements.state import (
    PLAN_QUOTAS,
    TRIAL_DAYS,
    add_months,
    downgrade_reason,
    is_active_trial,
    is_plan_expired,
    is_premium,
    is_trial_expired,
    needs_downgrade,
    normalize_entitlement,
    plan_allotment,
    signup_entitlement,
)
from finmind.entitlements.gate import (
    EntitlementError,
    PlanRequiredError,
    QuotaExhaustedError,
    QuotaGate,
    is_metered,
)
from finmind.entitlements.service import AuthenticationError, EntitlementService

__all__ = [
    "PLAN_QUOTAS",
    "TRIAL_DAYS",
    "AuthenticationError",
    "EntitlementError",
    "EntitlementService",
    "PlanRequiredError",
    "QuotaExhaustedError",
    "QuotaGate",
    "add_months",
    "downgrade_reason",
    "is_active_trial",
    "is_metered",
    "is_plan_expired",
    "is_premium",
    "is_trial_expired",
    "needs_downgrade",
    "normalize_entitlement",
    "plan_allotment",
    "signup_entitlement",
]
