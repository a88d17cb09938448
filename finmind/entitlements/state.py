"""
Entitlement State Machine

States: free, trial (active or expired, derived from trial_expires_at),
plus and prime.

Transitions:
- Signup: trial for 7 days, unless plus/prime was requested at signup.
- Plan purchase: straight to plus/prime for one month with a fresh quota.
- Normalize-on-access: expired trials and expired paid plans drop to free
  with quota zeroed. Nothing expires accounts in the background.

Everything here is a pure function of an Account and a reference time.
The storage layer applies the results as single conditional updates.
"""

import calendar
from datetime import datetime, timedelta
from typing import NamedTuple, Optional

from finmind.models.records import Account, Plan

TRIAL_DAYS = 7

PLAN_QUOTAS = {
    Plan.PLUS: 10,
    Plan.PRIME: 30,
}


class PlanAllotment(NamedTuple):
    plan_expires_at: Optional[datetime]
    ai_quota: Optional[int]
    ai_quota_remaining: Optional[int]


class SignupEntitlement(NamedTuple):
    plan: Plan
    trial_started_at: datetime
    trial_expires_at: Optional[datetime]
    plan_expires_at: Optional[datetime]
    ai_quota: Optional[int]
    ai_quota_remaining: Optional[int]


def add_months(moment: datetime, months: int) -> datetime:
    """Calendar month addition, clamped to the last day of the target month."""
    total = (moment.month - 1) + months
    year = moment.year + total // 12
    month = total % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def plan_allotment(plan: Plan, now: datetime) -> PlanAllotment:
    """Expiry and AI quota granted by a plan starting now."""
    quota = PLAN_QUOTAS.get(plan)
    if quota is None:
        return PlanAllotment(None, None, None)
    return PlanAllotment(add_months(now, 1), quota, quota)


def signup_entitlement(
    requested_plan: Optional[Plan],
    now: datetime,
    trial_days: int = TRIAL_DAYS,
) -> SignupEntitlement:
    """
    Entitlement of a brand new account.

    Paid plans requested at signup apply immediately. Every other request
    starts a trial. Prime gets no trial window at all.
    """
    plan = requested_plan if requested_plan in PLAN_QUOTAS else Plan.TRIAL
    trial_expires_at = None if plan == Plan.PRIME else now + timedelta(days=trial_days)
    allotment = plan_allotment(plan, now)
    return SignupEntitlement(
        plan=plan,
        trial_started_at=now,
        trial_expires_at=trial_expires_at,
        plan_expires_at=allotment.plan_expires_at,
        ai_quota=allotment.ai_quota,
        ai_quota_remaining=allotment.ai_quota_remaining,
    )


def is_trial_expired(account: Account, now: datetime) -> bool:
    """A trial with no expiry on record counts as expired."""
    if account.plan != Plan.TRIAL:
        return False
    return account.trial_expires_at is None or account.trial_expires_at <= now


def is_active_trial(account: Account, now: datetime) -> bool:
    return (
        account.plan == Plan.TRIAL
        and account.trial_expires_at is not None
        and account.trial_expires_at > now
    )


def is_plan_expired(account: Account, now: datetime) -> bool:
    return account.plan_expires_at is not None and account.plan_expires_at < now


def is_premium(account: Account, now: datetime) -> bool:
    """Eligible for insights at all."""
    return account.plan.is_paid or is_active_trial(account, now)


def downgrade_reason(account: Account, now: datetime) -> Optional[str]:
    """
    Why the account must drop to free right now, or None if it keeps its plan.
    """
    if is_trial_expired(account, now):
        return "trial_expired"
    if account.plan != Plan.FREE and is_plan_expired(account, now):
        return "plan_expired"
    return None


def needs_downgrade(account: Account, now: datetime) -> bool:
    return downgrade_reason(account, now) is not None


def normalize_entitlement(account: Account, now: datetime) -> Account:
    """
    The account as it must be observed at `now`.

    Idempotent: normalizing an already normalized account returns it unchanged.
    """
    if not needs_downgrade(account, now):
        return account
    return account.model_copy(
        update={"plan": Plan.FREE, "ai_quota": 0, "ai_quota_remaining": 0}
    )
