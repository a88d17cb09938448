"""
Quota Gate

Decides whether a normalized account may receive insights, and charges
metered plans for it.

Two steps with a gap in between:
1. authorize() before any work, on the normalized account
2. commit() once the request is certain to be served

The charge is a single conditional decrement in storage. If a concurrent
request drained the last unit between the two steps, commit() fails with
the same quota signal authorize() would have given.
"""

from datetime import datetime

from finmind.entitlements.state import is_premium
from finmind.models.records import Account, Plan
from finmind.services.storage.interface import AccountStorageInterface


class EntitlementError(Exception):
    """The account may not receive insights right now. Terminal, never retried."""

    code = "entitlement_error"
    user_message = "Insights are not available for this account"

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"{self.code} for account {user_id}")


class PlanRequiredError(EntitlementError):
    """Neither a paid plan nor an active trial."""

    code = "plan_required"
    user_message = "Upgrade to unlock advisor insights"


class QuotaExhaustedError(EntitlementError):
    """A metered plan with nothing left."""

    code = "quota_exhausted"
    user_message = "You've used all AI insights this month"


def is_metered(account: Account) -> bool:
    """Only plus is charged per request, and only when it carries a balance."""
    return account.plan == Plan.PLUS and account.ai_quota_remaining is not None


class QuotaGate:
    """
    Usage:
        gate = QuotaGate(storage)
        gate.authorize(account, now)
        ... compute the report ...
        account = await gate.commit(account)
    """

    def __init__(self, storage: AccountStorageInterface):
        self._storage = storage

    def authorize(self, account: Account, now: datetime) -> None:
        """
        Raises:
            PlanRequiredError: If the account is not premium
            QuotaExhaustedError: If a metered account has no quota left
        """
        if not is_premium(account, now):
            raise PlanRequiredError(account.user_id)
        if is_metered(account) and account.ai_quota_remaining <= 0:
            raise QuotaExhaustedError(account.user_id)

    async def commit(self, account: Account) -> Account:
        """
        Charge one unit for a served request.

        Unmetered accounts (trial, prime, plus without a balance) pass
        through untouched.

        Raises:
            QuotaExhaustedError: If the conditional decrement found nothing left
        """
        if not is_metered(account):
            return account
        updated = await self._storage.consume_quota(account.user_id)
        if updated is None:
            raise QuotaExhaustedError(account.user_id)
        return updated
