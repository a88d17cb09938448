"""
Entitlement Service

Everything that changes who an account is and what it may do: signup,
login, sessions, plan purchase and the lazy normalize-on-access.

DESIGN DECISION: Expiry is pull-based. No scheduler ever downgrades an
account. Every authenticated access calls ensure_active_plan(), which
applies any due downgrade through a conditional update, so the state a
request observes is always current.
"""

import secrets
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable, Optional

import bcrypt

from finmind.entitlements.state import (
    TRIAL_DAYS,
    downgrade_reason,
    plan_allotment,
    signup_entitlement,
)
from finmind.models.records import Account, Plan, utcnow
from finmind.services.storage.interface import AccountNotFoundError, Storage

if TYPE_CHECKING:
    from finmind.audit.logger import AuditLogger


class AuthenticationError(Exception):
    """Credentials or bearer token did not resolve to an account."""
    pass


class EntitlementService:
    """
    Account lifecycle on top of the storage backend.

    Usage:
        service = EntitlementService(storage, audit_logger)
        account = await service.ensure_active_plan(user_id)
    """

    def __init__(
        self,
        storage: Storage,
        audit_logger: "AuditLogger",
        clock: Callable[[], datetime] = utcnow,
        trial_days: int = TRIAL_DAYS,
        session_ttl_days: int = 7,
    ):
        self._storage = storage
        self._audit = audit_logger
        self._clock = clock
        self._trial_days = trial_days
        self._session_ttl = timedelta(days=session_ttl_days)

    async def ensure_active_plan(self, user_id: int) -> Account:
        """
        Load an account and bring its entitlement up to date.

        Idempotent: a second call right after the first changes nothing.

        Raises:
            AccountNotFoundError: If the account no longer exists
        """
        now = self._clock()
        account = await self._storage.get_account(user_id)
        if account is None:
            raise AccountNotFoundError(user_id)

        reason = downgrade_reason(account, now)
        if reason is None:
            return account

        updated = await self._storage.downgrade_expired(user_id, now)
        if updated is None:
            raise AccountNotFoundError(user_id)
        if updated.plan == Plan.FREE:
            await self._audit.log_entitlement_downgraded(user_id, account.plan.value, reason)
        return updated

    async def register(
        self,
        email: str,
        password: str,
        display_name: Optional[str] = None,
        plan: Optional[Plan] = None,
    ) -> Account:
        """
        Create an account.

        Raises:
            DuplicateError: If the email is already registered
        """
        now = self._clock()
        entitlement = signup_entitlement(plan, now, self._trial_days)
        password_hash = bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()
        account = await self._storage.create_account(
            Account(
                user_id=0,
                email=email.strip().lower(),
                display_name=display_name,
                created_at=now,
                **entitlement._asdict(),
            ),
            password_hash,
        )
        await self._audit.log_account_created(account.user_id, account.plan.value)
        return account

    async def authenticate(self, email: str, password: str) -> Account:
        """
        Check credentials and return the normalized account.

        Raises:
            AuthenticationError: If the email is unknown or the password wrong
        """
        credentials = await self._storage.get_credentials(email.strip())
        if credentials is None:
            raise AuthenticationError("Invalid credentials")
        account, password_hash = credentials
        if not bcrypt.checkpw(password.encode(), password_hash.encode()):
            raise AuthenticationError("Invalid credentials")

        await self._audit.log_user_logged_in(account.user_id)
        return await self.ensure_active_plan(account.user_id)

    async def issue_session(self, user_id: int) -> str:
        """Create an opaque bearer token for the account."""
        token = secrets.token_urlsafe(32)
        await self._storage.create_session(token, user_id, self._clock() + self._session_ttl)
        return token

    async def resolve_session(self, token: str) -> int:
        """
        Raises:
            AuthenticationError: If the token is unknown or expired
        """
        user_id = await self._storage.resolve_session(token, self._clock())
        if user_id is None:
            raise AuthenticationError("Invalid or expired session")
        return user_id

    async def confirm_purchase(self, user_id: int, plan: Plan) -> Account:
        """
        Switch the account to a purchased plan with a fresh month and quota.

        Raises:
            ValueError: If the plan cannot be purchased
            AccountNotFoundError: If the account no longer exists
        """
        if not plan.is_paid:
            raise ValueError(f"Plan cannot be purchased: {plan.value}")

        allotment = plan_allotment(plan, self._clock())
        account = await self._storage.apply_plan(
            user_id,
            plan,
            plan_expires_at=allotment.plan_expires_at,
            ai_quota=allotment.ai_quota,
        )
        if account is None:
            raise AccountNotFoundError(user_id)

        await self._audit.log_plan_confirmed(user_id, plan.value, account.ai_quota)
        return account

    async def rename(self, user_id: int, display_name: str) -> Account:
        """
        Raises:
            AccountNotFoundError: If the account no longer exists
        """
        account = await self._storage.update_display_name(user_id, display_name.strip())
        if account is None:
            raise AccountNotFoundError(user_id)
        return account
