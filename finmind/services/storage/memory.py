"""
In-Memory Storage Implementation

Used for demos, local prototyping and tests. Data lives for the lifetime
of the process.

ATOMICITY: Every method body runs without awaiting, so on the event loop
each one is a single indivisible step. That is what makes the conditional
updates on the account row safe here without any locking.
"""

from collections import defaultdict
from datetime import datetime, timezone
from itertools import count
from typing import Optional, TypeVar
from uuid import UUID

from finmind.entitlements.state import needs_downgrade, normalize_entitlement
from finmind.models.audit import AuditEvent
from finmind.models.records import (
    Account,
    Asset,
    BalanceRecord,
    Liability,
    Plan,
    Transaction,
)
from finmind.services.storage.interface import DuplicateError, Storage

R = TypeVar("R", bound=BalanceRecord)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _transaction_sort_key(t: Transaction) -> tuple:
    moment = t.effective_at or _EPOCH
    created = t.created_at or _EPOCH
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (moment.date(), created, t.id or 0)


class InMemoryStorage(Storage):
    """
    Dictionary-backed implementation of every storage capability.
    """

    def __init__(self):
        self._ids = defaultdict(lambda: count(1))
        self._assets: dict[int, Asset] = {}
        self._liabilities: dict[int, Liability] = {}
        self._transactions: dict[int, Transaction] = {}
        self._accounts: dict[int, Account] = {}
        self._password_hashes: dict[int, str] = {}
        self._sessions: dict[str, tuple[int, datetime]] = {}
        self._events: list[AuditEvent] = []

    def _next_id(self, table: str) -> int:
        return next(self._ids[table])

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    @staticmethod
    def _owned(table: dict[int, R], user_id: int) -> list[R]:
        records = [r for r in table.values() if r.owner_id == user_id]
        records.sort(key=lambda r: (r.created_at, r.id), reverse=True)
        return records

    def _add(self, name: str, table: dict, record):
        stored = record.model_copy(update={"id": self._next_id(name)})
        table[stored.id] = stored
        return stored

    @staticmethod
    def _update(table: dict, record):
        existing = table.get(record.id)
        if existing is None or existing.owner_id != record.owner_id:
            return None
        stored = record.model_copy(update={"created_at": existing.created_at})
        table[stored.id] = stored
        return stored

    @staticmethod
    def _delete(table: dict, user_id: int, record_id: int):
        existing = table.get(record_id)
        if existing is None or existing.owner_id != user_id:
            return None
        return table.pop(record_id)

    async def list_assets(self, user_id: int) -> list[Asset]:
        return self._owned(self._assets, user_id)

    async def list_liabilities(self, user_id: int) -> list[Liability]:
        return self._owned(self._liabilities, user_id)

    async def list_transactions(self, user_id: int, limit: int = 50) -> list[Transaction]:
        owned = [t for t in self._transactions.values() if t.owner_id == user_id]
        owned.sort(key=_transaction_sort_key, reverse=True)
        return owned[:limit]

    async def add_asset(self, asset: Asset) -> Asset:
        return self._add("assets", self._assets, asset)

    async def update_asset(self, asset: Asset) -> Optional[Asset]:
        return self._update(self._assets, asset)

    async def delete_asset(self, user_id: int, asset_id: int) -> Optional[Asset]:
        return self._delete(self._assets, user_id, asset_id)

    async def add_liability(self, liability: Liability) -> Liability:
        return self._add("liabilities", self._liabilities, liability)

    async def update_liability(self, liability: Liability) -> Optional[Liability]:
        return self._update(self._liabilities, liability)

    async def delete_liability(self, user_id: int, liability_id: int) -> Optional[Liability]:
        return self._delete(self._liabilities, user_id, liability_id)

    async def add_transaction(self, transaction: Transaction) -> Transaction:
        return self._add("transactions", self._transactions, transaction)

    async def update_transaction(self, transaction: Transaction) -> Optional[Transaction]:
        return self._update(self._transactions, transaction)

    async def delete_transaction(self, user_id: int, transaction_id: int) -> Optional[Transaction]:
        return self._delete(self._transactions, user_id, transaction_id)

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    async def create_account(self, account: Account, password_hash: str) -> Account:
        email = account.email.lower()
        if any(a.email.lower() == email for a in self._accounts.values()):
            raise DuplicateError(f"Email already registered: {account.email}")
        stored = account.model_copy(update={"user_id": self._next_id("users")})
        self._accounts[stored.user_id] = stored
        self._password_hashes[stored.user_id] = password_hash
        return stored

    async def get_account(self, user_id: int) -> Optional[Account]:
        return self._accounts.get(user_id)

    async def get_credentials(self, email: str) -> Optional[tuple[Account, str]]:
        email = email.lower()
        for account in self._accounts.values():
            if account.email.lower() == email:
                return account, self._password_hashes[account.user_id]
        return None

    async def update_display_name(self, user_id: int, display_name: str) -> Optional[Account]:
        account = self._accounts.get(user_id)
        if account is None:
            return None
        account = account.model_copy(update={"display_name": display_name})
        self._accounts[user_id] = account
        return account

    async def downgrade_expired(self, user_id: int, now: datetime) -> Optional[Account]:
        account = self._accounts.get(user_id)
        if account is None:
            return None
        if needs_downgrade(account, now):
            account = normalize_entitlement(account, now)
            self._accounts[user_id] = account
        return account

    async def apply_plan(
        self,
        user_id: int,
        plan: Plan,
        plan_expires_at: Optional[datetime],
        ai_quota: Optional[int],
    ) -> Optional[Account]:
        account = self._accounts.get(user_id)
        if account is None:
            return None
        account = account.model_copy(update={
            "plan": plan,
            "trial_expires_at": None,
            "plan_expires_at": plan_expires_at,
            "ai_quota": ai_quota,
            "ai_quota_remaining": ai_quota,
        })
        self._accounts[user_id] = account
        return account

    async def consume_quota(self, user_id: int) -> Optional[Account]:
        account = self._accounts.get(user_id)
        if account is None or account.plan != Plan.PLUS:
            return None
        if account.ai_quota_remaining is None or account.ai_quota_remaining <= 0:
            return None
        account = account.model_copy(
            update={"ai_quota_remaining": account.ai_quota_remaining - 1}
        )
        self._accounts[user_id] = account
        return account

    async def create_session(self, token: str, user_id: int, expires_at: datetime) -> None:
        self._sessions[token] = (user_id, expires_at)

    async def resolve_session(self, token: str, now: datetime) -> Optional[int]:
        session = self._sessions.get(token)
        if session is None:
            return None
        user_id, expires_at = session
        if expires_at <= now:
            del self._sessions[token]
            return None
        return user_id

    # -------------------------------------------------------------------------
    # Audit
    # -------------------------------------------------------------------------

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
