"""
Abstract Storage Interface

DESIGN DECISION: We define abstract interfaces for storage operations.
This allows us to:
1. Run on an in-memory store for demos and tests
2. Run on a relational database in production
3. Keep business logic decoupled from storage implementation

Both implementations are selected once at startup; the core never branches
on which one it talks to.

CONCURRENCY: The account row is the only state shared between requests.
Every mutation of it (downgrade, plan change, quota decrement) is a single
conditional update. Implementations must never read-then-write in two steps.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from finmind.models.audit import AuditEvent
from finmind.models.records import (
    Account,
    Asset,
    Liability,
    Plan,
    Transaction,
)


class RecordStorageInterface(ABC):
    """
    Abstract interface for asset, liability and transaction storage.

    Every operation is scoped to one owner. Update and delete return None
    when the record does not exist or belongs to someone else.
    """

    @abstractmethod
    async def list_assets(self, user_id: int) -> list[Asset]:
        """All assets of an account, newest first."""
        pass

    @abstractmethod
    async def list_liabilities(self, user_id: int) -> list[Liability]:
        """All liabilities of an account, newest first."""
        pass

    @abstractmethod
    async def list_transactions(self, user_id: int, limit: int = 50) -> list[Transaction]:
        """
        Most recent transactions of an account.

        Args:
            user_id: Owning account
            limit: Maximum number of results

        Returns:
            Transactions ordered by date descending
        """
        pass

    @abstractmethod
    async def add_asset(self, asset: Asset) -> Asset:
        """Store a new asset and return it with its id."""
        pass

    @abstractmethod
    async def update_asset(self, asset: Asset) -> Optional[Asset]:
        pass

    @abstractmethod
    async def delete_asset(self, user_id: int, asset_id: int) -> Optional[Asset]:
        pass

    @abstractmethod
    async def add_liability(self, liability: Liability) -> Liability:
        """Store a new liability and return it with its id."""
        pass

    @abstractmethod
    async def update_liability(self, liability: Liability) -> Optional[Liability]:
        pass

    @abstractmethod
    async def delete_liability(self, user_id: int, liability_id: int) -> Optional[Liability]:
        pass

    @abstractmethod
    async def add_transaction(self, transaction: Transaction) -> Transaction:
        """Store a new transaction and return it with its id."""
        pass

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> Optional[Transaction]:
        pass

    @abstractmethod
    async def delete_transaction(self, user_id: int, transaction_id: int) -> Optional[Transaction]:
        pass


class AccountStorageInterface(ABC):
    """
    Abstract interface for accounts, credentials and sessions.
    """

    @abstractmethod
    async def create_account(self, account: Account, password_hash: str) -> Account:
        """
        Create an account. The user_id of the argument is ignored.

        Raises:
            DuplicateError: If the email is already registered
        """
        pass

    @abstractmethod
    async def get_account(self, user_id: int) -> Optional[Account]:
        pass

    @abstractmethod
    async def get_credentials(self, email: str) -> Optional[tuple[Account, str]]:
        """
        Look up an account and its password hash by email (case-insensitive).
        """
        pass

    @abstractmethod
    async def update_display_name(self, user_id: int, display_name: str) -> Optional[Account]:
        pass

    @abstractmethod
    async def downgrade_expired(self, user_id: int, now: datetime) -> Optional[Account]:
        """
        Drop the account to free with quota zeroed iff it is still due.

        The condition (trial elapsed or never set, or a paid plan past its
        expiry) is evaluated by the same update that applies it, so two
        concurrent callers converge on the same state.

        Returns:
            The account after the update, or None if it no longer exists
        """
        pass

    @abstractmethod
    async def apply_plan(
        self,
        user_id: int,
        plan: Plan,
        plan_expires_at: Optional[datetime],
        ai_quota: Optional[int],
    ) -> Optional[Account]:
        """
        Switch the account to a purchased plan in one update: set the plan and
        expiry, clear the trial expiry, reset both quota fields.
        """
        pass

    @abstractmethod
    async def consume_quota(self, user_id: int) -> Optional[Account]:
        """
        Decrement ai_quota_remaining by one iff the account is on plus and
        has quota left.

        Returns:
            The account after the decrement, or None if nothing was decremented
        """
        pass

    @abstractmethod
    async def create_session(self, token: str, user_id: int, expires_at: datetime) -> None:
        pass

    @abstractmethod
    async def resolve_session(self, token: str, now: datetime) -> Optional[int]:
        """User id behind an unexpired session token."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """All events of one request, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Most recent events, newest first."""
        pass


class Storage(RecordStorageInterface, AccountStorageInterface, AuditStorageInterface):
    """A backend implementing every storage capability."""

    use_db: bool = False

    async def initialize(self) -> None:
        """Prepare the backend (create tables, seed data). Default: nothing."""
        return None


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class AccountNotFoundError(NotFoundError):
    """The account vanished between authentication and lookup."""

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"Account not found: {user_id}")


class RecordNotFoundError(NotFoundError):
    """No record with that id is owned by the account."""

    def __init__(self, kind: str, record_id: int):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind} not found: {record_id}")


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
