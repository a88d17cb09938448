"""
Contract tests for the storage backends.

Every test runs against both the in-memory store and SQLite.
"""

import asyncio
import threading
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from finmind.models import (
    AuditEventBuilder,
    Asset,
    Liability,
    Plan,
    Transaction,
    TransactionKind,
)
from finmind.services.storage import DuplicateError, SqlStorage

from conftest import NOW, make_account, make_transaction

pytestmark = pytest.mark.asyncio


async def create_user(storage, email="user@example.com", **kwargs):
    return await storage.create_account(make_account(email=email, **kwargs), "secret-hash")


class TestAccounts:

    async def test_create_assigns_id(self, storage):
        first = await create_user(storage, "a@example.com")
        second = await create_user(storage, "b@example.com")
        assert first.user_id != second.user_id
        assert (await storage.get_account(first.user_id)).email == "a@example.com"

    async def test_duplicate_email_rejected(self, storage):
        await create_user(storage, "a@example.com")
        with pytest.raises(DuplicateError):
            await create_user(storage, "a@example.com")

    async def test_credentials_lookup_ignores_case(self, storage):
        account = await create_user(storage, "mixed@example.com")
        found, password_hash = await storage.get_credentials("MIXED@example.com")
        assert found.user_id == account.user_id
        assert password_hash == "secret-hash"
        assert await storage.get_credentials("nobody@example.com") is None

    async def test_missing_account(self, storage):
        assert await storage.get_account(999) is None
        assert await storage.downgrade_expired(999, NOW) is None
        assert await storage.consume_quota(999) is None

    async def test_timestamps_round_trip_as_utc(self, storage):
        account = await create_user(storage, trial_expires_at=NOW + timedelta(days=7))
        stored = await storage.get_account(account.user_id)
        assert stored.trial_expires_at == NOW + timedelta(days=7)
        assert stored.trial_expires_at.tzinfo is not None

    async def test_update_display_name(self, storage):
        account = await create_user(storage)
        renamed = await storage.update_display_name(account.user_id, "Alex")
        assert renamed.display_name == "Alex"


class TestConditionalUpdates:

    async def test_expired_trial_downgraded_once(self, storage):
        account = await create_user(storage, plan=Plan.TRIAL, trial_expires_at=NOW - timedelta(days=1))
        first = await storage.downgrade_expired(account.user_id, NOW)
        second = await storage.downgrade_expired(account.user_id, NOW)
        assert first.plan == Plan.FREE
        assert first.ai_quota_remaining == 0
        assert second == first

    async def test_active_trial_untouched(self, storage):
        account = await create_user(storage, plan=Plan.TRIAL, trial_expires_at=NOW + timedelta(days=1))
        assert (await storage.downgrade_expired(account.user_id, NOW)).plan == Plan.TRIAL

    async def test_trial_without_expiry_downgraded(self, storage):
        account = await create_user(storage, plan=Plan.TRIAL, trial_expires_at=None)
        assert (await storage.downgrade_expired(account.user_id, NOW)).plan == Plan.FREE

    async def test_expired_plan_downgraded(self, storage):
        account = await create_user(
            storage,
            plan=Plan.PRIME,
            plan_expires_at=NOW - timedelta(hours=1),
            ai_quota=30,
            ai_quota_remaining=30,
        )
        downgraded = await storage.downgrade_expired(account.user_id, NOW)
        assert downgraded.plan == Plan.FREE
        assert downgraded.ai_quota == 0

    async def test_apply_plan_resets_quota_and_clears_trial(self, storage):
        account = await create_user(storage, plan=Plan.TRIAL, trial_expires_at=NOW + timedelta(days=3))
        expires = NOW + timedelta(days=30)
        updated = await storage.apply_plan(account.user_id, Plan.PLUS, expires, 10)
        assert updated.plan == Plan.PLUS
        assert updated.trial_expires_at is None
        assert updated.plan_expires_at == expires
        assert updated.ai_quota == 10
        assert updated.ai_quota_remaining == 10

    async def test_consume_quota_floors_at_zero(self, storage):
        account = await create_user(storage, plan=Plan.PLUS, ai_quota=10, ai_quota_remaining=1)
        assert (await storage.consume_quota(account.user_id)).ai_quota_remaining == 0
        assert await storage.consume_quota(account.user_id) is None
        assert (await storage.get_account(account.user_id)).ai_quota_remaining == 0

    async def test_consume_quota_ignores_other_plans(self, storage):
        account = await create_user(storage, plan=Plan.PRIME, ai_quota=30, ai_quota_remaining=30)
        assert await storage.consume_quota(account.user_id) is None
        assert (await storage.get_account(account.user_id)).ai_quota_remaining == 30


class TestSessions:

    async def test_session_resolves_until_expiry(self, storage):
        account = await create_user(storage)
        await storage.create_session("tok", account.user_id, NOW + timedelta(days=7))
        assert await storage.resolve_session("tok", NOW) == account.user_id
        assert await storage.resolve_session("tok", NOW + timedelta(days=8)) is None
        assert await storage.resolve_session("other", NOW) is None


class TestRecords:

    async def test_assets_scoped_to_owner(self, storage):
        alice = await create_user(storage, "alice@example.com")
        bob = await create_user(storage, "bob@example.com")
        asset = await storage.add_asset(Asset(owner_id=alice.user_id, name="Cash", value=Decimal("100")))

        assert [a.name for a in await storage.list_assets(alice.user_id)] == ["Cash"]
        assert await storage.list_assets(bob.user_id) == []

        foreign_edit = Asset(id=asset.id, owner_id=bob.user_id, name="Mine", value=Decimal("1"))
        assert await storage.update_asset(foreign_edit) is None
        assert await storage.delete_asset(bob.user_id, asset.id) is None

    async def test_asset_update_and_delete(self, storage):
        owner = await create_user(storage)
        asset = await storage.add_asset(Asset(owner_id=owner.user_id, name="Cash", value=Decimal("100")))
        updated = await storage.update_asset(
            asset.model_copy(update={"value": Decimal("250.50"), "tag": "Savings"})
        )
        assert updated.value == Decimal("250.50")
        assert updated.tag == "Savings"

        deleted = await storage.delete_asset(owner.user_id, asset.id)
        assert deleted.id == asset.id
        assert await storage.list_assets(owner.user_id) == []

    async def test_liabilities(self, storage):
        owner = await create_user(storage)
        loan = await storage.add_liability(
            Liability(owner_id=owner.user_id, name="Car Loan", tag="Auto", value=Decimal("12000"))
        )
        listed = await storage.list_liabilities(owner.user_id)
        assert [(l.name, l.value) for l in listed] == [("Car Loan", Decimal("12000"))]
        assert (await storage.delete_liability(owner.user_id, loan.id)).name == "Car Loan"

    async def test_transactions_newest_first_and_limited(self, storage):
        owner = await create_user(storage)
        for days_ago in (5, 1, 3):
            await storage.add_transaction(make_transaction(
                "-10",
                owner_id=owner.user_id,
                title=f"{days_ago} days ago",
                occurred_on=NOW.date() - timedelta(days=days_ago),
            ))
        listed = await storage.list_transactions(owner.user_id, limit=2)
        assert [t.title for t in listed] == ["1 days ago", "3 days ago"]

    async def test_transaction_update_keeps_sign_and_kind(self, storage):
        owner = await create_user(storage)
        t = await storage.add_transaction(make_transaction("-10", "Food", owner_id=owner.user_id))
        updated = await storage.update_transaction(Transaction(
            id=t.id,
            owner_id=owner.user_id,
            title="Salary",
            category="Salary",
            kind=TransactionKind.INCOME,
            amount=Decimal("3000"),
            occurred_on=date(2024, 6, 1),
        ))
        assert updated.kind == TransactionKind.INCOME
        assert updated.amount == Decimal("3000")
        assert updated.occurred_on == date(2024, 6, 1)

    async def test_delete_transaction(self, storage):
        owner = await create_user(storage)
        t = await storage.add_transaction(make_transaction("-10", owner_id=owner.user_id))
        assert (await storage.delete_transaction(owner.user_id, t.id)).id == t.id
        assert await storage.delete_transaction(owner.user_id, t.id) is None


class TestAuditEvents:

    async def test_events_grouped_by_correlation_id(self, storage):
        correlation_id = uuid4()
        events = [
            AuditEventBuilder.quota_consumed(1, 2, correlation_id),
            AuditEventBuilder.insights_served(1, "last_30d", 3, correlation_id),
            AuditEventBuilder.user_logged_in(1),
        ]
        for offset, event in enumerate(events):
            stamped = event.model_copy(update={"timestamp": NOW + timedelta(seconds=offset)})
            assert await storage.append_event(stamped)

        events = await storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type.value for e in events] == ["quota_consumed", "insights_served"]
        assert events[1].details == {"period": "last_30d", "finding_count": 3}

        recent = await storage.get_recent_events(limit=1)
        assert recent[0].event_type.value == "user_logged_in"


class ThreadRecordingSqlStorage(SqlStorage):
    def __init__(self, url):
        super().__init__(url)
        self.threads = []

    def _select_account(self, conn, user_id):
        self.threads.append(threading.get_ident())
        return super()._select_account(conn, user_id)


class TestSqlThreading:

    async def test_queries_run_off_the_event_loop_thread(self):
        storage = ThreadRecordingSqlStorage("sqlite://")
        await storage.initialize()
        account = await create_user(storage)

        assert (await storage.get_account(account.user_id)).email == "user@example.com"
        assert storage.threads
        assert threading.get_ident() not in storage.threads

    async def test_concurrent_writes_on_shared_connection(self):
        storage = SqlStorage("sqlite://")
        await storage.initialize()
        owner = await create_user(storage)

        await asyncio.gather(*[
            storage.add_asset(Asset(owner_id=owner.user_id, name=f"Asset {i}", value=Decimal(i)))
            for i in range(20)
        ])
        assert len(await storage.list_assets(owner.user_id)) == 20
