"""
Main Orchestrator for FinMind

This module ties together all the components and defines the
end-to-end flows for:
1. Insights (normalize entitlement → gate → fetch → metrics → rules → charge → advice)
2. Records (asset, liability and transaction bookkeeping)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No insights without a normalized, authorized entitlement
- Quota is charged only once a request is certain to be served
- Advice is optional: its failure never fails a request
- Every step is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

import asyncio
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

import structlog

from finmind.agents import AdviceGenerator, AdvisorAgent
from finmind.audit import AuditLogger, create_correlation_id
from finmind.config import DatabaseSettings, Settings, get_settings
from finmind.entitlements import (
    EntitlementError,
    EntitlementService,
    QuotaGate,
    is_metered,
)
from finmind.insights import compute_metrics, evaluate_rules, summarize_records
from finmind.models import (
    Asset,
    FinancialSummary,
    InsightsReport,
    Liability,
    MetricsSnapshot,
    RuleFinding,
    Transaction,
    TransactionKind,
    utcnow,
)
from finmind.services.storage import (
    InMemoryStorage,
    RecordNotFoundError,
    SqlStorage,
    Storage,
    seed_demo_data,
)

logger = structlog.get_logger()

MAX_TRANSACTION_LIMIT = 500


class InsightsFlow:
    """
    Orchestrates one insights request.

    Flow:
    1. Normalize → apply any due downgrade to the account
    2. Authorize → premium and, for plus, quota left
    3. Fetch → assets, liabilities, recent transactions
    4. Compute → metrics snapshot, then rule findings
    5. Charge → conditional quota decrement (metered plans only)
    6. Advise → optional, bounded by a timeout, failure means None

    Steps 3-4 never suspend on anything but storage reads. A storage
    failure fails the request and nothing is charged.
    """

    def __init__(
        self,
        storage: Storage,
        entitlements: EntitlementService,
        quota_gate: QuotaGate,
        advice_generator: Optional[AdviceGenerator] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = utcnow,
        default_period: str = "last_90d",
        transaction_limit: int = MAX_TRANSACTION_LIMIT,
        advice_timeout: float = 15.0,
    ):
        self._storage = storage
        self._entitlements = entitlements
        self._gate = quota_gate
        self._advice_generator = advice_generator
        self._audit_logger = audit_logger
        self._clock = clock
        self._default_period = default_period
        self._transaction_limit = transaction_limit
        self._advice_timeout = advice_timeout

    @property
    def advice_enabled(self) -> bool:
        return self._advice_generator is not None

    async def generate_insights(
        self,
        user_id: int,
        period: Optional[str] = None,
        lang: str = "en",
        correlation_id: Optional[UUID] = None,
    ) -> InsightsReport:
        """
        Build the insights report for one account.

        Raises:
            AccountNotFoundError: If the account no longer exists
            PlanRequiredError: If the account is not premium
            QuotaExhaustedError: If a plus account has no quota left
            StorageError: If fetching records fails
        """
        correlation_id = correlation_id or create_correlation_id()
        period = self._default_period if period is None else period

        account = await self._entitlements.ensure_active_plan(user_id)
        now = self._clock()

        try:
            self._gate.authorize(account, now)
        except EntitlementError as e:
            await self._audit_denied(user_id, e, correlation_id)
            raise

        assets = await self._storage.list_assets(user_id)
        liabilities = await self._storage.list_liabilities(user_id)
        transactions = await self._storage.list_transactions(user_id, self._transaction_limit)

        metrics = compute_metrics(assets, liabilities, transactions, period, now)
        findings = evaluate_rules(metrics)

        try:
            charged = await self._gate.commit(account)
        except EntitlementError as e:
            await self._audit_denied(user_id, e, correlation_id)
            raise

        if self._audit_logger and is_metered(account):
            await self._audit_logger.log_quota_consumed(
                user_id=user_id,
                remaining=charged.ai_quota_remaining,
                correlation_id=correlation_id,
            )

        advice = await self._generate_advice(metrics, findings, lang, user_id, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_insights_served(
                user_id=user_id,
                period=period,
                finding_count=len(findings),
                correlation_id=correlation_id,
            )

        return InsightsReport(
            period=period,
            lang=lang,
            metrics=metrics,
            rules=findings,
            llm_advice=advice,
        )

    async def _audit_denied(self, user_id: int, error: EntitlementError, correlation_id: UUID) -> None:
        if self._audit_logger:
            await self._audit_logger.log_insights_denied(user_id, error.code, correlation_id)

    async def _generate_advice(
        self,
        metrics: MetricsSnapshot,
        findings: list[RuleFinding],
        lang: str,
        user_id: int,
        correlation_id: UUID,
    ) -> Optional[str]:
        """Best effort. Any failure or timeout yields None."""
        if self._advice_generator is None:
            return None

        try:
            advice = await asyncio.wait_for(
                self._advice_generator(metrics, findings, lang),
                timeout=self._advice_timeout,
            )
        except Exception as e:
            reason = type(e).__name__
            logger.warning(
                "advice_unavailable",
                user_id=user_id,
                reason=reason,
                error=str(e),
                correlation_id=str(correlation_id),
            )
            if self._audit_logger:
                await self._audit_logger.log_advice_unavailable(user_id, reason, correlation_id)
            return None

        return advice or None


class RecordsFlow:
    """
    Bookkeeping for assets, liabilities and transactions.

    Every operation is scoped to the calling account; touching another
    account's record looks exactly like touching a missing one.
    """

    def __init__(self, storage: Storage):
        self._storage = storage

    # Assets / liabilities

    async def list_assets(self, user_id: int) -> list[Asset]:
        return await self._storage.list_assets(user_id)

    async def add_asset(self, user_id: int, name: str, value: Decimal, tag: Optional[str] = None) -> Asset:
        return await self._storage.add_asset(
            Asset(owner_id=user_id, name=name, value=value, tag=tag)
        )

    async def update_asset(
        self,
        user_id: int,
        asset_id: int,
        name: str,
        value: Decimal,
        tag: Optional[str] = None,
    ) -> Asset:
        updated = await self._storage.update_asset(
            Asset(id=asset_id, owner_id=user_id, name=name, value=value, tag=tag)
        )
        if updated is None:
            raise RecordNotFoundError("asset", asset_id)
        return updated

    async def delete_asset(self, user_id: int, asset_id: int) -> Asset:
        deleted = await self._storage.delete_asset(user_id, asset_id)
        if deleted is None:
            raise RecordNotFoundError("asset", asset_id)
        return deleted

    async def list_liabilities(self, user_id: int) -> list[Liability]:
        return await self._storage.list_liabilities(user_id)

    async def add_liability(
        self,
        user_id: int,
        name: str,
        value: Decimal,
        tag: Optional[str] = None,
    ) -> Liability:
        return await self._storage.add_liability(
            Liability(owner_id=user_id, name=name, value=value, tag=tag)
        )

    async def update_liability(
        self,
        user_id: int,
        liability_id: int,
        name: str,
        value: Decimal,
        tag: Optional[str] = None,
    ) -> Liability:
        updated = await self._storage.update_liability(
            Liability(id=liability_id, owner_id=user_id, name=name, value=value, tag=tag)
        )
        if updated is None:
            raise RecordNotFoundError("liability", liability_id)
        return updated

    async def delete_liability(self, user_id: int, liability_id: int) -> Liability:
        deleted = await self._storage.delete_liability(user_id, liability_id)
        if deleted is None:
            raise RecordNotFoundError("liability", liability_id)
        return deleted

    # Transactions

    async def list_transactions(self, user_id: int, limit: int = 50) -> list[Transaction]:
        limit = max(1, min(limit, MAX_TRANSACTION_LIMIT))
        return await self._storage.list_transactions(user_id, limit)

    async def add_transaction(
        self,
        user_id: int,
        title: str,
        kind: TransactionKind,
        amount: Decimal,
        category: Optional[str] = None,
        occurred_on: Optional[date] = None,
    ) -> Transaction:
        """The sign of the amount is taken from the kind, whatever was sent."""
        transaction = Transaction(
            owner_id=user_id,
            title=title,
            category=category,
            kind=kind,
            amount=Transaction.signed_amount(kind, amount),
            occurred_on=occurred_on or utcnow().date(),
        )
        return await self._storage.add_transaction(transaction)

    async def update_transaction(
        self,
        user_id: int,
        transaction_id: int,
        title: str,
        kind: TransactionKind,
        amount: Decimal,
        category: Optional[str] = None,
        occurred_on: Optional[date] = None,
    ) -> Transaction:
        transaction = Transaction(
            id=transaction_id,
            owner_id=user_id,
            title=title,
            category=category,
            kind=kind,
            amount=Transaction.signed_amount(kind, amount),
            occurred_on=occurred_on or utcnow().date(),
        )
        updated = await self._storage.update_transaction(transaction)
        if updated is None:
            raise RecordNotFoundError("transaction", transaction_id)
        return updated

    async def delete_transaction(self, user_id: int, transaction_id: int) -> Transaction:
        deleted = await self._storage.delete_transaction(user_id, transaction_id)
        if deleted is None:
            raise RecordNotFoundError("transaction", transaction_id)
        return deleted

    async def summary(self, user_id: int) -> FinancialSummary:
        """Unwindowed totals over the latest transactions."""
        assets = await self._storage.list_assets(user_id)
        liabilities = await self._storage.list_liabilities(user_id)
        transactions = await self._storage.list_transactions(user_id, MAX_TRANSACTION_LIMIT)
        return summarize_records(assets, liabilities, transactions)


@dataclass
class AppComponents:
    """Everything the HTTP API and the dashboard need, wired once."""
    settings: Settings
    storage: Storage
    audit_logger: AuditLogger
    entitlements: EntitlementService
    insights: InsightsFlow
    records: RecordsFlow


def create_storage(database: DatabaseSettings) -> Storage:
    """Relational storage when a database URL is configured, in-memory otherwise."""
    if database.use_db:
        return SqlStorage(database.url, echo=database.echo)
    return InMemoryStorage()


def create_advice_generator(settings: Settings) -> Optional[AdviceGenerator]:
    """The Gemini advisor, or None when no API key is configured."""
    try:
        agent = AdvisorAgent(settings.gemini)
    except ValueError as e:
        logger.warning("advice_generator_not_configured", error=str(e))
        return None
    return agent.generate_advice


async def create_app_components(
    settings: Optional[Settings] = None,
    storage: Optional[Storage] = None,
    use_advice: bool = True,
    advice_generator: Optional[AdviceGenerator] = None,
    clock: Callable[[], datetime] = utcnow,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        storage: Storage backend to use instead of the configured one
        use_advice: Whether to set up the Gemini advice generator.
                   Set to False for testing without network access.
        advice_generator: Explicit advice generator (takes precedence)
        clock: Source of the current time

    Returns:
        The wired components
    """
    settings = settings or get_settings()
    app_settings = settings.app
    auth_settings = settings.auth

    storage = storage or create_storage(settings.database)
    await storage.initialize()

    if not storage.use_db and app_settings.seed_demo_data:
        await seed_demo_data(storage, clock(), app_settings.trial_days)

    audit_logger = AuditLogger(storage)

    if advice_generator is None and use_advice:
        advice_generator = create_advice_generator(settings)

    entitlements = EntitlementService(
        storage,
        audit_logger,
        clock=clock,
        trial_days=app_settings.trial_days,
        session_ttl_days=auth_settings.session_ttl_days,
    )

    insights = InsightsFlow(
        storage=storage,
        entitlements=entitlements,
        quota_gate=QuotaGate(storage),
        advice_generator=advice_generator,
        audit_logger=audit_logger,
        clock=clock,
        default_period=app_settings.default_period,
        transaction_limit=app_settings.transaction_fetch_limit,
        advice_timeout=app_settings.advice_timeout_seconds,
    )

    logger.info(
        "components_ready",
        environment=app_settings.app_environment,
        use_db=storage.use_db,
        advice_enabled=insights.advice_enabled,
    )

    return AppComponents(
        settings=settings,
        storage=storage,
        audit_logger=audit_logger,
        entitlements=entitlements,
        insights=insights,
        records=RecordsFlow(storage),
    )
