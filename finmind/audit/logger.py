"""
Audit Logger

DESIGN DECISION: Every entitlement change and every insights request is
logged. This provides:
1. Traceability of plan and quota changes
2. Debugging capability when a request is denied
3. A record of why an account lost access

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't fail a request if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finmind.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from finmind.services.storage.interface import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The storage backend (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_account_created(self, user_id: int, plan: str) -> None:
        await self.log(AuditEventBuilder.account_created(user_id, plan))

    async def log_user_logged_in(self, user_id: int) -> None:
        await self.log(AuditEventBuilder.user_logged_in(user_id))

    async def log_plan_confirmed(self, user_id: int, plan: str, ai_quota: Optional[int]) -> None:
        await self.log(AuditEventBuilder.plan_confirmed(user_id, plan, ai_quota))

    async def log_entitlement_downgraded(self, user_id: int, from_plan: str, reason: str) -> None:
        """Log an expired trial or plan dropping to free."""
        await self.log(AuditEventBuilder.entitlement_downgraded(user_id, from_plan, reason))

    async def log_quota_consumed(
        self,
        user_id: int,
        remaining: Optional[int],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.quota_consumed(user_id, remaining, correlation_id))

    async def log_insights_served(
        self,
        user_id: int,
        period: str,
        finding_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.insights_served(
            user_id=user_id,
            period=period,
            finding_count=finding_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_insights_denied(self, user_id: int, code: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.insights_denied(user_id, code, correlation_id))

    async def log_advice_unavailable(self, user_id: int, reason: str, correlation_id: UUID) -> None:
        """Log the advice generator failing or timing out."""
        await self.log(AuditEventBuilder.advice_unavailable(user_id, reason, correlation_id))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new request and pass it through all
    subsequent operations.
    """
    return uuid4()
