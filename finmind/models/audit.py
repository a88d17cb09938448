"""
Audit Models for FinMind

Every entitlement change and every insights request is logged for audit purposes.
This provides:
1. Traceability of plan and quota changes
2. Debugging information when a request is denied
3. Ability to reconstruct why an account lost access

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Accounts
    ACCOUNT_CREATED = "account_created"
    USER_LOGGED_IN = "user_logged_in"

    # Entitlements
    PLAN_CONFIRMED = "plan_confirmed"
    ENTITLEMENT_DOWNGRADED = "entitlement_downgraded"
    QUOTA_CONSUMED = "quota_consumed"

    # Insights
    INSIGHTS_SERVED = "insights_served"
    INSIGHTS_DENIED = "insights_denied"
    ADVICE_UNAVAILABLE = "advice_unavailable"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Which account is this about?
    user_id: Optional[int] = None

    # Correlation - for tracking related events within one request
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.account_created(user_id, plan)
        event = AuditEventBuilder.insights_served(user_id, period, 3, correlation_id)
    """

    @staticmethod
    def account_created(user_id: int, plan: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            user_id=user_id,
            description=f"Account created on plan: {plan}",
            details={"plan": plan},
        )

    @staticmethod
    def user_logged_in(user_id: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_LOGGED_IN,
            user_id=user_id,
            description="User logged in",
        )

    @staticmethod
    def plan_confirmed(user_id: int, plan: str, ai_quota: Optional[int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PLAN_CONFIRMED,
            user_id=user_id,
            description=f"Plan purchase confirmed: {plan}",
            details={"plan": plan, "ai_quota": ai_quota},
        )

    @staticmethod
    def entitlement_downgraded(user_id: int, from_plan: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITLEMENT_DOWNGRADED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            description=f"Downgraded from {from_plan} to free ({reason})",
            details={"from_plan": from_plan, "reason": reason},
        )

    @staticmethod
    def quota_consumed(
        user_id: int,
        remaining: Optional[int],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUOTA_CONSUMED,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"AI quota consumed, {remaining} remaining",
            details={"ai_quota_remaining": remaining},
        )

    @staticmethod
    def insights_served(
        user_id: int,
        period: str,
        finding_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSIGHTS_SERVED,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Insights served for {period} with {finding_count} findings",
            details={"period": period, "finding_count": finding_count},
        )

    @staticmethod
    def insights_denied(user_id: int, code: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSIGHTS_DENIED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Insights denied: {code}",
            details={"code": code},
        )

    @staticmethod
    def advice_unavailable(user_id: int, reason: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_UNAVAILABLE,
            severity=AuditSeverity.DEBUG,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Advice generator unavailable",
            details={"reason": reason},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
