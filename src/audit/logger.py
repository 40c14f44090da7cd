"""
Audit Logger

DESIGN DECISION: Every figure a user may act on is logged with the
inputs that produced it. This provides:
1. Traceability of tax figures and health scores
2. Debugging capability when a table is misconfigured
3. A history the user can inspect

The audit logger:
- Is async to match the storage layer
- Gracefully handles failures (doesn't break a flow if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder
from src.services.storage import AuditStorageInterface


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
    2. Audit storage (for persistence and user visibility)
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

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
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

    async def log_tax_calculated(
        self,
        tax_type: str,
        amount: str,
        total_tax: str,
        effective_rate: str,
        correlation_id: UUID,
        user_id: Optional[str] = None,
    ) -> None:
        """Log a completed tax calculation."""
        event = AuditEventBuilder.tax_calculated(
            tax_type=tax_type,
            amount=amount,
            total_tax=total_tax,
            effective_rate=effective_rate,
            correlation_id=correlation_id,
            user_id=user_id,
        )
        await self.log(event)

    async def log_calculation_rejected(
        self,
        calculation: str,
        error: Exception,
        correlation_id: UUID,
        user_id: Optional[str] = None,
    ) -> None:
        """Log a calculation that raised a validation or configuration error."""
        event = AuditEventBuilder.calculation_rejected(
            calculation=calculation,
            error_type=type(error).__name__,
            error_message=str(error),
            correlation_id=correlation_id,
            user_id=user_id,
        )
        await self.log(event)

    async def log_tax_entry_saved(
        self,
        user_id: str,
        tax_type: str,
        calculated_tax: str,
        next_due_date: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.tax_entry_saved(
            user_id=user_id,
            tax_type=tax_type,
            calculated_tax=calculated_tax,
            next_due_date=next_due_date,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_reminder_set(
        self,
        user_id: str,
        reminder_date: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.reminder_set(
            user_id=user_id,
            reminder_date=reminder_date,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_health_score_updated(
        self,
        user_id: str,
        score: int,
        factor_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log a recomputed health score."""
        event = AuditEventBuilder.health_score_updated(
            user_id=user_id,
            score=score,
            factor_count=factor_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_health_factor_updated(
        self,
        user_id: str,
        factor: str,
        old_score: float,
        new_score: float,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.health_factor_updated(
            user_id=user_id,
            factor=factor,
            old_score=old_score,
            new_score=new_score,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_health_records_rejected(
        self,
        user_id: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.health_records_rejected(
            user_id=user_id,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_budgets_evaluated(
        self,
        user_id: str,
        category_count: int,
        overall_percent: int,
        alerts: list[str],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.budgets_evaluated(
            user_id=user_id,
            category_count=category_count,
            overall_percent=overall_percent,
            alerts=alerts,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_goals_evaluated(
        self,
        user_id: str,
        goal_count: int,
        completed_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.goals_evaluated(
            user_id=user_id,
            goal_count=goal_count,
            completed_count=completed_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

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

    async def log_storage_error(
        self,
        operation: str,
        path: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed read or write against the document store."""
        event = AuditEventBuilder.storage_error(
            operation=operation,
            path=path,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., calculate and save).
    Pass it through all subsequent operations.
    """
    return uuid4()
