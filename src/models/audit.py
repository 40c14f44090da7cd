"""
Audit Models for Personal Finance Core

Every calculation that produces a figure a user may act on, and every
write to their stored records, is logged for audit purposes.
This provides:
1. Traceability of how a tax figure or health score was produced
2. Debugging information when a bracket table is misconfigured
3. A history the user can inspect

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Each flow step has its own event type.
    """
    # Tax
    TAX_CALCULATED = "tax_calculated"
    CALCULATION_REJECTED = "calculation_rejected"
    TAX_ENTRY_SAVED = "tax_entry_saved"
    TAX_REMINDER_SET = "tax_reminder_set"

    # Health score
    HEALTH_SCORE_UPDATED = "health_score_updated"
    HEALTH_FACTOR_UPDATED = "health_factor_updated"
    HEALTH_RECORDS_REJECTED = "health_records_rejected"

    # Budgets and goals
    BUDGETS_EVALUATED = "budgets_evaluated"
    GOALS_EVALUATED = "goals_evaluated"

    # System events
    SYSTEM_ERROR = "system_error"
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - whose records is this about?
    user_id: Optional[str] = Field(
        default=None,
        max_length=128,
        description="Identity-provider user id the event relates to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'tax', 'health_profile', 'budgets')"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., a calculate-and-save action)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

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
            "entity_type": self.entity_type,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.user_id or "",
            self.entity_type or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.tax_calculated("salary", "120000", "22500", correlation_id)
        event = AuditEventBuilder.health_score_updated(user_id, 72, 3, correlation_id)
    """

    @staticmethod
    def tax_calculated(
        tax_type: str,
        amount: str,
        total_tax: str,
        effective_rate: str,
        correlation_id: UUID,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TAX_CALCULATED,
            entity_type="tax",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{tax_type.capitalize()} tax calculated on {amount}: {total_tax}",
            details={
                "tax_type": tax_type,
                "amount": amount,
                "total_tax": total_tax,
                "effective_rate": effective_rate,
            },
        )

    @staticmethod
    def calculation_rejected(
        calculation: str,
        error_type: str,
        error_message: str,
        correlation_id: UUID,
        user_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CALCULATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="tax",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{calculation} rejected: {error_type}",
            error_code=error_type,
            error_message=error_message,
            details={
                "calculation": calculation,
            },
        )

    @staticmethod
    def tax_entry_saved(
        user_id: str,
        tax_type: str,
        calculated_tax: str,
        next_due_date: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TAX_ENTRY_SAVED,
            entity_type="tax_history",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Tax entry saved ({tax_type}), next due {next_due_date}",
            details={
                "tax_type": tax_type,
                "calculated_tax": calculated_tax,
                "next_due_date": next_due_date,
            },
            is_user_action=True,
        )

    @staticmethod
    def reminder_set(
        user_id: str,
        reminder_date: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TAX_REMINDER_SET,
            entity_type="tax_reminders",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Tax reminder set for {reminder_date}",
            details={
                "reminder_date": reminder_date,
            },
            is_user_action=True,
        )

    @staticmethod
    def health_score_updated(
        user_id: str,
        score: int,
        factor_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HEALTH_SCORE_UPDATED,
            entity_type="health_profile",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Health score recomputed: {score} from {factor_count} factors",
            details={
                "score": score,
                "factor_count": factor_count,
            },
        )

    @staticmethod
    def health_factor_updated(
        user_id: str,
        factor: str,
        old_score: float,
        new_score: float,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HEALTH_FACTOR_UPDATED,
            entity_type="health_profile",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Factor '{factor}' changed from {old_score:g} to {new_score:g}",
            details={
                "factor": factor,
                "old_score": old_score,
                "new_score": new_score,
            },
            is_user_action=True,
        )

    @staticmethod
    def health_records_rejected(
        user_id: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HEALTH_RECORDS_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="health_profile",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{len(issues)} stored health factor(s) could not be used",
            details={
                "issues": issues,
            },
        )

    @staticmethod
    def budgets_evaluated(
        user_id: str,
        category_count: int,
        overall_percent: int,
        alerts: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGETS_EVALUATED,
            severity=AuditSeverity.WARNING if alerts else AuditSeverity.INFO,
            entity_type="budgets",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{category_count} budgets evaluated, {overall_percent}% used overall",
            details={
                "category_count": category_count,
                "overall_percent": overall_percent,
                "alerts": alerts,
            },
        )

    @staticmethod
    def goals_evaluated(
        user_id: str,
        goal_count: int,
        completed_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOALS_EVALUATED,
            entity_type="goals",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{completed_count} of {goal_count} goals completed",
            details={
                "goal_count": goal_count,
                "completed_count": completed_count,
            },
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

    @staticmethod
    def storage_error(
        operation: str,
        path: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
                "path": path,
            },
            correlation_id=correlation_id,
        )
