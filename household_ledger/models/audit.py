"""
Audit Models for Household Ledger

Every user action that changes money figures is logged for audit purposes.
This provides:
1. Traceability of who changed what, and what the sync derived from it
2. Debugging information when a multi-step sync stops halfway
3. Ability to reconstruct how a monthly debt figure came about

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every user action and every derived write has its own event type.
    """
    # Expenses
    EXPENSE_CREATED = "expense_created"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"

    # Income
    INCOME_UPDATED = "income_updated"

    # Savings snapshots
    SAVINGS_SNAPSHOT_SAVED = "savings_snapshot_saved"
    SAVINGS_SNAPSHOT_REPLACED = "savings_snapshot_replaced"
    SAVINGS_SNAPSHOT_DELETED = "savings_snapshot_deleted"

    # Derived writes
    BALANCE_SYNCED = "balance_synced"
    BALANCE_SYNC_FAILED = "balance_sync_failed"

    # Exchange rates
    RATES_FETCHED = "rates_fetched"
    RATES_UNAVAILABLE = "rates_unavailable"

    # Export
    EXPORT_WRITTEN = "export_written"

    # Boundary validation
    VALIDATION_FAILED = "validation_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


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
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
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

    # Context - what record is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'income', 'savings_snapshot')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Store id or snapshot day key of the entity"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., an expense edit and its sync)"
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
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
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
        event = AuditEventBuilder.expense_changed(AuditEventType.EXPENSE_CREATED, 12, ...)
        event = AuditEventBuilder.balance_synced("March 2026", ...)
    """

    @staticmethod
    def expense_changed(
        event_type: AuditEventType,
        expense_id: Optional[int],
        description: str,
        amount: float,
        correlation_id: UUID,
    ) -> AuditEvent:
        verb = event_type.value.split("_")[-1]
        return AuditEvent(
            event_type=event_type,
            entity_type="expense",
            entity_id=str(expense_id) if expense_id is not None else None,
            correlation_id=correlation_id,
            description=f"Expense {verb}: {description}",
            details={
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def income_updated(
        income_id: Optional[int],
        party: str,
        new_income: float,
        total_income: float,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCOME_UPDATED,
            entity_type="income",
            entity_id=str(income_id) if income_id is not None else None,
            correlation_id=correlation_id,
            description=f"Income of {party} set to {new_income:.2f}",
            details={
                "party": party,
                "new_income": new_income,
                "total_income": total_income,
            },
            is_user_action=True,
        )

    @staticmethod
    def savings_snapshot(
        event_type: AuditEventType,
        date_key: str,
        entry_count: int,
        correlation_id: UUID,
        original_date: Optional[str] = None,
    ) -> AuditEvent:
        details: dict[str, Any] = {"entry_count": entry_count}
        if original_date:
            details["original_date"] = original_date
        return AuditEvent(
            event_type=event_type,
            entity_type="savings_snapshot",
            entity_id=date_key,
            correlation_id=correlation_id,
            description=f"Savings snapshot {event_type.value.rsplit('_', 1)[-1]}: {date_key}",
            details=details,
            is_user_action=True,
        )

    @staticmethod
    def balance_synced(
        debt_month: str,
        debt_action: str,
        kari_balance: float,
        totals: dict,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_SYNCED,
            entity_type="debt",
            entity_id=debt_month,
            correlation_id=correlation_id,
            description=f"Balance synced for {debt_month}: debt {debt_action}",
            details={
                "kari_balance": kari_balance,
                "totals": totals,
                "debt_action": debt_action,
            },
        )

    @staticmethod
    def balance_sync_failed(
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_SYNC_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="debt",
            correlation_id=correlation_id,
            description="Balance sync stopped before completing",
            error_message=error_message,
        )

    @staticmethod
    def rates_fetched(rates: dict[str, float]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATES_FETCHED,
            entity_type="exchange_rate",
            description=f"Exchange rates fetched for {', '.join(sorted(rates)) or 'no currencies'}",
            details={"rates": rates},
        )

    @staticmethod
    def rates_unavailable() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATES_UNAVAILABLE,
            severity=AuditSeverity.WARNING,
            entity_type="exchange_rate",
            description="Exchange rates unavailable; amounts shown unconverted",
        )

    @staticmethod
    def export_written(
        files: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_WRITTEN,
            entity_type="export",
            correlation_id=correlation_id,
            description=f"CSV export wrote {len(files)} files",
            details={"files": files},
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        form: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=form,
            correlation_id=correlation_id,
            description=f"{form.capitalize()} form rejected with {len(issues)} issues",
            details={"issues": issues},
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
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
