"""
Audit Logger

DESIGN DECISION: Every change to the household's money figures is logged.
This provides:
1. A trail from each user edit to the totals and debt it rewrote
2. A record of where a multi-step sync stopped when it failed
3. History of exports and rejected form submissions

The audit logger:
- Is async so the ledger flows can await it inline
- Never raises: a failed audit write is logged locally and reported as False
- Supports correlation IDs to tie an expense edit to its balance sync
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from household_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from household_ledger.models.ledger import BalanceSyncResult, Expense, Income
from household_ledger.services.storage import AuditStorageInterface


def configure_logging(debug: bool = False) -> None:
    """Route structlog through stdlib logging with JSON output."""
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if debug else logging.INFO,
    )
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
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit store (Google Sheets "AuditLog" tab, or memory in tests)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

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
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_expense_changed(
        self,
        event_type: AuditEventType,
        expense: Expense,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.expense_changed(
            event_type=event_type,
            expense_id=expense.id,
            description=expense.description,
            amount=expense.amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_income_updated(
        self,
        income: Income,
        party: str,
        new_income: float,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.income_updated(
            income_id=income.id,
            party=party,
            new_income=new_income,
            total_income=income.total_income,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_savings_snapshot(
        self,
        event_type: AuditEventType,
        date_key: str,
        entry_count: int,
        correlation_id: UUID,
        original_date: Optional[str] = None,
    ) -> None:
        event = AuditEventBuilder.savings_snapshot(
            event_type=event_type,
            date_key=date_key,
            entry_count=entry_count,
            correlation_id=correlation_id,
            original_date=original_date,
        )
        await self.log(event)

    async def log_balance_synced(
        self,
        result: BalanceSyncResult,
        correlation_id: Optional[UUID],
    ) -> None:
        """Log the outcome of a completed balance sync."""
        event = AuditEventBuilder.balance_synced(
            debt_month=result.debt_month,
            debt_action=result.debt_action.value,
            kari_balance=result.kari_balance,
            totals=result.totals.model_dump(),
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_balance_sync_failed(
        self,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> None:
        event = AuditEventBuilder.balance_sync_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_rates(self, rates: Optional[dict[str, float]]) -> None:
        """Log a rate fetch; None means the provider was unavailable."""
        if rates is None:
            await self.log(AuditEventBuilder.rates_unavailable())
        else:
            await self.log(AuditEventBuilder.rates_fetched(rates))

    async def log_export_written(
        self,
        files: list[str],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.export_written(
            files=files,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        form: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        """Log a form submission rejected at the boundary."""
        event = AuditEventBuilder.validation_failed(
            form=form,
            issues=issues,
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

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., saving an expense) and
    pass it to everything that action triggers.
    """
    return uuid4()
