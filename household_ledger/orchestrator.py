"""
Main Orchestrator for Household Ledger

This module ties together all the components and defines the
end-to-end flows for:
1. Expenses (form → validate → persist → sync balance)
2. Income (form → validate → recompute split → sync balance)
3. Savings snapshots (form → validate → save/replace; overview with live rates)
4. Dashboard figures and manual balance sync
5. CSV export

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches the engines without passing boundary validation
- Every user action gets one correlation id shared by all its audit events
- A failed balance sync is audited and re-raised; earlier writes are not undone

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from pathlib import Path
from typing import Any, Mapping, NamedTuple, Optional, Union
from uuid import UUID

import structlog

from household_ledger.audit import AuditLogger, create_correlation_id
from household_ledger.config import AppSettings, get_settings
from household_ledger.engine.balance import BalanceEngine, ExpenseLedger, IncomeLedger
from household_ledger.engine.savings import (
    SavingsLedger,
    calculate_savings_summary,
    group_savings_by_date,
    split_latest_and_history,
    summarize_accounts,
)
from household_ledger.export import export_database
from household_ledger.models.audit import AuditEventType
from household_ledger.models.ledger import (
    BalanceSyncResult,
    Currency,
    DashboardSummary,
    Expense,
    Income,
    Saving,
    SavingsOverview,
    ValidationResult,
)
from household_ledger.services.rates import ExchangeRateService
from household_ledger.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
)
from household_ledger.validation import LedgerInputValidator

logger = structlog.get_logger(__name__)


def _issues_as_dicts(result: ValidationResult) -> list[dict]:
    return [issue.model_dump() for issue in result.issues]


class ExpenseFlow:
    """
    Orchestrates expense changes.

    Flow:
    1. Validate the form
    2. Insert or update (or delete) the expense
    3. Sync the balance for the expense's month (non-template expenses only)
    4. Audit each step under one correlation id
    """

    def __init__(
        self,
        ledger: ExpenseLedger,
        validator: Optional[LedgerInputValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._validator = validator or LedgerInputValidator()
        self._audit_logger = audit_logger

    async def _audit_sync(
        self,
        sync: Optional[BalanceSyncResult],
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger and sync is not None:
            await self._audit_logger.log_balance_synced(sync, correlation_id)

    async def _audit_failure(self, error: Exception, correlation_id: UUID) -> None:
        if self._audit_logger:
            await self._audit_logger.log_balance_sync_failed(
                error_message=str(error),
                correlation_id=correlation_id,
            )

    async def submit_expense(
        self,
        form: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> tuple[ValidationResult, Optional[Expense], Optional[BalanceSyncResult]]:
        """
        Create (no ``id`` in the form) or update an expense.

        Returns:
            (validation, stored_expense, sync_result)

        stored_expense is None when validation failed; sync_result is None
        for template expenses.
        """
        correlation_id = correlation_id or create_correlation_id()

        validation = self._validator.validate_expense_form(form)
        if validation.has_errors:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    form="expense",
                    issues=_issues_as_dicts(validation),
                    correlation_id=correlation_id,
                )
            return validation, None, None

        expense: Expense = validation.value
        is_update = expense.id is not None
        event_type = AuditEventType.EXPENSE_UPDATED if is_update else AuditEventType.EXPENSE_CREATED

        try:
            if is_update:
                stored, sync = await self._ledger.update_expense(expense)
            else:
                stored, sync = await self._ledger.create_expense(expense)
        except Exception as e:
            await self._audit_failure(e, correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_expense_changed(event_type, stored, correlation_id)
        await self._audit_sync(sync, correlation_id)

        return validation, stored, sync

    async def delete_expense(
        self,
        expense_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[bool, Optional[BalanceSyncResult]]:
        """
        Delete an expense and re-sync if it was not a template.

        Returns:
            (deleted, sync_result)
        """
        correlation_id = correlation_id or create_correlation_id()
        existing = await self._ledger.get_expense(expense_id)

        try:
            deleted, sync = await self._ledger.delete_expense(expense_id)
        except Exception as e:
            await self._audit_failure(e, correlation_id)
            raise

        if deleted and existing and self._audit_logger:
            await self._audit_logger.log_expense_changed(
                AuditEventType.EXPENSE_DELETED, existing, correlation_id
            )
        await self._audit_sync(sync, correlation_id)

        return deleted, sync


class IncomeFlow:
    """
    Orchestrates income edits.

    A new split changes every percentage expense share, so the persisted
    totals and the current month's debt are re-synced after each edit.
    """

    def __init__(
        self,
        ledger: IncomeLedger,
        balance_engine: BalanceEngine,
        validator: Optional[LedgerInputValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._engine = balance_engine
        self._validator = validator or LedgerInputValidator()
        self._audit_logger = audit_logger

    async def update_income(
        self,
        party: Any,
        new_income: Any,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[ValidationResult, Optional[Income], Optional[BalanceSyncResult]]:
        """
        Set one person's income and re-sync the balance for this month.

        Returns:
            (validation, updated_income, sync_result); both None when
            validation failed

        Raises:
            IncomeNotFoundError: If no income record exists yet
            StorageError: If the sync fails; the income edit stays
        """
        correlation_id = correlation_id or create_correlation_id()

        validation = self._validator.validate_income_form(party, new_income)
        if validation.has_errors:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    form="income",
                    issues=_issues_as_dicts(validation),
                    correlation_id=correlation_id,
                )
            return validation, None, None

        member, amount = validation.value
        income = await self._ledger.update_income(member, amount)

        if self._audit_logger:
            await self._audit_logger.log_income_updated(
                income=income,
                party=member.value,
                new_income=amount,
                correlation_id=correlation_id,
            )

        try:
            sync = await self._engine.sync_balance(self._engine.today())
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_balance_sync_failed(str(e), correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_balance_synced(sync, correlation_id)
        return validation, income, sync


class SavingsFlow:
    """
    Orchestrates savings snapshots.

    Saving goes through the validator (including the duplicate-day check).
    The overview converts to EUR with the session's cached rates.
    """

    def __init__(
        self,
        ledger: SavingsLedger,
        rate_service: ExchangeRateService,
        validator: Optional[LedgerInputValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._ledger = ledger
        self._rate_service = rate_service
        self._validator = validator or LedgerInputValidator()
        self._audit_logger = audit_logger

    async def save_snapshot(
        self,
        form: Mapping[str, Any],
        original_date: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[ValidationResult, list[Saving]]:
        """
        Save a new snapshot, or replace the one at ``original_date``.

        Returns:
            (validation, stored_entries); no entries when validation failed
        """
        correlation_id = correlation_id or create_correlation_id()

        validation = await self._validator.validate_savings_form(form, original_date)
        if validation.has_errors:
            if self._audit_logger:
                await self._audit_logger.log_validation_failed(
                    form="savings",
                    issues=_issues_as_dicts(validation),
                    correlation_id=correlation_id,
                )
            return validation, []

        date_key, entries = validation.value
        stored = await self._ledger.save_snapshot(entries, date_key, original_date)

        if self._audit_logger:
            event_type = (
                AuditEventType.SAVINGS_SNAPSHOT_REPLACED
                if original_date
                else AuditEventType.SAVINGS_SNAPSHOT_SAVED
            )
            await self._audit_logger.log_savings_snapshot(
                event_type=event_type,
                date_key=date_key,
                entry_count=len(stored),
                correlation_id=correlation_id,
                original_date=original_date,
            )
        return validation, stored

    async def delete_snapshot(
        self,
        date_key: str,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        correlation_id = correlation_id or create_correlation_id()
        deleted = await self._ledger.delete_snapshot(date_key)

        if self._audit_logger:
            await self._audit_logger.log_savings_snapshot(
                event_type=AuditEventType.SAVINGS_SNAPSHOT_DELETED,
                date_key=date_key,
                entry_count=deleted,
                correlation_id=correlation_id,
            )
        return deleted

    async def _load_rates(self):
        first_load = not self._rate_service.is_loaded
        rates = await self._rate_service.get_rates_map()

        if first_load and self._audit_logger:
            if self._rate_service.is_available:
                await self._audit_logger.log_rates({
                    currency.value: rate
                    for currency, rate in rates.items()
                    if currency != Currency.EUR
                })
            else:
                await self._audit_logger.log_rates(None)
        return rates

    async def get_overview(self) -> SavingsOverview:
        """Latest snapshot with EUR totals and account balances, plus history."""
        groups = group_savings_by_date(await self._ledger.get_all_savings())
        latest, history = split_latest_and_history(groups)
        rates = await self._load_rates()

        latest_savings = latest.savings if latest else []
        return SavingsOverview(
            latest=latest,
            history=history,
            summary=calculate_savings_summary(latest_savings, rates),
            accounts=summarize_accounts(latest_savings),
            rates_available=self._rate_service.is_available,
        )


class BalanceFlow:
    """Dashboard figures and the manual balance sync."""

    def __init__(
        self,
        engine: BalanceEngine,
        income_ledger: IncomeLedger,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._engine = engine
        self._income_ledger = income_ledger
        self._audit_logger = audit_logger

    async def get_dashboard(self) -> DashboardSummary:
        return DashboardSummary(
            income=await self._income_ledger.get_latest_income(),
            totals=await self._engine.get_total_expenses(),
            kari_balance=await self._engine.get_kari_balance(),
            debt=await self._engine.get_total_debt(),
        )

    async def sync(
        self,
        effective_date=None,
        correlation_id: Optional[UUID] = None,
    ) -> BalanceSyncResult:
        """
        Run a balance sync on request.

        Raises:
            StorageError: If a step fails; the failure is audited first
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            result = await self._engine.sync_balance(effective_date)
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_balance_sync_failed(str(e), correlation_id)
            raise

        if self._audit_logger:
            await self._audit_logger.log_balance_synced(result, correlation_id)
        return result


class ExportFlow:
    """Writes the CSV dump of the record store."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        settings: Optional[AppSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._settings = settings or get_settings().app
        self._audit_logger = audit_logger

    async def export(
        self,
        directory: Union[str, Path, None] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Path]:
        correlation_id = correlation_id or create_correlation_id()
        target = Path(directory) if directory else self._settings.export_path

        paths = await export_database(self._storage, target)

        if self._audit_logger:
            await self._audit_logger.log_export_written(
                files=[path.name for path in paths],
                correlation_id=correlation_id,
            )
        return paths


class AppComponents(NamedTuple):
    expenses: ExpenseFlow
    income: IncomeFlow
    savings: SavingsFlow
    balance: BalanceFlow
    export: ExportFlow
    storage: LedgerStorageInterface
    sheets_client: Optional[GoogleSheetsClient]


def create_app_components(
    use_storage: bool = True,
    settings: Optional[AppSettings] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the Google Sheets record store.
                    Set to False to run on the in-memory store, which
                    keeps nothing after the process exits.
        settings: App settings; loaded from the environment if omitted

    Raises:
        ConnectionError: If the Sheets store was requested but cannot be
                         configured. Records are never silently kept in
                         memory instead.
    """
    settings = settings or get_settings().app
    sheets_client = None
    storage: LedgerStorageInterface
    audit_storage: AuditStorageInterface

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            storage = GoogleSheetsLedgerStorage(sheets_client)
            audit_storage = GoogleSheetsAuditStorage(sheets_client)
        except Exception as e:
            logger.error("sheets_storage_unavailable", error=str(e))
            raise ConnectionError(f"Google Sheets storage is not configured: {e}") from e
    else:
        storage = InMemoryLedgerStorage()
        audit_storage = InMemoryAuditStorage()

    audit_logger = AuditLogger(audit_storage)
    validator = LedgerInputValidator(storage)

    balance_engine = BalanceEngine(storage, settings)
    income_ledger = IncomeLedger(storage)
    expense_ledger = ExpenseLedger(storage, balance_engine)
    savings_ledger = SavingsLedger(storage)

    return AppComponents(
        expenses=ExpenseFlow(expense_ledger, validator, audit_logger),
        income=IncomeFlow(income_ledger, balance_engine, validator, audit_logger),
        savings=SavingsFlow(savings_ledger, ExchangeRateService(), validator, audit_logger),
        balance=BalanceFlow(balance_engine, income_ledger, audit_logger),
        export=ExportFlow(storage, settings, audit_logger),
        storage=storage,
        sheets_client=sheets_client,
    )
