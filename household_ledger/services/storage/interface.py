"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the record store.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the engines decoupled from storage implementation
4. Inject the store instead of reaching for a process-wide client

The interface is intentionally simple - we're not building a full ORM.
Each collection gets list / get / insert / update-by-id / delete-by-id and
nothing more. Anything multi-step (replacing a snapshot, syncing the
balance) is composed by the caller out of these calls, with no transaction
around them.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from household_ledger.models.audit import AuditEvent
from household_ledger.models.ledger import (
    Debt,
    Expense,
    Income,
    Saving,
    TotalExpenses,
)


class LedgerStorageInterface(ABC):
    """
    Abstract interface for the household record store.

    Collections: expenses, income, debt, savings, total_expenses.
    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    # ---- expenses ----------------------------------------------------------

    @abstractmethod
    async def list_expenses(self) -> list[Expense]:
        """
        List every expense, newest ``date`` first (then newest created).

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def get_expense(self, expense_id: int) -> Optional[Expense]:
        """
        Retrieve an expense by its ID.

        Returns:
            The expense if found, None otherwise
        """
        pass

    @abstractmethod
    async def insert_expense(self, expense: Expense) -> Expense:
        """
        Insert an expense.

        Returns:
            The stored expense, with its assigned id

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def update_expense(self, expense: Expense) -> Expense:
        """
        Update an existing expense (matched by id).

        Raises:
            StorageError: If update fails
            NotFoundError: If the expense doesn't exist
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: int) -> bool:
        """
        Delete an expense by ID.

        Returns:
            True if a record was deleted
        """
        pass

    # ---- income ------------------------------------------------------------

    @abstractmethod
    async def get_latest_income(self) -> Optional[Income]:
        """Most recently created income record, or None if there is none."""
        pass

    @abstractmethod
    async def insert_income(self, income: Income) -> Income:
        """Insert an income record and return it with its id."""
        pass

    @abstractmethod
    async def update_income(self, income: Income) -> Income:
        """
        Update an income record in place (matched by id).

        Raises:
            NotFoundError: If the record doesn't exist
        """
        pass

    # ---- debt --------------------------------------------------------------

    @abstractmethod
    async def list_debts(self) -> list[Debt]:
        """List every monthly debt record."""
        pass

    @abstractmethod
    async def get_debt_by_month(self, month: str) -> Optional[Debt]:
        """
        Find the debt record for a month label.

        Args:
            month: Label exactly as stored (e.g. 'March' or 'March 2026')
        """
        pass

    @abstractmethod
    async def insert_debt(self, debt: Debt) -> Debt:
        """Insert a debt record and return it with its id."""
        pass

    @abstractmethod
    async def update_debt(self, debt: Debt) -> Debt:
        """
        Update a debt record in place (matched by id).

        Raises:
            NotFoundError: If the record doesn't exist
        """
        pass

    # ---- total_expenses ----------------------------------------------------

    @abstractmethod
    async def list_totals(self) -> list[TotalExpenses]:
        """List stored totals records, newest first."""
        pass

    @abstractmethod
    async def insert_totals(self, totals: TotalExpenses) -> TotalExpenses:
        """Insert a totals record and return it with its id."""
        pass

    @abstractmethod
    async def delete_totals(self, totals_id: int) -> bool:
        """Delete a totals record by ID."""
        pass

    # ---- savings -----------------------------------------------------------

    @abstractmethod
    async def list_savings(self) -> list[Saving]:
        """List every saving record, in insertion order."""
        pass

    @abstractmethod
    async def insert_savings_batch(self, savings: list[Saving]) -> list[Saving]:
        """Insert several saving records; returns them with their ids."""
        pass

    @abstractmethod
    async def delete_savings_by_date(self, date_key: str) -> int:
        """
        Delete every saving whose creation day key equals ``date_key``.

        Returns:
            Number of deleted records
        """
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
        """
        Get all events for a correlation ID (e.g., one expense edit and its sync).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
