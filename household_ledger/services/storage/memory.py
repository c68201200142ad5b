"""
In-Memory Storage Implementation

Dict-backed record store used by the test suite and for local runs without
Google credentials. Ids are auto-incremented per collection, like the
hosted backend does. Records are copied on the way in and out so callers
can never mutate stored state behind the store's back.
"""

from collections import defaultdict
from itertools import count
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
from household_ledger.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
    NotFoundError,
)
from household_ledger.utils.dates import get_date_key


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Record store that lives in process memory."""

    def __init__(self):
        self._expenses: dict[int, Expense] = {}
        self._income: dict[int, Income] = {}
        self._debts: dict[int, Debt] = {}
        self._totals: dict[int, TotalExpenses] = {}
        self._savings: dict[int, Saving] = {}
        self._ids = defaultdict(lambda: count(1))

    def _next_id(self, collection: str) -> int:
        return next(self._ids[collection])

    # ---- expenses ----------------------------------------------------------

    async def list_expenses(self) -> list[Expense]:
        expenses = [e.model_copy(deep=True) for e in self._expenses.values()]
        expenses.sort(key=lambda e: (e.date, e.created_at), reverse=True)
        return expenses

    async def get_expense(self, expense_id: int) -> Optional[Expense]:
        expense = self._expenses.get(expense_id)
        return expense.model_copy(deep=True) if expense else None

    async def insert_expense(self, expense: Expense) -> Expense:
        stored = expense.model_copy(update={"id": self._next_id("expenses")}, deep=True)
        self._expenses[stored.id] = stored
        return stored.model_copy(deep=True)

    async def update_expense(self, expense: Expense) -> Expense:
        if expense.id not in self._expenses:
            raise NotFoundError(f"Expense not found: {expense.id}")
        self._expenses[expense.id] = expense.model_copy(deep=True)
        return expense.model_copy(deep=True)

    async def delete_expense(self, expense_id: int) -> bool:
        return self._expenses.pop(expense_id, None) is not None

    # ---- income ------------------------------------------------------------

    async def get_latest_income(self) -> Optional[Income]:
        if not self._income:
            return None
        latest = max(self._income.values(), key=lambda i: (i.created_at, i.id))
        return latest.model_copy(deep=True)

    async def insert_income(self, income: Income) -> Income:
        stored = income.model_copy(update={"id": self._next_id("income")}, deep=True)
        self._income[stored.id] = stored
        return stored.model_copy(deep=True)

    async def update_income(self, income: Income) -> Income:
        if income.id not in self._income:
            raise NotFoundError(f"Income record not found: {income.id}")
        self._income[income.id] = income.model_copy(deep=True)
        return income.model_copy(deep=True)

    # ---- debt --------------------------------------------------------------

    async def list_debts(self) -> list[Debt]:
        return [d.model_copy(deep=True) for d in self._debts.values()]

    async def get_debt_by_month(self, month: str) -> Optional[Debt]:
        for debt in self._debts.values():
            if debt.month == month:
                return debt.model_copy(deep=True)
        return None

    async def insert_debt(self, debt: Debt) -> Debt:
        stored = debt.model_copy(update={"id": self._next_id("debt")}, deep=True)
        self._debts[stored.id] = stored
        return stored.model_copy(deep=True)

    async def update_debt(self, debt: Debt) -> Debt:
        if debt.id not in self._debts:
            raise NotFoundError(f"Debt record not found: {debt.id}")
        self._debts[debt.id] = debt.model_copy(deep=True)
        return debt.model_copy(deep=True)

    # ---- total_expenses ----------------------------------------------------

    async def list_totals(self) -> list[TotalExpenses]:
        totals = [t.model_copy(deep=True) for t in self._totals.values()]
        totals.sort(key=lambda t: (t.created_at, t.id), reverse=True)
        return totals

    async def insert_totals(self, totals: TotalExpenses) -> TotalExpenses:
        stored = totals.model_copy(update={"id": self._next_id("total_expenses")}, deep=True)
        self._totals[stored.id] = stored
        return stored.model_copy(deep=True)

    async def delete_totals(self, totals_id: int) -> bool:
        return self._totals.pop(totals_id, None) is not None

    # ---- savings -----------------------------------------------------------

    async def list_savings(self) -> list[Saving]:
        return [s.model_copy(deep=True) for s in self._savings.values()]

    async def insert_savings_batch(self, savings: list[Saving]) -> list[Saving]:
        stored = []
        for saving in savings:
            record = saving.model_copy(update={"id": self._next_id("savings")}, deep=True)
            self._savings[record.id] = record
            stored.append(record.model_copy(deep=True))
        return stored

    async def delete_savings_by_date(self, date_key: str) -> int:
        doomed = [
            saving_id
            for saving_id, saving in self._savings.items()
            if get_date_key(saving.created_at).key == date_key
        ]
        for saving_id in doomed:
            del self._savings[saving_id]
        return len(doomed)


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
