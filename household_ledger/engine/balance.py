"""
Expense Split & Balance Engine

Works out how much of the household's expenses each person carries, what
kari is owed (or owes) given what she paid herself, and folds that into the
monthly debt ledger.

Sharing policies:
- percentage: split by the current income percentages
- shared:     split 50/50
- kari:       entirely kari's

Sign convention (relied on by the debt ledger): a positive kari balance
means adolfo owes kari; a negative one means kari owes adolfo.

DESIGN DECISION: sync_balance is an explicit, ordered list of steps with no
transaction around them:
1. recompute totals
2. persist totals (delete every totals record, insert one)
3. recompute kari's balance
4. persist the month's debt record
A failure in any step propagates and leaves the earlier writes in place.
"""

from datetime import date
from typing import Callable, Optional, Union

import structlog

from household_ledger.config import AppSettings, get_settings
from household_ledger.models.ledger import (
    BalanceSyncResult,
    Debt,
    DebtAction,
    DebtBalance,
    Expense,
    ExpenseSplit,
    ExpenseType,
    Income,
    Party,
    TotalExpenses,
)
from household_ledger.services.storage.interface import LedgerStorageInterface
from household_ledger.utils.dates import month_label, previous_month, same_month, to_date
from household_ledger.utils.numbers import round_to_decimals, safe_number

logger = structlog.get_logger(__name__)


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class IncomeNotFoundError(LedgerError):
    """There is no income record to update."""
    pass


# =============================================================================
# PURE CALCULATIONS
# =============================================================================

def calculate_expense_split(
    expenses: list[Expense],
    income: Optional[Income],
) -> ExpenseSplit:
    """
    Each person's share of ``expenses`` under the current income split.

    ``total`` is summed independently of the two shares; the shares add up
    to it within rounding. Without an income record the percentage
    expenses are split 50/50.
    """
    percentage_sum = 0.0
    shared_sum = 0.0
    kari_only_sum = 0.0
    total = 0.0

    for expense in expenses:
        amount = safe_number(expense.amount)
        total += amount
        if expense.type == ExpenseType.PERCENTAGE:
            percentage_sum += amount
        elif expense.type == ExpenseType.SHARED:
            shared_sum += amount
        elif expense.type == ExpenseType.KARI:
            kari_only_sum += amount

    if income is None:
        adolfo_percentage = kari_percentage = 50.0
    else:
        adolfo_percentage = income.adolfo_percentage
        kari_percentage = income.kari_percentage

    adolfo = percentage_sum * (adolfo_percentage / 100) + shared_sum / 2
    kari = percentage_sum * (kari_percentage / 100) + shared_sum / 2 + kari_only_sum

    return ExpenseSplit(
        total=round_to_decimals(total),
        adolfo=round_to_decimals(adolfo),
        kari=round_to_decimals(kari),
    )


def calculate_kari_balance(kari_share: float, expenses: list[Expense]) -> float:
    """kari's share minus everything kari paid herself."""
    paid_by_kari = sum(safe_number(e.amount) for e in expenses if e.is_paid_by_kari)
    return round_to_decimals(kari_share - paid_by_kari)


def collapse_debts(debts: list[Debt]) -> DebtBalance:
    """
    Net out every month's debt into one pair.

    Both sides are summed across all records, then the smaller sum is
    subtracted from the larger; the smaller side ends at 0.
    """
    adolfo_sum = sum(safe_number(d.adolfo_debt) for d in debts)
    kari_sum = sum(safe_number(d.kari_debt) for d in debts)

    if adolfo_sum > kari_sum:
        return DebtBalance(adolfo=round_to_decimals(adolfo_sum - kari_sum), kari=0.0)
    if kari_sum > adolfo_sum:
        return DebtBalance(adolfo=0.0, kari=round_to_decimals(kari_sum - adolfo_sum))
    return DebtBalance()


def debt_from_balance(kari_balance: float) -> DebtBalance:
    """
    Turn kari's signed balance into a one-sided debt pair.

    Positive balance: adolfo owes it. Negative: kari owes its magnitude.
    """
    if kari_balance > 0:
        return DebtBalance(adolfo=round_to_decimals(kari_balance), kari=0.0)
    if kari_balance < 0:
        return DebtBalance(adolfo=0.0, kari=round_to_decimals(-kari_balance))
    return DebtBalance()


# =============================================================================
# STORE-BACKED OPERATIONS
# =============================================================================

class IncomeLedger:
    """Keeps the current income split."""

    def __init__(self, storage: LedgerStorageInterface):
        self._storage = storage

    async def get_latest_income(self) -> Optional[Income]:
        return await self._storage.get_latest_income()

    async def update_income(self, party: Union[Party, str], new_income: float) -> Income:
        """
        Set one person's income and recompute the split.

        The latest income record is updated in place; no new record is
        inserted.

        Raises:
            IncomeNotFoundError: If there is no income record yet
            ValueError: For an unknown person or a negative income
        """
        party = Party(party)
        if new_income < 0:
            raise ValueError(f"Income cannot be negative: {new_income}")

        latest = await self._storage.get_latest_income()
        if latest is None:
            raise IncomeNotFoundError("No income record found.")

        other = Party.ADOLFO if party == Party.KARI else Party.KARI
        other_income = latest.income_of(other)
        total_income = new_income + other_income

        if total_income:
            party_percentage = round_to_decimals(new_income / total_income * 100)
            other_percentage = round_to_decimals(100 - party_percentage)
        else:
            party_percentage = other_percentage = 0.0

        updated = latest.model_copy(update={
            f"{party.value}_income": new_income,
            f"{party.value}_percentage": party_percentage,
            f"{other.value}_percentage": other_percentage,
            "total_income": round_to_decimals(total_income),
        })

        stored = await self._storage.update_income(updated)
        logger.info(
            "income_updated",
            party=party.value,
            total_income=stored.total_income,
            adolfo_percentage=stored.adolfo_percentage,
            kari_percentage=stored.kari_percentage,
        )
        return stored


class BalanceEngine:
    """
    Computes totals, kari's balance and the collapsed debt, and syncs them
    into the store.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        settings: Optional[AppSettings] = None,
        today: Callable[[], date] = date.today,
    ):
        self._storage = storage
        self._settings = settings or get_settings().app
        self._today = today

    async def get_total_expenses(self) -> ExpenseSplit:
        expenses = await self._storage.list_expenses()
        income = await self._storage.get_latest_income()
        return calculate_expense_split(expenses, income)

    async def get_kari_balance(self) -> float:
        """
        kari's balance against the latest persisted totals.

        Falls back to a fresh split when no totals record exists yet.
        """
        totals = await self._storage.list_totals()
        if totals:
            kari_share = totals[0].kari
        else:
            kari_share = (await self.get_total_expenses()).kari

        expenses = await self._storage.list_expenses()
        return calculate_kari_balance(kari_share, expenses)

    async def get_total_debt(self) -> DebtBalance:
        return collapse_debts(await self._storage.list_debts())

    def today(self) -> date:
        return self._today()

    def debt_month_for(self, effective_date: Union[date, str, None] = None) -> tuple[date, str]:
        """Target month of a sync: the effective date's month, else last month."""
        target = to_date(effective_date) if effective_date else None
        if target is None:
            target = previous_month(self._today())
        return target, month_label(target, include_year=self._settings.debt_month_includes_year)

    async def _persist_totals(self, split: ExpenseSplit) -> TotalExpenses:
        for existing in await self._storage.list_totals():
            await self._storage.delete_totals(existing.id)
        return await self._storage.insert_totals(
            TotalExpenses(total=split.total, adolfo=split.adolfo, kari=split.kari)
        )

    async def _persist_debt(
        self,
        target: date,
        label: str,
        kari_balance: float,
    ) -> tuple[DebtAction, Optional[Debt]]:
        debt = debt_from_balance(kari_balance)
        existing = await self._storage.get_debt_by_month(label)

        if existing:
            updated = existing.model_copy(update={
                "adolfo_debt": debt.adolfo,
                "kari_debt": debt.kari,
            })
            return DebtAction.UPDATED, await self._storage.update_debt(updated)

        # Historical months without a record are never backfilled
        if same_month(target, self._today()):
            inserted = await self._storage.insert_debt(
                Debt(month=label, adolfo_debt=debt.adolfo, kari_debt=debt.kari)
            )
            return DebtAction.INSERTED, inserted

        return DebtAction.SKIPPED, None

    async def sync_balance(
        self,
        effective_date: Union[date, str, None] = None,
    ) -> BalanceSyncResult:
        """
        Recompute and persist totals, kari's balance and the month's debt.

        Raises:
            StorageError: From whichever step failed; earlier writes stay
        """
        split = await self.get_total_expenses()
        await self._persist_totals(split)

        kari_balance = await self.get_kari_balance()

        target, label = self.debt_month_for(effective_date)
        action, debt = await self._persist_debt(target, label, kari_balance)

        logger.info(
            "balance_synced",
            total=split.total,
            adolfo=split.adolfo,
            kari=split.kari,
            kari_balance=kari_balance,
            debt_month=label,
            debt_action=action.value,
        )
        return BalanceSyncResult(
            totals=split,
            kari_balance=kari_balance,
            debt_month=label,
            debt_action=action,
            debt=debt,
        )


class ExpenseLedger:
    """
    Expense CRUD. Every change to a non-template expense re-syncs the
    balance for the month of that expense.
    """

    def __init__(self, storage: LedgerStorageInterface, balance: BalanceEngine):
        self._storage = storage
        self._balance = balance

    async def list_expenses(self) -> list[Expense]:
        return await self._storage.list_expenses()

    async def get_expense(self, expense_id: int) -> Optional[Expense]:
        return await self._storage.get_expense(expense_id)

    async def create_expense(self, expense: Expense) -> tuple[Expense, Optional[BalanceSyncResult]]:
        stored = await self._storage.insert_expense(expense)
        logger.info("expense_created", expense_id=stored.id, amount=stored.amount)

        if stored.is_default:
            return stored, None
        return stored, await self._balance.sync_balance(stored.date)

    async def update_expense(self, expense: Expense) -> tuple[Expense, Optional[BalanceSyncResult]]:
        """
        Raises:
            NotFoundError: If the expense doesn't exist
        """
        previous = await self._storage.get_expense(expense.id) if expense.id is not None else None
        stored = await self._storage.update_expense(expense)
        logger.info("expense_updated", expense_id=stored.id, amount=stored.amount)

        was_template = previous.is_default if previous else True
        if was_template and stored.is_default:
            return stored, None
        return stored, await self._balance.sync_balance(stored.date)

    async def delete_expense(self, expense_id: int) -> tuple[bool, Optional[BalanceSyncResult]]:
        existing = await self._storage.get_expense(expense_id)
        deleted = await self._storage.delete_expense(expense_id)
        logger.info("expense_deleted", expense_id=expense_id, deleted=deleted)

        if not deleted or existing is None or existing.is_default:
            return deleted, None
        return deleted, await self._balance.sync_balance(existing.date)
