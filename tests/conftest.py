"""
Shared fixtures.

The in-memory store stands in for Google Sheets everywhere except the
Sheets backend tests. Engines get a fixed clock so month logic is stable.
"""

from datetime import date

import pytest

from household_ledger.config import AppSettings
from household_ledger.engine.balance import BalanceEngine, ExpenseLedger, IncomeLedger
from household_ledger.models.ledger import Expense, ExpenseType, Income
from household_ledger.services.storage import InMemoryAuditStorage, InMemoryLedgerStorage

TODAY = date(2026, 3, 15)


@pytest.fixture
def app_settings():
    return AppSettings(debt_month_includes_year=True, export_directory="exports")


@pytest.fixture
def storage():
    return InMemoryLedgerStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def balance_engine(storage, app_settings):
    return BalanceEngine(storage, app_settings, today=lambda: TODAY)


@pytest.fixture
def income_ledger(storage):
    return IncomeLedger(storage)


@pytest.fixture
def expense_ledger(storage, balance_engine):
    return ExpenseLedger(storage, balance_engine)


@pytest.fixture
def make_expense():
    """Factory for expenses dated in the current test month."""
    def _make(amount, expense_type=ExpenseType.PERCENTAGE, **overrides):
        fields = {
            "date": TODAY,
            "description": "Groceries",
            "amount": amount,
            "type": expense_type,
        }
        fields.update(overrides)
        return Expense(**fields)
    return _make


@pytest.fixture
async def seeded_income(storage):
    """adolfo 3000 / kari 2000, a 60/40 split."""
    return await storage.insert_income(Income(
        adolfo_income=3000,
        kari_income=2000,
        total_income=5000,
        adolfo_percentage=60,
        kari_percentage=40,
    ))
