"""
Calculation Engines

Pure money logic plus the thin store-backed ledgers built on it:
- currency: EUR-pivot conversion
- savings:  snapshot grouping and per-person totals
- balance:  expense split, kari's balance, debt ledger sync
"""

from household_ledger.engine.currency import (
    BASE_CURRENCY,
    CurrencyRateMap,
    build_rates_map,
    convert_currency,
    convert_from_base,
    convert_from_euro,
    convert_to_base,
    convert_to_euro,
    needs_conversion,
)
from household_ledger.engine.savings import (
    DuplicateSnapshotError,
    SavingsLedger,
    calculate_savings_summary,
    get_latest_savings_group,
    group_savings_by_date,
    snapshot_requires_rates,
    split_latest_and_history,
    summarize_accounts,
)
from household_ledger.engine.balance import (
    BalanceEngine,
    ExpenseLedger,
    IncomeLedger,
    IncomeNotFoundError,
    LedgerError,
    calculate_expense_split,
    calculate_kari_balance,
    collapse_debts,
    debt_from_balance,
)

__all__ = [
    # Currency
    "BASE_CURRENCY",
    "CurrencyRateMap",
    "build_rates_map",
    "convert_currency",
    "convert_from_base",
    "convert_from_euro",
    "convert_to_base",
    "convert_to_euro",
    "needs_conversion",
    # Savings
    "DuplicateSnapshotError",
    "SavingsLedger",
    "calculate_savings_summary",
    "get_latest_savings_group",
    "group_savings_by_date",
    "snapshot_requires_rates",
    "split_latest_and_history",
    "summarize_accounts",
    # Balance
    "BalanceEngine",
    "ExpenseLedger",
    "IncomeLedger",
    "IncomeNotFoundError",
    "LedgerError",
    "calculate_expense_split",
    "calculate_kari_balance",
    "collapse_debts",
    "debt_from_balance",
]
