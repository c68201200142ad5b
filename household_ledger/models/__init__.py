"""
Data Models Package

This package contains all Pydantic models used in the Household Ledger.
All records read from or written to the store conform to these schemas.
"""

from household_ledger.models.ledger import (
    ACCOUNT_ORDER,
    ADOLFO_ACCOUNT_ORDER,
    KARI_ACCOUNT_ORDER,
    PARTY_LABELS,
    SAVING_TYPE_LABELS,
    SAVINGS_ACCOUNT_FIELDS,
    AccountSummary,
    BalanceSyncResult,
    DashboardSummary,
    Currency,
    Debt,
    DebtAction,
    DebtBalance,
    Expense,
    ExpenseCategory,
    ExpenseSplit,
    ExpenseType,
    Income,
    Party,
    Saving,
    SavingsAccountField,
    SavingsGroup,
    SavingsOverview,
    SavingsSummary,
    SavingType,
    TotalExpenses,
    ValidationIssue,
    ValidationResult,
)
from household_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "ACCOUNT_ORDER",
    "ADOLFO_ACCOUNT_ORDER",
    "KARI_ACCOUNT_ORDER",
    "PARTY_LABELS",
    "SAVING_TYPE_LABELS",
    "SAVINGS_ACCOUNT_FIELDS",
    "AccountSummary",
    "BalanceSyncResult",
    "DashboardSummary",
    "Currency",
    "Debt",
    "DebtAction",
    "DebtBalance",
    "Expense",
    "ExpenseCategory",
    "ExpenseSplit",
    "ExpenseType",
    "Income",
    "Party",
    "Saving",
    "SavingsAccountField",
    "SavingsGroup",
    "SavingsOverview",
    "SavingsSummary",
    "SavingType",
    "TotalExpenses",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
