"""
Core Data Models for Household Ledger

These models define the schemas for every record the ledger reads from
and writes to the record store, plus the derived aggregates the engines
produce.

They are designed to:
1. Enforce type safety at the storage boundary
2. Provide clear validation error messages
3. Be serializable for storage, CSV export and logging

DESIGN DECISION: Money is a plain float. Engines keep full precision in
intermediate sums and round to 2 decimals only on the values they return
or persist (see utils.numbers.round_to_decimals).
"""

import datetime as dt
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Currency(str, Enum):
    """
    Supported currencies.

    EUR is the pivot: every cross-currency conversion routes through it.
    """
    EUR = "EUR"
    USD = "USD"


class Party(str, Enum):
    """
    The two members of the household.

    ADOLFO is party A, KARI is party B. The stored values are the names
    used in every collection (income columns, debt columns, savings user).
    """
    ADOLFO = "adolfo"
    KARI = "kari"


class ExpenseType(str, Enum):
    """
    How an expense is shared.

    PERCENTAGE: split by current income percentages
    SHARED:     split 50/50
    KARI:       attributed entirely to kari
    """
    PERCENTAGE = "percentage"
    SHARED = "shared"
    KARI = "kari"


class ExpenseCategory(str, Enum):
    """Expense categories. Informational only, never used in aggregation."""
    RENT = "Rent"
    CELLPHONE = "Cellphone"
    SUBSCRIPTIONS = "Subscriptions"
    PHARMACY = "Pharmacy"
    PET = "Pet"
    SUPERMARKET = "Supermarket"
    PURCHASES = "Purchases"
    FOOD = "Food"
    HEALTH_INSURANCE = "Health Insurance"
    TRANSPORTATION = "Transportation"
    OTHER = "Other"


class SavingType(str, Enum):
    """Accounts a saving can be held in."""
    CASH = "cash"
    OCEAN_BANK = "ocean bank"
    WISE = "wise"
    FACEBANK = "facebank"
    SABADELL = "sabadell"
    N26 = "n26"


class DebtAction(str, Enum):
    """What the balance sync did with the monthly debt record."""
    UPDATED = "updated"
    INSERTED = "inserted"
    SKIPPED = "skipped"


# =============================================================================
# LABEL TABLES
# =============================================================================

SAVING_TYPE_LABELS: dict[SavingType, str] = {
    SavingType.CASH: "Cash",
    SavingType.OCEAN_BANK: "Ocean Bank",
    SavingType.WISE: "Wise",
    SavingType.FACEBANK: "Facebank",
    SavingType.SABADELL: "Sabadell",
    SavingType.N26: "N26",
}

PARTY_LABELS: dict[Party, str] = {
    Party.ADOLFO: "Adolfo",
    Party.KARI: "Kari",
}

# Display order of each person's accounts in a snapshot
ADOLFO_ACCOUNT_ORDER: list[SavingType] = [
    SavingType.CASH,
    SavingType.OCEAN_BANK,
    SavingType.FACEBANK,
    SavingType.N26,
]

KARI_ACCOUNT_ORDER: list[SavingType] = [
    SavingType.CASH,
    SavingType.SABADELL,
    SavingType.WISE,
]

ACCOUNT_ORDER: dict[Party, list[SavingType]] = {
    Party.ADOLFO: ADOLFO_ACCOUNT_ORDER,
    Party.KARI: KARI_ACCOUNT_ORDER,
}


class SavingsAccountField(BaseModel):
    """One account line of the savings snapshot form."""

    model_config = ConfigDict(frozen=True)

    name: str
    user: Party
    type: SavingType
    default_currency: Currency


SAVINGS_ACCOUNT_FIELDS: list[SavingsAccountField] = [
    SavingsAccountField(name="adolfoCash", user=Party.ADOLFO, type=SavingType.CASH, default_currency=Currency.USD),
    SavingsAccountField(name="adolfoOceanBank", user=Party.ADOLFO, type=SavingType.OCEAN_BANK, default_currency=Currency.USD),
    SavingsAccountField(name="adolfoFacebank", user=Party.ADOLFO, type=SavingType.FACEBANK, default_currency=Currency.USD),
    SavingsAccountField(name="adolfoN26", user=Party.ADOLFO, type=SavingType.N26, default_currency=Currency.EUR),
    SavingsAccountField(name="kariCash", user=Party.KARI, type=SavingType.CASH, default_currency=Currency.USD),
    SavingsAccountField(name="kariSabadell", user=Party.KARI, type=SavingType.SABADELL, default_currency=Currency.EUR),
    SavingsAccountField(name="kariWise", user=Party.KARI, type=SavingType.WISE, default_currency=Currency.USD),
]


# =============================================================================
# STORED RECORDS
# =============================================================================

class Expense(BaseModel):
    """
    A household expense.

    Amounts are always stored in USD. ``is_paid_by_kari`` marks the
    expenses kari advanced out of her own pocket; ``is_default`` marks the
    recurring templates that are copied into each new month.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[int] = Field(
        default=None,
        description="Store-assigned identifier"
    )
    created_at: datetime = Field(default_factory=_utcnow)
    date: dt.date = Field(
        ...,
        description="Day the expense applies to"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
    )
    category: ExpenseCategory = ExpenseCategory.OTHER
    amount: float = Field(
        ...,
        ge=0,
        allow_inf_nan=False,
        description="Amount in USD"
    )
    type: ExpenseType = Field(
        ...,
        description="Sharing policy"
    )
    is_paid_by_kari: bool = False
    is_default: bool = False


class Income(BaseModel):
    """
    Income split between the two parties.

    Only the most recently created record is current. The derived fields
    (total and percentages) are rewritten on every income update.
    """

    id: Optional[int] = None
    created_at: datetime = Field(default_factory=_utcnow)
    adolfo_income: float = Field(default=0.0, ge=0)
    kari_income: float = Field(default=0.0, ge=0)
    total_income: float = Field(default=0.0, ge=0)
    adolfo_percentage: float = Field(default=0.0, ge=0, le=100)
    kari_percentage: float = Field(default=0.0, ge=0, le=100)

    def income_of(self, party: Party) -> float:
        return self.kari_income if party == Party.KARI else self.adolfo_income

    def percentage_of(self, party: Party) -> float:
        return self.kari_percentage if party == Party.KARI else self.adolfo_percentage


class Debt(BaseModel):
    """
    Monthly debt record: who owes whom for one month.

    At most one side is nonzero once written by the balance sync.
    """

    id: Optional[int] = None
    created_at: datetime = Field(default_factory=_utcnow)
    month: str = Field(..., min_length=1)
    kari_debt: float = Field(default=0.0, ge=0)
    adolfo_debt: float = Field(default=0.0, ge=0)


class TotalExpenses(BaseModel):
    """The single persisted "current totals" record."""

    id: Optional[int] = None
    created_at: datetime = Field(default_factory=_utcnow)
    total: float = 0.0
    adolfo: float = 0.0
    kari: float = 0.0


class Saving(BaseModel):
    """
    One account balance inside a savings snapshot.

    ``created_at`` is the snapshot key. It is kept as it came from the
    store (string or datetime) so that unparseable values can still be
    grouped under their raw text. ``user`` and ``currency`` may be missing
    on legacy rows; aggregation skips or defaults them.
    """

    id: Optional[int] = None
    created_at: Union[datetime, str, None] = None
    user: Optional[Party] = None
    type: Optional[SavingType] = None
    amount: float = 0.0
    currency: Optional[Currency] = None


# =============================================================================
# DERIVED AGGREGATES
# =============================================================================

class SavingsGroup(BaseModel):
    """All savings sharing one calendar-day key: one point-in-time snapshot."""

    date_key: str
    timestamp: float = Field(
        default=0.0,
        description="Epoch milliseconds of the newest member; 0 if unparseable"
    )
    savings: list[Saving] = Field(default_factory=list)


class SavingsSummary(BaseModel):
    """Per-person savings totals in the base currency."""

    adolfo: float = 0.0
    kari: float = 0.0
    total: float = 0.0
    adolfo_percentage: float = 0.0
    kari_percentage: float = 0.0


class AccountSummary(BaseModel):
    """Native-currency total of one person's account in a snapshot."""

    type: SavingType
    user: Party
    amount: float
    currency: Currency


class ExpenseSplit(BaseModel):
    """Each party's share of all stored expenses."""

    total: float = 0.0
    adolfo: float = 0.0
    kari: float = 0.0


class DebtBalance(BaseModel):
    """Net outstanding debt. At most one side is nonzero."""

    adolfo: float = 0.0
    kari: float = 0.0


class BalanceSyncResult(BaseModel):
    """What one balance sync computed and wrote."""

    totals: ExpenseSplit
    kari_balance: float
    debt_month: str
    debt_action: DebtAction
    debt: Optional[Debt] = None


class DashboardSummary(BaseModel):
    """Figures shown on the dashboard."""

    income: Optional[Income] = None
    totals: ExpenseSplit = Field(default_factory=ExpenseSplit)
    kari_balance: float = 0.0
    debt: DebtBalance = Field(default_factory=DebtBalance)


class SavingsOverview(BaseModel):
    """Current snapshot, its history and the EUR totals of the current one."""

    latest: Optional[SavingsGroup] = None
    history: list[SavingsGroup] = Field(default_factory=list)
    summary: SavingsSummary = Field(default_factory=SavingsSummary)
    accounts: dict[Party, list[AccountSummary]] = Field(default_factory=dict)
    rates_available: bool = False


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found in user input."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'duplicate')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="What the user can do about it"
    )


class ValidationResult(BaseModel):
    """
    Result of validating one form submission.

    ``value`` holds the parsed model when there were no errors.
    """

    issues: list[ValidationIssue] = Field(default_factory=list)
    value: Optional[Any] = None

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
