"""Form validation package."""

from household_ledger.validation.validator import LedgerInputValidator

__all__ = ["LedgerInputValidator"]
