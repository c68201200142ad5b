"""
External Services Package

Collaborators the ledger talks to but does not own:
- Storage: the household record store (Google Sheets or in-memory)
- Rates: the live exchange rate provider
"""

from household_ledger.services.rates import (
    ExchangeRateProviderInterface,
    ExchangeRateService,
    FrankfurterRateProvider,
)
from household_ledger.services.storage import (
    AuditStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    StorageError,
)

__all__ = [
    # Rates
    "ExchangeRateProviderInterface",
    "ExchangeRateService",
    "FrankfurterRateProvider",
    # Storage
    "AuditStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "StorageError",
]
