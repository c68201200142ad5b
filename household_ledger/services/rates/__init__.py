"""Exchange rate services package."""

from household_ledger.services.rates.provider import (
    ExchangeRateProviderInterface,
    ExchangeRateService,
    FrankfurterRateProvider,
    RateProviderError,
)

__all__ = [
    "ExchangeRateProviderInterface",
    "ExchangeRateService",
    "FrankfurterRateProvider",
    "RateProviderError",
]
