"""
Currency Conversion Engine

Converts amounts between currencies through a single base-currency pivot.

GUARANTEES:
- Conversion never raises. A missing or invalid rate means the amount is
  returned unconverted, so one absent rate cannot break a whole summary.
- A rate map always contains the base currency at 1.
- Rates are "units of that currency per 1 unit of base" (EUR -> USD 1.08
  means 1 EUR buys 1.08 USD).
"""

from typing import Any, Mapping, Optional

from household_ledger.models.ledger import Currency
from household_ledger.utils.numbers import is_finite_number

CurrencyRateMap = dict[Currency, float]

BASE_CURRENCY = Currency.EUR


def _is_valid_rate(rate: Any) -> bool:
    return is_finite_number(rate) and rate > 0


def _get_rate(currency: Currency, rates: Mapping[Currency, float]) -> Optional[float]:
    rate = rates.get(currency)
    return float(rate) if _is_valid_rate(rate) else None


def convert_currency(
    amount: float,
    from_currency: Optional[Currency],
    to_currency: Currency,
    rates: Mapping[Currency, float],
    base: Currency = BASE_CURRENCY,
) -> float:
    """
    Convert ``amount`` from one currency to another via ``base``.

    Returns 0 for a non-finite amount, the amount itself when no conversion
    applies, and the *original* amount whenever a needed rate is missing.
    """
    if not is_finite_number(amount):
        return 0.0

    if not from_currency or from_currency == to_currency:
        return amount

    amount_in_base = amount

    if from_currency != base:
        from_rate = _get_rate(from_currency, rates)
        if from_rate is None:
            return amount
        amount_in_base = amount / from_rate

    if to_currency == base:
        return amount_in_base

    to_rate = _get_rate(to_currency, rates)
    if to_rate is None:
        return amount

    return amount_in_base * to_rate


def convert_to_base(
    amount: float,
    from_currency: Optional[Currency],
    rates: Mapping[Currency, float],
    base: Currency = BASE_CURRENCY,
) -> float:
    return convert_currency(amount, from_currency, base, rates, base)


def convert_from_base(
    amount: float,
    target_currency: Currency,
    rates: Mapping[Currency, float],
    base: Currency = BASE_CURRENCY,
) -> float:
    return convert_currency(amount, base, target_currency, rates, base)


def convert_to_euro(
    amount: float,
    currency: Optional[Currency],
    rates: Mapping[Currency, float],
) -> float:
    return convert_to_base(amount, currency, rates, Currency.EUR)


def convert_from_euro(
    amount: float,
    currency: Currency,
    rates: Mapping[Currency, float],
) -> float:
    return convert_from_base(amount, currency, rates, Currency.EUR)


def needs_conversion(currency: Optional[Currency], base: Currency = BASE_CURRENCY) -> bool:
    """True when an amount in ``currency`` cannot be trusted until rates are loaded."""
    return bool(currency) and currency != base


def build_rates_map(payload: Optional[Mapping[str, Any]]) -> CurrencyRateMap:
    """
    Build a rate map from a provider payload such as ``{"USD": 1.08}``.

    Codes are matched case-insensitively against the supported currencies.
    Unknown codes and non-positive or non-numeric rates are dropped.
    """
    rates: CurrencyRateMap = {BASE_CURRENCY: 1.0}

    if not payload:
        return rates

    for code, rate in payload.items():
        try:
            currency = Currency(str(code).upper())
        except ValueError:
            continue
        if currency != BASE_CURRENCY and _is_valid_rate(rate):
            rates[currency] = float(rate)

    return rates
