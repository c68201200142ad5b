"""
Tests for the EUR-pivot currency conversion.

Conversion never raises: a missing rate leaves the amount unconverted.
"""

import pytest

from household_ledger.engine.currency import (
    build_rates_map,
    convert_currency,
    convert_from_euro,
    convert_to_euro,
    needs_conversion,
)
from household_ledger.models.ledger import Currency

RATES = {Currency.EUR: 1.0, Currency.USD: 1.08}


class TestConvertCurrency:
    """Core conversion rules."""

    @pytest.mark.parametrize("currency", list(Currency))
    @pytest.mark.parametrize("rates", [RATES, {}, {Currency.USD: -1}])
    def test_same_currency_is_identity(self, currency, rates):
        assert convert_currency(123.45, currency, currency, rates) == 123.45

    def test_usd_round_trip(self):
        euros = convert_to_euro(100, Currency.USD, RATES)
        assert convert_from_euro(euros, Currency.USD, RATES) == pytest.approx(100)

    def test_usd_to_euro(self):
        assert convert_to_euro(108, Currency.USD, RATES) == pytest.approx(100)

    def test_euro_to_usd(self):
        assert convert_from_euro(100, Currency.USD, RATES) == pytest.approx(108)

    def test_missing_rate_returns_original_amount(self):
        assert convert_to_euro(100, Currency.USD, {}) == 100
        assert convert_from_euro(100, Currency.USD, {Currency.EUR: 1.0}) == 100

    @pytest.mark.parametrize("bad_rate", [0, -1.08, float("nan"), float("inf"), "1.08"])
    def test_invalid_rate_returns_original_amount(self, bad_rate):
        assert convert_to_euro(100, Currency.USD, {Currency.USD: bad_rate}) == 100

    def test_non_finite_amount_is_zero(self):
        assert convert_to_euro(float("nan"), Currency.USD, RATES) == 0.0

    def test_missing_source_currency_is_unchanged(self):
        assert convert_currency(50, None, Currency.USD, RATES) == 50


class TestRatesMap:
    """Building a rate map from a provider payload."""

    def test_absent_payload_holds_only_base(self):
        assert build_rates_map(None) == {Currency.EUR: 1.0}
        assert build_rates_map({}) == {Currency.EUR: 1.0}

    def test_codes_matched_case_insensitively(self):
        assert build_rates_map({"usd": 1.1}) == {Currency.EUR: 1.0, Currency.USD: 1.1}

    def test_unknown_and_invalid_entries_dropped(self):
        rates = build_rates_map({"GBP": 0.85, "USD": "abc"})
        assert rates == {Currency.EUR: 1.0}

    def test_base_is_always_one(self):
        rates = build_rates_map({"EUR": 2.0, "USD": 1.08})
        assert rates == {Currency.EUR: 1.0, Currency.USD: 1.08}


class TestNeedsConversion:
    def test_needs_conversion(self):
        assert needs_conversion(Currency.USD)
        assert not needs_conversion(Currency.EUR)
        assert not needs_conversion(None)
