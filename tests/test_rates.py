"""Tests for the exchange rate provider and the session rate cache."""

import httpx
import pytest
from tenacity import wait_none

from household_ledger.config import ExchangeRateSettings
from household_ledger.models.ledger import Currency
from household_ledger.services.rates import (
    ExchangeRateProviderInterface,
    ExchangeRateService,
    FrankfurterRateProvider,
)

SETTINGS = ExchangeRateSettings(base_url="https://rates.test/v1", symbols="USD", max_attempts=3)


def provider_for(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FrankfurterRateProvider(SETTINGS, http_client=client, wait=wait_none())


class TestFrankfurterRateProvider:
    async def test_fetches_latest_rates(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"base": "EUR", "rates": {"USD": 1.08}})

        rates = await provider_for(handler).get_latest_rates()

        assert rates == {"USD": 1.08}
        assert seen[0].url.path == "/v1/latest"
        assert seen[0].url.params["base"] == "EUR"
        assert seen[0].url.params["symbols"] == "USD"

    async def test_retries_transient_failures(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"rates": {"USD": 1.1}})

        assert await provider_for(handler).get_latest_rates() == {"USD": 1.1}
        assert len(calls) == 3

    async def test_gives_up_after_max_attempts(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("offline", request=request)

        assert await provider_for(handler).get_latest_rates() is None
        assert len(calls) == 3

    async def test_payload_without_rates(self):
        def handler(request):
            return httpx.Response(200, json={"message": "not found"})

        assert await provider_for(handler).get_latest_rates() is None

    async def test_invalid_json(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>")

        assert await provider_for(handler).get_latest_rates() is None


class StaticProvider(ExchangeRateProviderInterface):
    def __init__(self, payload):
        self.payload = payload
        self.calls = 0

    async def get_latest_rates(self):
        self.calls += 1
        return self.payload


class TestExchangeRateService:
    """Fetch once per session, cache the built map."""

    async def test_caches_rate_map(self):
        provider = StaticProvider({"USD": 1.08, "GBP": 0.85})
        service = ExchangeRateService(provider)

        first = await service.get_rates_map()
        second = await service.get_rates_map()

        assert first == {Currency.EUR: 1.0, Currency.USD: 1.08}
        assert second == first
        assert provider.calls == 1
        assert service.is_available

    async def test_unavailable_provider_yields_base_only(self):
        provider = StaticProvider(None)
        service = ExchangeRateService(provider)

        assert await service.get_rates_map() == {Currency.EUR: 1.0}
        assert service.is_loaded
        assert not service.is_available

        await service.get_rates_map()
        assert provider.calls == 1

    async def test_clear_refetches(self):
        provider = StaticProvider({"USD": 1.08})
        service = ExchangeRateService(provider)
        await service.get_rates_map()
        service.clear()

        assert not service.is_loaded
        await service.get_rates_map()
        assert provider.calls == 2

    async def test_returned_map_is_a_copy(self):
        service = ExchangeRateService(StaticProvider({"USD": 1.08}))
        rates = await service.get_rates_map()
        rates[Currency.USD] = 99
        assert (await service.get_rates_map())[Currency.USD] == 1.08
