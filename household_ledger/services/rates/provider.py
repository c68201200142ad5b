"""
Exchange Rate Provider

Fetches the current EUR-based exchange rates from a public rate API
(Frankfurter by default) and caches them for the session.

DESIGN DECISION: A failed fetch is not an error for the caller. The
service returns a rate map holding only the base currency, and every
conversion that needs a missing rate silently leaves its amount
unconverted. Retries happen here, at the transport, and nowhere else.

Only the current rate is ever used - there is no historical rate lookup.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from household_ledger.config import ExchangeRateSettings, get_settings
from household_ledger.engine.currency import (
    BASE_CURRENCY,
    CurrencyRateMap,
    build_rates_map,
)

logger = structlog.get_logger(__name__)

_RETRYABLE = (httpx.TransportError, httpx.HTTPStatusError)


class RateProviderError(Exception):
    """The rate provider answered with something we cannot use."""
    pass


class ExchangeRateProviderInterface(ABC):
    """Source of "units of currency per 1 base unit" rates."""

    @abstractmethod
    async def get_latest_rates(self) -> Optional[dict[str, float]]:
        """
        Fetch the latest rates.

        Returns:
            Mapping of currency code to rate, or None if unavailable
        """
        pass


class FrankfurterRateProvider(ExchangeRateProviderInterface):
    """
    Rate provider backed by the Frankfurter API.

    GET {base_url}/latest?base=EUR&symbols=USD -> {"rates": {"USD": 1.08}, ...}
    """

    def __init__(
        self,
        settings: Optional[ExchangeRateSettings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        wait: Any = None,
    ):
        self._settings = settings or get_settings().exchange_rate
        self._http_client = http_client
        self._wait = wait or wait_exponential(multiplier=0.5, min=0.5, max=5)

    async def _fetch_once(self, client: httpx.AsyncClient) -> dict[str, Any]:
        response = await client.get(
            f"{self._settings.base_url.rstrip('/')}/latest",
            params={"base": BASE_CURRENCY.value, "symbols": self._settings.symbols},
            timeout=self._settings.timeout_seconds,
        )
        response.raise_for_status()
        payload = response.json()
        rates = payload.get("rates") if isinstance(payload, dict) else None
        if not isinstance(rates, dict):
            raise RateProviderError("Response has no 'rates' object")
        return rates

    async def get_latest_rates(self) -> Optional[dict[str, float]]:
        """Fetch rates, retrying transient failures; None once attempts run out."""
        client = self._http_client or httpx.AsyncClient()
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._settings.max_attempts),
                wait=self._wait,
                retry=retry_if_exception_type(_RETRYABLE),
                reraise=True,
            ):
                with attempt:
                    rates = await self._fetch_once(client)
            logger.info("exchange_rates_fetched", rates=rates)
            return rates
        except (httpx.HTTPError, RateProviderError, ValueError) as e:
            logger.warning("exchange_rates_unavailable", error=str(e))
            return None
        finally:
            if self._http_client is None:
                await client.aclose()


class ExchangeRateService:
    """
    Session cache in front of a rate provider.

    The provider is asked once; later calls reuse the built rate map.
    An unavailable provider yields a map holding only the base currency,
    and that result is cached too (no polling, no background refresh).
    """

    def __init__(self, provider: Optional[ExchangeRateProviderInterface] = None):
        self._provider = provider or FrankfurterRateProvider()
        self._rates: Optional[CurrencyRateMap] = None
        self._available = False

    @property
    def is_loaded(self) -> bool:
        return self._rates is not None

    @property
    def is_available(self) -> bool:
        """True once a fetch actually returned rates."""
        return self._available

    async def get_rates_map(self) -> CurrencyRateMap:
        if self._rates is None:
            payload = await self._provider.get_latest_rates()
            self._available = payload is not None
            self._rates = build_rates_map(payload)
        return dict(self._rates)

    def clear(self) -> None:
        """Forget the cached rates; the next call fetches again."""
        self._rates = None
        self._available = False
