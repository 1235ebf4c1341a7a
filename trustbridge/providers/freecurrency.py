import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx

from ..errors import RateProviderError
from .base import RateProvider

logger = logging.getLogger(__name__)


@dataclass
class _QuoteTable:
    rates: Dict[str, float]
    fetched_at: float


class FreeCurrencyProvider(RateProvider):
    """FreeCurrencyAPI provider for fiat-to-fiat rates.

    Quotes are fetched per base currency and cached as whole tables. When the
    table for the source currency lacks the target, the rate is triangulated
    through a USD-based table.
    """

    name = "freecurrencyapi"
    timeout_s = 10
    triangulation_base = "USD"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://api.freecurrencyapi.com/v1",
        cache_ttl_seconds: float = 300,
        timeout_s: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        super().__init__(http_client=http_client)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.cache_ttl_seconds = cache_ttl_seconds
        if timeout_s is not None:
            self.timeout_s = timeout_s
        self._clock = clock or time.monotonic
        self._tables: Dict[str, _QuoteTable] = {}

        if not api_key:
            logger.warning("FREECURRENCY_API_KEY not configured; fiat rate lookups will fail")

    def _build_headers(self) -> Dict[str, str]:
        return {"apikey": self.api_key}

    async def ready(self) -> bool:
        return bool(self.api_key)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "API key not configured"}

        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self.base_url}/status",
                    headers=self._build_headers(),
                    timeout=self.timeout_s,
                )
                response.raise_for_status()
                return {"status": "healthy", "latency_ms": int(response.elapsed.total_seconds() * 1000)}
        except Exception as e:
            return {"status": "error", "reason": str(e)}

    async def fetch_latest(self, base: str = "USD") -> Dict[str, float]:
        """Return the full quote table for ``base``, cached for the TTL."""
        base = base.upper()
        cached = self._tables.get(base)
        if cached and (self._clock() - cached.fetched_at) < self.cache_ttl_seconds:
            logger.debug("Using cached fiat table for base=%s", base)
            return cached.rates

        if not self.api_key:
            raise RateProviderError(self.name, "FREECURRENCY_API_KEY not configured")

        logger.info("Fetching fiat rates for base=%s", base)
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self.base_url}/latest",
                    headers=self._build_headers(),
                    params={"base_currency": base},
                    timeout=self.timeout_s,
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            raise RateProviderError(self.name, f"request failed for base={base}: {exc}") from exc
        except ValueError as exc:
            raise RateProviderError(self.name, f"invalid JSON for base={base}") from exc

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            logger.error("Unexpected fiat payload for base=%s: %r", base, payload)
            raise RateProviderError(self.name, "unexpected payload")

        rates = {str(code).upper(): float(value) for code, value in data.items() if isinstance(value, (int, float))}
        self._tables[base] = _QuoteTable(rates=rates, fetched_at=self._clock())
        return rates

    async def get_rate(self, from_currency: str, to_currency: str) -> float:
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()
        if from_currency == to_currency:
            return 1.0

        rates = await self.fetch_latest(from_currency)
        rate = rates.get(to_currency)
        if rate is not None:
            return rate

        logger.warning(
            "Rate %s->%s not in %s table; triangulating via %s",
            from_currency,
            to_currency,
            from_currency,
            self.triangulation_base,
        )
        usd_rates = await self.fetch_latest(self.triangulation_base)
        from_rate = 1.0 if from_currency == self.triangulation_base else usd_rates.get(from_currency)
        to_rate = 1.0 if to_currency == self.triangulation_base else usd_rates.get(to_currency)
        if not from_rate or to_rate is None:
            raise RateProviderError(
                self.name,
                f"no {self.triangulation_base} quote for {from_currency} or {to_currency}",
            )

        triangulated = (1 / from_rate) * to_rate
        if not math.isfinite(triangulated):
            raise RateProviderError(self.name, f"non-finite rate for {from_currency}->{to_currency}")
        return triangulated

    def clear_cache(self) -> None:
        self._tables.clear()

    def cache_stats(self) -> Dict[str, Any]:
        return {"size": len(self._tables), "keys": list(self._tables)}
