"""
Exchange Rate Resolver

Routes currency-pair lookups to the fiat or crypto-quote provider, caches the
results and degrades to static or neutral rates when providers fail.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..cache import PairKey, RateCache, pair_key
from ..errors import RateProviderError
from ..providers.base import RateProvider


NEUTRAL_RATE = 1.0


class PairRoute(str, Enum):
    """Which provider path a currency pair is resolved through."""

    FIAT = "fiat"                        # both sides fiat, fiat provider
    CRYPTO_FORWARD = "crypto_forward"    # token -> settlement fiat, quoted directly
    CRYPTO_INVERSE = "crypto_inverse"    # settlement fiat -> token, reciprocal of forward
    DIRECT = "direct"                    # anything else, direct crypto provider query


class RateSource(str, Enum):
    SAME_CURRENCY = "same_currency"
    CACHE = "cache"
    FIAT_PROVIDER = "fiat_provider"
    CRYPTO_PROVIDER = "crypto_provider"
    CRYPTO_INVERTED = "crypto_inverted"
    DIRECT = "direct"
    STATIC_FALLBACK = "static_fallback"
    STALE_CACHE = "stale_cache"
    NEUTRAL = "neutral"


_ROUTE_SOURCES = {
    PairRoute.FIAT: RateSource.FIAT_PROVIDER,
    PairRoute.CRYPTO_FORWARD: RateSource.CRYPTO_PROVIDER,
    PairRoute.CRYPTO_INVERSE: RateSource.CRYPTO_INVERTED,
    PairRoute.DIRECT: RateSource.DIRECT,
}


@dataclass(frozen=True)
class RateResult:
    from_currency: str
    to_currency: str
    rate: float
    source: RateSource
    degraded: bool = False
    age_seconds: Optional[float] = None

    @property
    def cached(self) -> bool:
        return self.source in (RateSource.CACHE, RateSource.STALE_CACHE)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from": self.from_currency,
            "to": self.to_currency,
            "rate": self.rate,
            "source": self.source.value,
            "degraded": self.degraded,
            "cached": self.cached,
            "ageSeconds": self.age_seconds,
        }


def describe_cache_age(age_seconds: Optional[float]) -> Optional[str]:
    if age_seconds is None:
        return None
    minutes = int(age_seconds // 60)
    return "Just now" if minutes == 0 else f"{minutes} minute(s) ago"


class ExchangeRateResolver:
    """Resolve exchange rates with caching and layered fallback.

    Lookup order: same currency, fresh cache, routed provider call. When the
    provider fails the resolver returns a static fallback rate for the pair,
    then the last cached rate regardless of age, then a neutral 1.0. Every
    fallback result is flagged ``degraded``; ``resolve`` never raises.
    """

    def __init__(
        self,
        cache: RateCache,
        fiat_provider: RateProvider,
        crypto_provider: RateProvider,
        *,
        supported_fiat: Iterable[str],
        inverse_pairs: Iterable[Tuple[str, str]] = (),
        static_fallbacks: Optional[Mapping[PairKey, float]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.cache = cache
        self.fiat_provider = fiat_provider
        self.crypto_provider = crypto_provider
        self.supported_fiat = frozenset(code.upper() for code in supported_fiat)
        self.inverse_pairs = frozenset(pair_key(token, fiat) for token, fiat in inverse_pairs)
        self.static_fallbacks: Dict[PairKey, float] = {
            pair_key(a, b): float(rate) for (a, b), rate in (static_fallbacks or {}).items()
        }
        self.logger = logger or logging.getLogger(__name__)

    # ---------------------------
    # Routing
    # ---------------------------
    def classify_pair(self, from_currency: str, to_currency: str) -> PairRoute:
        key = pair_key(from_currency, to_currency)
        if key[0] in self.supported_fiat and key[1] in self.supported_fiat:
            return PairRoute.FIAT
        if key in self.inverse_pairs:
            return PairRoute.CRYPTO_FORWARD
        if (key[1], key[0]) in self.inverse_pairs:
            return PairRoute.CRYPTO_INVERSE
        return PairRoute.DIRECT

    async def _fetch(self, route: PairRoute, from_currency: str, to_currency: str) -> float:
        if route is PairRoute.FIAT:
            return await self.fiat_provider.get_rate(from_currency, to_currency)
        if route is PairRoute.CRYPTO_INVERSE:
            forward = await self.crypto_provider.get_rate(to_currency, from_currency)
            if not forward:
                raise RateProviderError(self.crypto_provider.name, f"zero quote for {to_currency}->{from_currency}")
            return 1 / forward
        return await self.crypto_provider.get_rate(from_currency, to_currency)

    # ---------------------------
    # Resolution
    # ---------------------------
    async def resolve(self, from_currency: str, to_currency: str) -> RateResult:
        from_code, to_code = pair_key(from_currency, to_currency)

        if from_code == to_code:
            return RateResult(from_code, to_code, 1.0, RateSource.SAME_CURRENCY)

        cached = self.cache.get_fresh(from_code, to_code)
        if cached is not None:
            self.logger.info("Using cached rate for %s -> %s: %s", from_code, to_code, cached.rate)
            return RateResult(
                from_code,
                to_code,
                cached.rate,
                RateSource.CACHE,
                age_seconds=cached.age(self.cache.now()),
            )

        route = self.classify_pair(from_code, to_code)
        try:
            rate = await self._fetch(route, from_code, to_code)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("Rate fetch failed for %s -> %s via %s: %s", from_code, to_code, route.value, exc)
            return self._fallback(from_code, to_code)

        self.cache.set(from_code, to_code, rate)
        self.logger.info("Fresh rate: 1 %s = %s %s (%s)", from_code, rate, to_code, route.value)
        return RateResult(from_code, to_code, rate, _ROUTE_SOURCES[route], age_seconds=0.0)

    def _fallback(self, from_code: str, to_code: str) -> RateResult:
        static_rate = self.static_fallbacks.get((from_code, to_code))
        if static_rate is not None:
            self.logger.info("Using fallback rate: 1 %s = %s %s", from_code, static_rate, to_code)
            return RateResult(from_code, to_code, static_rate, RateSource.STATIC_FALLBACK, degraded=True)

        stale = self.cache.get_stale(from_code, to_code)
        if stale is not None:
            self.logger.warning("Reusing expired cached rate for %s -> %s: %s", from_code, to_code, stale.rate)
            return RateResult(
                from_code,
                to_code,
                stale.rate,
                RateSource.STALE_CACHE,
                degraded=True,
                age_seconds=stale.age(self.cache.now()),
            )

        self.logger.warning("No fallback rate available for %s -> %s, using %s", from_code, to_code, NEUTRAL_RATE)
        return RateResult(from_code, to_code, NEUTRAL_RATE, RateSource.NEUTRAL, degraded=True)

    async def resolve_rate(self, from_currency: str, to_currency: str) -> float:
        return (await self.resolve(from_currency, to_currency)).rate

    async def convert(self, amount: float, from_currency: str, to_currency: str) -> float:
        return amount * await self.resolve_rate(from_currency, to_currency)

    # ---------------------------
    # Maintenance
    # ---------------------------
    async def current_rates(self, pairs: Sequence[Tuple[str, str]]) -> List[Dict[str, Any]]:
        """Snapshot of the given pairs for display, cache-aware."""
        snapshot = []
        for from_currency, to_currency in pairs:
            result = await self.resolve(from_currency, to_currency)
            entry = result.to_dict()
            entry["cacheAge"] = describe_cache_age(result.age_seconds) if result.cached else None
            snapshot.append(entry)
        return snapshot

    async def force_refresh(self, from_currency: str, to_currency: str) -> RateResult:
        self.cache.invalidate(from_currency, to_currency)
        self.logger.info("Force refreshing %s -> %s", *pair_key(from_currency, to_currency))
        return await self.resolve(from_currency, to_currency)

    def sweep_expired(self, max_age: Optional[float] = None) -> List[PairKey]:
        return self.cache.purge_expired(max_age)

    def clear_cache(self) -> None:
        self.cache.clear()

    def cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats()
