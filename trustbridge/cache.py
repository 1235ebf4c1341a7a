import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple


logger = logging.getLogger(__name__)

PairKey = Tuple[str, str]


@dataclass
class RateCacheEntry:
    rate: float
    fetched_at: float

    def age(self, now: float) -> float:
        return now - self.fetched_at


def pair_key(from_currency: str, to_currency: str) -> PairKey:
    return (from_currency.strip().upper(), to_currency.strip().upper())


class RateCache:
    """In-memory TTL cache keyed by ordered currency pair.

    Expired entries are not served as fresh, but stay available through
    ``get_stale`` until purged so a failed refresh can still fall back to
    the last known rate.
    """

    def __init__(self, ttl_seconds: float = 300, clock: Optional[Callable[[], float]] = None):
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: Dict[PairKey, RateCacheEntry] = {}

    def now(self) -> float:
        return self._clock()

    def is_fresh(self, entry: RateCacheEntry) -> bool:
        return entry.age(self.now()) < self.ttl_seconds

    def get_fresh(self, from_currency: str, to_currency: str) -> Optional[RateCacheEntry]:
        entry = self._entries.get(pair_key(from_currency, to_currency))
        if entry is None or not self.is_fresh(entry):
            return None
        return entry

    def get_stale(self, from_currency: str, to_currency: str) -> Optional[RateCacheEntry]:
        return self._entries.get(pair_key(from_currency, to_currency))

    def set(self, from_currency: str, to_currency: str, rate: float) -> RateCacheEntry:
        entry = RateCacheEntry(rate=rate, fetched_at=self.now())
        self._entries[pair_key(from_currency, to_currency)] = entry
        return entry

    def invalidate(self, from_currency: str, to_currency: str) -> bool:
        return self._entries.pop(pair_key(from_currency, to_currency), None) is not None

    def purge_expired(self, max_age: Optional[float] = None) -> List[PairKey]:
        """Drop entries older than ``max_age`` (defaults to the TTL)."""
        limit = self.ttl_seconds if max_age is None else max_age
        now = self.now()
        expired = [key for key, entry in self._entries.items() if entry.age(now) >= limit]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info(
                "Purged %d expired rate(s): %s",
                len(expired),
                ", ".join(f"{a}-{b}" for a, b in expired),
            )
        return expired

    def clear(self) -> None:
        self._entries.clear()
        logger.info("Rate cache cleared")

    def stats(self) -> Dict[str, object]:
        return {
            "size": len(self._entries),
            "keys": [f"{a}-{b}" for a, b in self._entries],
        }

    def __len__(self) -> int:
        return len(self._entries)
