from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import httpx


class RateProvider(ABC):
    """Base exchange rate provider interface"""

    name: str
    timeout_s: float = 10

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self._http_client = http_client

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield the injected client, or a short-lived one per request."""
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self.timeout_s) as client:
            yield client

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass

    @abstractmethod
    async def get_rate(self, from_currency: str, to_currency: str) -> float:
        """Return how many ``to_currency`` one ``from_currency`` buys.

        Raises:
            RateProviderError: when no rate can be produced
        """
        pass
