import logging
from typing import Any, Dict, Optional

import httpx

from ..errors import RateProviderError
from .base import RateProvider

logger = logging.getLogger(__name__)


class CoinMarketCapProvider(RateProvider):
    """CoinMarketCap quotes provider for token prices.

    Only the token can be the base of a quote; callers needing the reverse
    direction invert the forward quote.
    """

    name = "coinmarketcap"
    timeout_s = 15

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = "https://pro-api.coinmarketcap.com/v1",
        timeout_s: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(http_client=http_client)
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        if timeout_s is not None:
            self.timeout_s = timeout_s

        if api_key:
            logger.info("CoinMarketCap API key configured (length: %d)", len(api_key))
        else:
            logger.warning("CoinMarketCap API key not configured; fallback rates will be used")

    def _build_headers(self) -> Dict[str, str]:
        return {
            "X-CMC_PRO_API_KEY": self.api_key,
            "Accept": "application/json",
        }

    async def ready(self) -> bool:
        return bool(self.api_key)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "API key not configured"}
        result = await self.test_connection()
        return {"status": "healthy" if result["success"] else "error", "reason": result["message"]}

    async def test_connection(self) -> Dict[str, Any]:
        """Probe the listings endpoint and report whether the key works."""
        if not self.api_key:
            return {"success": False, "message": "API key not configured in environment"}

        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self.base_url}/cryptocurrency/listings/latest",
                    headers=self._build_headers(),
                    params={"limit": 1},
                    timeout=self.timeout_s,
                )
            if response.status_code >= 400:
                logger.error("CoinMarketCap test failed: %s %s", response.status_code, response.text)
                return {
                    "success": False,
                    "message": f"HTTP {response.status_code}: {response.reason_phrase}",
                }
            status = (response.json() or {}).get("status") or {}
            if status.get("error_code") not in (0, None):
                return {"success": False, "message": status.get("error_message") or "Unknown API error"}
            return {"success": True, "message": "API connection successful"}
        except Exception as e:
            logger.error("CoinMarketCap connection test failed: %s", e)
            return {"success": False, "message": f"Network error: {e}"}

    async def get_rate(self, from_currency: str, to_currency: str) -> float:
        from_symbol = from_currency.upper()
        to_symbol = to_currency.upper()
        if not self.api_key:
            raise RateProviderError(self.name, "CoinMarketCap API key not configured")

        logger.info("Fetching %s -> %s from CoinMarketCap", from_symbol, to_symbol)
        try:
            async with self._client() as client:
                response = await client.get(
                    f"{self.base_url}/cryptocurrency/quotes/latest",
                    headers=self._build_headers(),
                    params={"symbol": from_symbol, "convert": to_symbol},
                    timeout=self.timeout_s,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            raise RateProviderError(
                self.name,
                f"API error: {exc.response.status_code} {exc.response.text}",
            ) from exc
        except httpx.HTTPError as exc:
            raise RateProviderError(self.name, f"request failed: {exc}") from exc
        except ValueError as exc:
            raise RateProviderError(self.name, "invalid JSON response") from exc

        status = data.get("status") or {}
        if status.get("error_code") not in (0, None):
            raise RateProviderError(self.name, f"API error: {status.get('error_message')}")

        quote = ((data.get("data") or {}).get(from_symbol) or {}).get("quote") or {}
        price = (quote.get(to_symbol) or {}).get("price")
        if price is None:
            logger.error(
                "Price data not found for %s -> %s; quote currencies: %s",
                from_symbol,
                to_symbol,
                list(quote),
            )
            raise RateProviderError(self.name, f"price data not found for {from_symbol} -> {to_symbol}")

        logger.info("%s -> %s rate: %s", from_symbol, to_symbol, price)
        return float(price)
