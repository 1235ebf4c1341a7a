from .base import RateProvider
from .coinmarketcap import CoinMarketCapProvider
from .freecurrency import FreeCurrencyProvider

__all__ = [
    "RateProvider",
    "CoinMarketCapProvider",
    "FreeCurrencyProvider",
]
