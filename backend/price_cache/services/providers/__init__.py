# Upstream market-data providers

from .base import BaseProvider
from .coingecko import CoinGeckoProvider
from .cryptorates import CryptoRatesProvider

__all__ = ["BaseProvider", "CoinGeckoProvider", "CryptoRatesProvider"]
