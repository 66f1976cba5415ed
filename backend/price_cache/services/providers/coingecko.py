"""CoinGecko metadata provider: stable coin IDs, logos and ranks."""

import logging
from typing import Any, Dict, List

from ..errors import MalformedResponse
from .base import BaseProvider

logger = logging.getLogger(__name__)

COINGECKO_BASE_URL = "https://api.coingecko.com/api/v3"
MAX_PER_PAGE = 250


class CoinGeckoProvider(BaseProvider):
    """Reads ranked listings from ``/coins/markets``."""

    name = "CoinGecko"

    def __init__(self, base_url: str = COINGECKO_BASE_URL, **kwargs):
        super().__init__(base_url, **kwargs)

    async def fetch_markets(self, page: int = 1, per_page: int = MAX_PER_PAGE) -> List[Dict[str, Any]]:
        """Fetch one page of coins ordered by market cap."""
        params = {
            "vs_currency": "usd",
            "order": "market_cap_desc",
            "per_page": str(min(per_page, MAX_PER_PAGE)),
            "page": str(page),
            "sparkline": "false",
        }
        data = await self._get_json(f"{self.base_url}/coins/markets", params=params)
        if not isinstance(data, list):
            raise MalformedResponse(f"Invalid response from {self.name} API", provider=self.name)

        logger.info(f"[{self.name}] Fetched {len(data)} coins from page {page}")
        return [row for row in data if isinstance(row, dict)]

    async def fetch_top(self, pages: int = 2, per_page: int = MAX_PER_PAGE) -> List[Dict[str, Any]]:
        """Fetch ``pages`` pages sequentially; any page failure aborts the whole fetch."""
        coins: List[Dict[str, Any]] = []
        for page in range(1, pages + 1):
            coins.extend(await self.fetch_markets(page, per_page))
        return coins
