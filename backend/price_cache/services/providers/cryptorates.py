"""CryptoRates.ai price provider.

Broad coverage, no API key, no documented rate limit. Used for the
high-frequency price refresh.
"""

import logging
from typing import Any, Dict, List

from ..normalizer import extract_coin_rows
from .base import BaseProvider

logger = logging.getLogger(__name__)

CRYPTORATES_BASE_URL = "https://cryptorates.ai/v1"


class CryptoRatesProvider(BaseProvider):
    """Fetches the top-N ranked coins with prices."""

    name = "CryptoRates"

    def __init__(self, base_url: str = CRYPTORATES_BASE_URL, **kwargs):
        super().__init__(base_url, **kwargs)

    async def fetch_prices(self, limit: int = 500) -> List[Dict[str, Any]]:
        payload = await self._get_json(f"{self.base_url}/coins/{limit}")
        rows = extract_coin_rows(payload, provider=self.name)
        logger.info(f"[{self.name}] Fetched {len(rows)} coins")
        return rows
