"""Shared HTTP plumbing for upstream market-data providers."""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from ..errors import MalformedResponse, ProviderError, RateLimitError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_USER_AGENT = "Price-Cache/1.0"


class BaseProvider:
    """Base class for upstream providers.

    Each request opens its own session with a bounded total timeout. Every
    failure surfaces as a ProviderError subclass; there is no in-request retry,
    the next scheduled tick is the retry.
    """

    name = "provider"

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET ``url`` and decode the JSON body."""
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        headers = {"Accept": "application/json", "User-Agent": self.user_agent}

        logger.info(f"[{self.name}] Fetching {url} params={params or {}}")
        try:
            async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
                async with session.get(url, params=params) as resp:
                    if resp.status == 429:
                        raise RateLimitError(
                            f"{self.name} API rate limit exceeded",
                            provider=self.name,
                            status=resp.status,
                        )
                    if resp.status != 200:
                        raise ProviderError(
                            f"{self.name} API error: {resp.status} {resp.reason or ''}".rstrip(),
                            provider=self.name,
                            status=resp.status,
                        )
                    try:
                        return await resp.json(content_type=None)
                    except ValueError as e:
                        raise MalformedResponse(
                            f"{self.name} API returned invalid JSON: {e}", provider=self.name
                        ) from e
        except asyncio.TimeoutError as e:
            raise ProviderError(f"{self.name} API request timed out", provider=self.name) from e
        except aiohttp.ClientError as e:
            raise ProviderError(f"{self.name} API request failed: {e}", provider=self.name) from e
