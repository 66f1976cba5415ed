"""Error taxonomy for the price cache jobs."""

from typing import Optional


class PriceCacheError(Exception):
    """Base class for price cache failures."""


class ProviderError(PriceCacheError):
    """Upstream fetch failed (HTTP error, timeout, connection failure)."""

    def __init__(self, message: str, provider: str = "", status: Optional[int] = None):
        self.provider = provider
        self.status = status
        super().__init__(message)


class RateLimitError(ProviderError):
    """Upstream answered with HTTP 429."""


class MalformedResponse(ProviderError):
    """Upstream payload is not in any recognized shape."""


class StorageUnavailable(PriceCacheError):
    """A storage tier required by the operation is not configured."""


class RegistryLoadError(PriceCacheError):
    """The authoritative registry exists but could not be read."""
