"""ScreenScraper API access and the metadata resolution cascade."""

from .error_handler import APIError, FatalAPIError, RetryableAPIError, SkippableAPIError
from .client import ScreenScraperClient
from .resolver import MetadataResolver, MatchResult, is_arcade_platform

__all__ = [
    "APIError",
    "FatalAPIError",
    "RetryableAPIError",
    "SkippableAPIError",
    "ScreenScraperClient",
    "MetadataResolver",
    "MatchResult",
    "is_arcade_platform",
]
