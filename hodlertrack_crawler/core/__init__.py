"""
Core cross-cutting pieces shared by the fetcher, crawler, relay and runtime.
"""

from hodlertrack_crawler.core.exceptions import (
    ConfigurationError,
    CrawlerError,
    FetchError,
    RelayConnectionError,
)

__all__ = [
    "ConfigurationError",
    "CrawlerError",
    "FetchError",
    "RelayConnectionError",
]
