"""
Application-level exceptions.

FetchError and RelayConnectionError are recovered locally (next tick, reconnect
policy); ConfigurationError is fatal at startup only.
"""

from __future__ import annotations


class CrawlerError(Exception):
    """Base class for all crawler errors."""


class ConfigurationError(CrawlerError):
    """Required settings or identity fields are missing or invalid."""


class FetchError(CrawlerError):
    """
    Upstream page fetch failed (transport, HTTP status, GraphQL error, malformed page).

    retryable is informational only: every failure is retried on the next tick.
    """

    def __init__(self, message: str, *, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class RelayConnectionError(CrawlerError, ConnectionError):
    """Relay handshake failed or did not complete within the connect timeout."""
