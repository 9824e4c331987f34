"""
Crawler settings: one explicit object handed to constructors.

Nothing outside config.env reads process environment; the runtime builds a
CrawlerSettings once and passes plain values down to the crawler, fetcher
and relay connection.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from hodlertrack_crawler.core.exceptions import ConfigurationError

DEFAULT_POLL_INTERVAL_SEC = 5.0
DEFAULT_PAGE_SIZE = 5
DEFAULT_CONNECT_TIMEOUT_SEC = 10.0
DEFAULT_RECONNECT_BASE_SEC = 1.0
DEFAULT_RECONNECT_MAX_SEC = 30.0
DEFAULT_STALE_TIMEOUT_SEC = 60.0
DEFAULT_STATUS_INTERVAL_SEC = 10.0


@dataclass
class CrawlerSettings:
    """
    Settings for one crawler process.

    relay_url: WebSocket endpoint of the relay (already suffixed with the crawler id).
    subgraph_url: GraphQL endpoint queried for transaction pages.
    last_timestamp: Seed cursor; empty means cold start from the beginning of the data set.
    stale_timeout_sec: None disables the relay stale watchdog.
    require_delivery: Advance the cursor only when the relay accepted the event.
    cursor_file: Optional JSON file persisting the cursor across restarts.
    """

    crawler_id: str
    crawler_name: str
    crawler_symbol: str
    chain: str
    relay_url: str
    subgraph_url: str
    image: str = ""
    subgraph_token: str | None = None
    last_timestamp: str = ""
    poll_interval_sec: float = DEFAULT_POLL_INTERVAL_SEC
    page_size: int = DEFAULT_PAGE_SIZE
    connect_timeout_sec: float = DEFAULT_CONNECT_TIMEOUT_SEC
    reconnect_base_sec: float = DEFAULT_RECONNECT_BASE_SEC
    reconnect_max_sec: float = DEFAULT_RECONNECT_MAX_SEC
    stale_timeout_sec: float | None = DEFAULT_STALE_TIMEOUT_SEC
    status_interval_sec: float = DEFAULT_STATUS_INTERVAL_SEC
    require_delivery: bool = False
    cursor_file: Path | None = None

    def __post_init__(self) -> None:
        for field_name in ("crawler_id", "crawler_name", "crawler_symbol", "chain"):
            if not (getattr(self, field_name) or "").strip():
                raise ConfigurationError(f"{field_name} is required")
        if not (self.relay_url or "").strip():
            raise ConfigurationError("relay_url is required")
        if not (self.subgraph_url or "").strip():
            raise ConfigurationError("subgraph_url is required")
        if self.poll_interval_sec <= 0:
            raise ConfigurationError("poll_interval_sec must be positive")
        if self.status_interval_sec <= 0:
            raise ConfigurationError("status_interval_sec must be positive")
        if self.page_size < 1:
            raise ConfigurationError("page_size must be at least 1")
        if self.connect_timeout_sec <= 0:
            raise ConfigurationError("connect_timeout_sec must be positive")
        if self.reconnect_base_sec <= 0 or self.reconnect_max_sec < self.reconnect_base_sec:
            raise ConfigurationError("reconnect_base_sec must be positive and <= reconnect_max_sec")
        if self.stale_timeout_sec is not None and self.stale_timeout_sec <= 0:
            self.stale_timeout_sec = None
        self.last_timestamp = (self.last_timestamp or "").strip()
        if self.cursor_file is not None:
            self.cursor_file = Path(self.cursor_file)
