"""
Environment variable loading for the crawler.

- CRAWLER_ID (required), CRAWLER_NAME, CRAWLER_SYMBOL, CRAWLER_CHAIN, CRAWLER_IMAGE
- WEBSOCKET_URL: relay base URL; the crawler connects to {WEBSOCKET_URL}/{CRAWLER_ID}
- SUBGRAPH_URL, or SUBGRAPH_END_POINT + SUBGRAPH_ID; SUBGRAPH_TOKEN (Bearer)
- LAST_TIMESTAMP: seed cursor
- CRAWL_INTERVAL_SECONDS, PAGE_SIZE, CONNECT_TIMEOUT_SECONDS, RECONNECT_BASE_SECONDS,
  RECONNECT_MAX_SECONDS, STALE_TIMEOUT_SECONDS (0 disables), STATUS_INTERVAL_SECONDS
- REQUIRE_DELIVERY, CURSOR_FILE
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from hodlertrack_crawler.config.settings import (
    DEFAULT_CONNECT_TIMEOUT_SEC,
    DEFAULT_PAGE_SIZE,
    DEFAULT_POLL_INTERVAL_SEC,
    DEFAULT_RECONNECT_BASE_SEC,
    DEFAULT_RECONNECT_MAX_SEC,
    DEFAULT_STALE_TIMEOUT_SEC,
    DEFAULT_STATUS_INTERVAL_SEC,
    CrawlerSettings,
)
from hodlertrack_crawler.core.exceptions import ConfigurationError

# Project root: config is hodlertrack_crawler/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_WEBSOCKET_URL = "ws://localhost:8080/ws/crawler"
DEFAULT_SUBGRAPH_END_POINT = "https://api.studio.thegraph.com/query"


def load_crawler_env(env_path: Path | None = None) -> None:
    """Load .env from project root. Existing environment variables win."""
    from dotenv import load_dotenv

    load_dotenv(env_path or _ENV_PATH, override=False)


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


def _env_float(name: str, default: float) -> float:
    raw = _env(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def _env_bool(name: str, default: bool = False) -> bool:
    raw = _env(name).lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean (true/false), got {raw!r}")


def get_subgraph_url() -> str:
    """
    Resolve the subgraph endpoint.
    Order: SUBGRAPH_URL > SUBGRAPH_END_POINT/SUBGRAPH_ID.
    """
    url = _env("SUBGRAPH_URL")
    if url:
        return url
    subgraph_id = _env("SUBGRAPH_ID")
    if not subgraph_id:
        return ""
    end_point = _env("SUBGRAPH_END_POINT", DEFAULT_SUBGRAPH_END_POINT).rstrip("/")
    return f"{end_point}/{subgraph_id}"


def get_relay_url(crawler_id: str) -> str:
    """Relay URL is the WEBSOCKET_URL base suffixed with the crawler id."""
    base = _env("WEBSOCKET_URL", DEFAULT_WEBSOCKET_URL).rstrip("/")
    return f"{base}/{crawler_id}"


def load_settings_from_env(*, load_dotenv_file: bool = True) -> CrawlerSettings:
    """
    Build CrawlerSettings from environment with defaults.

    Raises ConfigurationError when CRAWLER_ID or the subgraph endpoint is missing
    or a numeric variable cannot be parsed.
    """
    if load_dotenv_file:
        load_crawler_env()

    crawler_id = _env("CRAWLER_ID")
    if not crawler_id:
        raise ConfigurationError("CRAWLER_ID is required but not provided")

    stale = _env_float("STALE_TIMEOUT_SECONDS", DEFAULT_STALE_TIMEOUT_SEC)
    cursor_file = _env("CURSOR_FILE")
    return CrawlerSettings(
        crawler_id=crawler_id,
        crawler_name=_env("CRAWLER_NAME", crawler_id),
        crawler_symbol=_env("CRAWLER_SYMBOL"),
        chain=_env("CRAWLER_CHAIN"),
        image=_env("CRAWLER_IMAGE"),
        relay_url=get_relay_url(crawler_id),
        subgraph_url=get_subgraph_url(),
        subgraph_token=_env("SUBGRAPH_TOKEN") or None,
        last_timestamp=_env("LAST_TIMESTAMP"),
        poll_interval_sec=_env_float("CRAWL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SEC),
        page_size=_env_int("PAGE_SIZE", DEFAULT_PAGE_SIZE),
        connect_timeout_sec=_env_float("CONNECT_TIMEOUT_SECONDS", DEFAULT_CONNECT_TIMEOUT_SEC),
        reconnect_base_sec=_env_float("RECONNECT_BASE_SECONDS", DEFAULT_RECONNECT_BASE_SEC),
        reconnect_max_sec=_env_float("RECONNECT_MAX_SECONDS", DEFAULT_RECONNECT_MAX_SEC),
        stale_timeout_sec=stale if stale > 0 else None,
        status_interval_sec=_env_float("STATUS_INTERVAL_SECONDS", DEFAULT_STATUS_INTERVAL_SEC),
        require_delivery=_env_bool("REQUIRE_DELIVERY"),
        cursor_file=Path(cursor_file) if cursor_file else None,
    )
