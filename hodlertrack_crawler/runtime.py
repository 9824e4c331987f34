"""
Crawler process runtime: relay connection + subgraph fetcher + polling crawler.

Runs until SIGINT/SIGTERM. Logs connection status and crawler stats every
status_interval_sec and warns when the relay has been silent for a while.
Crawl and connection failures never end the process; only a configuration
error at startup does (exit code 1).

Usage: python -m hodlertrack_crawler.runtime
"""

from __future__ import annotations

import asyncio
import signal
import sys
import time
from typing import Any

from hodlertrack_crawler.config import CrawlerSettings, load_settings_from_env
from hodlertrack_crawler.core.exceptions import ConfigurationError, RelayConnectionError
from hodlertrack_crawler.crawler import CrawlerIdentity, CursorStore, PollingCrawler
from hodlertrack_crawler.crawler_logging import get_logger
from hodlertrack_crawler.relay import InboundMessage, RelayConfig, RelayConnection
from hodlertrack_crawler.subgraph import SubgraphPageFetcher

logger = get_logger(__name__)

SILENT_RELAY_WARN_SEC = 30.0


def build_components(
    settings: CrawlerSettings,
    *,
    connect_fn: Any = None,
) -> tuple[RelayConnection, SubgraphPageFetcher, PollingCrawler]:
    """Wire connection, fetcher and crawler from settings; seeds the cursor from the store when configured."""
    identity = CrawlerIdentity(
        id=settings.crawler_id,
        name=settings.crawler_name,
        symbol=settings.crawler_symbol,
        chain=settings.chain,
        image=settings.image,
    )

    def _on_relay_message(message: InboundMessage) -> None:
        logger.info("relay_message_received", type=message.type, crawler_id=identity.id)

    connection = RelayConnection(
        RelayConfig(
            url=settings.relay_url,
            connect_timeout_sec=settings.connect_timeout_sec,
            reconnect_base_sec=settings.reconnect_base_sec,
            reconnect_max_sec=settings.reconnect_max_sec,
            stale_timeout_sec=settings.stale_timeout_sec,
        ),
        on_message=_on_relay_message,
        connect_fn=connect_fn,
    )
    fetcher = SubgraphPageFetcher(
        settings.subgraph_url,
        token=settings.subgraph_token,
        page_size=settings.page_size,
    )
    store = CursorStore(settings.cursor_file) if settings.cursor_file else None
    seed = settings.last_timestamp
    if not seed and store is not None:
        seed = store.load(identity.id)
        if seed:
            logger.info("runtime_cursor_restored", crawler_id=identity.id, cursor=seed)
    crawler = PollingCrawler(
        connection,
        fetcher,
        identity,
        last_timestamp=seed,
        interval_sec=settings.poll_interval_sec,
        require_delivery=settings.require_delivery,
        cursor_store=store,
    )
    return connection, fetcher, crawler


def _log_status(connection: RelayConnection, crawler: PollingCrawler) -> None:
    status = connection.status()
    logger.info("runtime_status", connection=status, crawler=crawler.stats())
    if connection.is_connected():
        silent_for = time.monotonic() - connection.last_message_at
        if silent_for > SILENT_RELAY_WARN_SEC:
            logger.warning("runtime_relay_silent", silent_sec=int(silent_for))


async def run(settings: CrawlerSettings, stop_event: asyncio.Event | None = None) -> None:
    """Start everything, report status periodically, shut down cleanly when stop_event is set."""
    stop = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError, ValueError):
            # Windows / not the main thread
            pass

    connection, _, crawler = build_components(settings)
    logger.info(
        "runtime_started",
        crawler_id=settings.crawler_id,
        relay_url=settings.relay_url,
        subgraph_url=settings.subgraph_url,
        interval_sec=settings.poll_interval_sec,
    )
    try:
        await connection.connect()
    except RelayConnectionError as e:
        # reconnect is already scheduled; the crawler holds sends until it succeeds
        logger.warning("runtime_initial_connect_failed", error=str(e))
    crawler.start()

    try:
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=settings.status_interval_sec)
            except asyncio.TimeoutError:
                _log_status(connection, crawler)
    finally:
        logger.info("runtime_shutdown", crawler_id=settings.crawler_id)
        crawler.stop()
        await crawler.wait_for_cycle()
        await connection.disconnect()
        logger.info("runtime_stopped", crawler=crawler.stats())


def main() -> int:
    """CLI entrypoint: load settings from env and run until signalled."""
    try:
        settings = load_settings_from_env()
    except ConfigurationError as e:
        logger.error("runtime_config_error", error=str(e))
        return 1
    try:
        asyncio.run(run(settings))
        return 0
    except KeyboardInterrupt:
        logger.info("runtime_shutdown_signal")
        return 0
    except Exception as e:
        logger.exception("runtime_fatal", error=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
