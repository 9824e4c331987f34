"""
Polling crawler: subgraph page → cursor advance → relay event, once per tick.

Each tick runs at most one crawl cycle; ticks that land while a cycle is still
in flight are dropped. The cursor only moves after a non-empty page was fetched
and handed to the relay connection. By default it moves whether or not the
relay accepted the event (at-least-once, consumers dedupe by transaction id);
with require_delivery=True it moves only on accepted sends so a page dropped
while disconnected is fetched again on the next tick.
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

from hodlertrack_crawler.core.exceptions import FetchError
from hodlertrack_crawler.crawler.cursor_store import CursorStore
from hodlertrack_crawler.crawler.envelope import EventEnvelope, build_envelope
from hodlertrack_crawler.crawler.models import CrawlerIdentity, CrawlerRunState, CrawlerStatus
from hodlertrack_crawler.crawler.timer import PeriodicTimer
from hodlertrack_crawler.crawler_logging import bind_crawler
from hodlertrack_crawler.subgraph.fetcher import PageFetcher

DEFAULT_CRAWL_INTERVAL_SEC = 5.0

_ACTIVE_STATUSES = (CrawlerStatus.RUNNING, CrawlerStatus.ERROR)


class EventSink(Protocol):
    """What the crawler needs from the relay connection."""

    def is_connected(self) -> bool:
        ...

    async def send(self, event_type: str, data: Any = None) -> bool:
        ...


class PollingCrawler:
    def __init__(
        self,
        connection: EventSink,
        fetcher: PageFetcher,
        identity: CrawlerIdentity,
        *,
        last_timestamp: str = "",
        interval_sec: float = DEFAULT_CRAWL_INTERVAL_SEC,
        require_delivery: bool = False,
        cursor_store: CursorStore | None = None,
    ) -> None:
        """
        Args:
            connection: Relay connection (is_connected / send).
            fetcher: Page fetcher returning records after a cursor, oldest first.
            identity: Crawler identity; validated on construction.
            last_timestamp: Seed cursor. Empty means cold start from the first record
                upstream; pass the last persisted cursor to resume without re-sending history.
            interval_sec: Seconds between ticks.
            require_delivery: Advance the cursor only when the relay accepted the event.
            cursor_store: Optional store that receives every cursor advance.
        """
        if interval_sec <= 0:
            raise ValueError("interval_sec must be positive")
        self._connection = connection
        self._fetcher = fetcher
        self._identity = identity
        self._cursor = (last_timestamp or "").strip()
        self._interval = interval_sec
        self._require_delivery = require_delivery
        self._cursor_store = cursor_store
        self._run = CrawlerRunState()
        self._timer: PeriodicTimer | None = None
        self._cycle_task: asyncio.Task[None] | None = None
        self._in_flight = False
        self._last_error: str | None = None
        self._pages_sent = 0
        self._transactions_sent = 0
        self._log = bind_crawler(__name__, identity.id)

    @property
    def identity(self) -> CrawlerIdentity:
        return self._identity

    @property
    def cursor(self) -> str:
        return self._cursor

    @property
    def status(self) -> CrawlerStatus:
        return self._run.status

    @property
    def interval_sec(self) -> float:
        return self._interval

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def start(self) -> None:
        """Arm the tick timer. No-op while already running. Needs a running event loop."""
        if self._run.status in _ACTIVE_STATUSES and self._timer is not None:
            self._log.debug("crawler_start_skipped", status=self._run.status.value)
            return
        self._run.transition(CrawlerStatus.RUNNING)
        self._arm_timer()
        self._log.info(
            "crawler_started",
            interval_sec=self._interval,
            cursor=self._cursor or None,
        )

    def stop(self) -> None:
        """Cancel the timer; a cycle already in flight completes and its results apply."""
        if self._run.status is CrawlerStatus.STOPPED:
            return
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._run.transition(CrawlerStatus.STOPPED)
        self._log.info("crawler_stopped", cursor=self._cursor or None, in_flight=self._in_flight)

    def set_interval(self, interval_sec: float) -> None:
        """Change the tick period; an active timer is swapped (old cancelled before new armed)."""
        if interval_sec <= 0:
            raise ValueError("interval_sec must be positive")
        self._interval = interval_sec
        if self._timer is not None and self._run.status in _ACTIVE_STATUSES:
            self._timer.cancel()
            self._timer = None
            self._arm_timer()
        self._log.info("crawler_interval_set", interval_sec=interval_sec)

    def _arm_timer(self) -> None:
        self._timer = PeriodicTimer(self._interval, self._on_tick)
        self._timer.start()

    def _on_tick(self) -> None:
        if self._run.status not in _ACTIVE_STATUSES:
            return
        if self._in_flight or (self._cycle_task is not None and not self._cycle_task.done()):
            self._log.debug("crawler_tick_skipped_busy", cursor=self._cursor or None)
            return
        self._cycle_task = asyncio.get_running_loop().create_task(self._tick_cycle())

    async def _tick_cycle(self) -> None:
        try:
            await self.crawl()
        except Exception as e:
            self._log.exception("crawler_cycle_failed", error=str(e))
            self._mark_error(e)

    async def wait_for_cycle(self) -> None:
        """Wait for the cycle started by the last tick, if any, to finish."""
        task = self._cycle_task
        if task is not None and not task.done():
            await asyncio.wait({task})

    async def crawl(self) -> int:
        """
        Run one cycle; return the number of records fetched (0 on empty page,
        fetch failure, or when another cycle is in flight).
        """
        if self._in_flight:
            self._log.debug("crawler_cycle_skipped_busy")
            return 0
        self._in_flight = True
        try:
            return await self._run_cycle()
        finally:
            self._in_flight = False

    async def _run_cycle(self) -> int:
        cursor = self._cursor
        try:
            records = await self._fetcher.fetch(cursor)
        except FetchError as e:
            self._log.warning(
                "crawler_fetch_failed",
                cursor=cursor or None,
                error=str(e),
                retryable=e.retryable,
            )
            self._mark_error(e)
            return 0
        except Exception as e:
            self._log.exception("crawler_fetch_unexpected_error", cursor=cursor or None, error=str(e))
            self._mark_error(e)
            return 0

        if self._run.status is CrawlerStatus.ERROR:
            self._run.transition(CrawlerStatus.RUNNING)
            self._log.info("crawler_recovered", cursor=cursor or None)
        self._last_error = None

        if not records:
            self._log.debug("crawler_page_empty", cursor=cursor or None)
            return 0

        next_cursor = records[-1].timestamp
        envelope = build_envelope(self._identity, self._identity.chain, records)
        if not self._require_delivery:
            self._advance(next_cursor)
        delivered = await self._deliver(envelope)
        if self._require_delivery:
            if delivered:
                self._advance(next_cursor)
            else:
                self._log.info("crawler_cursor_held", cursor=self._cursor or None, pending=next_cursor)
        return len(records)

    def _advance(self, next_cursor: str) -> None:
        previous = self._cursor
        self._cursor = next_cursor
        self._run.touch()
        self._log.info("crawler_cursor_advanced", previous=previous or None, cursor=next_cursor)
        if self._cursor_store is not None:
            try:
                self._cursor_store.save(self._identity.id, next_cursor)
            except OSError as e:
                self._log.warning("crawler_cursor_persist_failed", cursor=next_cursor, error=str(e))

    async def _deliver(self, envelope: EventEnvelope) -> bool:
        if not self._connection.is_connected():
            self._log.warning("crawler_send_skipped_not_connected", count=envelope.count)
            return False
        delivered = await self._connection.send(envelope.type, envelope.data())
        if delivered:
            self._pages_sent += 1
            self._transactions_sent += envelope.count
            self._log.info("crawler_page_sent", count=envelope.count, cursor=self._cursor or None)
        return delivered

    def _mark_error(self, error: Exception) -> None:
        self._last_error = str(error) or type(error).__name__
        if self._run.status is CrawlerStatus.STOPPED:
            self._run.touch()
            return
        self._run.transition(CrawlerStatus.ERROR)

    def stats(self) -> dict[str, Any]:
        """Snapshot for status logging; no side effects."""
        identity = self._identity
        return {
            "id": identity.id,
            "name": identity.name,
            "symbol": identity.symbol,
            "chain": identity.chain,
            "image": identity.image,
            "subgraph": getattr(self._fetcher, "url", None),
            "timestamp_gt": self._cursor,
            "status": self._run.status.value,
            "created_at": self._run.created_at.isoformat(),
            "updated_at": self._run.updated_at.isoformat(),
            "interval_sec": self._interval,
            "in_flight": self._in_flight,
            "last_error": self._last_error,
            "pages_sent": self._pages_sent,
            "transactions_sent": self._transactions_sent,
        }
