"""
Polling crawler package.

Holds the crawler identity and run state, the cursor-driven polling loop, the
event envelope builder, the periodic timer and the optional cursor store.
"""

from hodlertrack_crawler.crawler.crawler import EventSink, PollingCrawler
from hodlertrack_crawler.crawler.cursor_store import CursorStore
from hodlertrack_crawler.crawler.envelope import (
    TRANSACTIONS_DATA_NEW,
    EventEnvelope,
    build_envelope,
)
from hodlertrack_crawler.crawler.models import CrawlerIdentity, CrawlerRunState, CrawlerStatus
from hodlertrack_crawler.crawler.timer import PeriodicTimer

__all__ = [
    "CrawlerIdentity",
    "CrawlerRunState",
    "CrawlerStatus",
    "CursorStore",
    "EventEnvelope",
    "EventSink",
    "PeriodicTimer",
    "PollingCrawler",
    "TRANSACTIONS_DATA_NEW",
    "build_envelope",
]
