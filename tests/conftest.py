"""
Pytest fixtures for crawler tests: fake page fetcher, fake relay sink, fake WebSocket.

Async code is driven with asyncio.run() from plain test functions.
"""

from __future__ import annotations

import asyncio
import time

import pytest
from websockets.exceptions import ConnectionClosed

from hodlertrack_crawler.core.exceptions import FetchError
from hodlertrack_crawler.crawler.models import CrawlerIdentity
from hodlertrack_crawler.subgraph.models import TransactionRecord

_CLOSE = object()


def make_record(ts: str, n: int | None = None) -> TransactionRecord:
    n = n if n is not None else int("".join(c for c in ts if c.isdigit()) or 0)
    return TransactionRecord(
        id=f"0xtx{n}",
        hash=f"0xhash{n}",
        sender="0xsender",
        recipient="0xrecipient" if n % 2 else None,
        value="1000000000000000000000001",
        timestamp=ts,
    )


async def wait_until(predicate, timeout: float = 2.0, step: float = 0.005) -> bool:
    """Poll predicate on the running loop until true or timeout."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        await asyncio.sleep(step)
    return predicate()


class FakeFetcher:
    """Returns queued pages in order, then empty pages. fail_next makes the next N fetches raise."""

    url = "https://subgraph.test/query"

    def __init__(self, pages: list[list[TransactionRecord]] | None = None) -> None:
        self.pages = list(pages or [])
        self.cursors: list[str] = []
        self.fail_next = 0
        self.gate: asyncio.Event | None = None

    async def fetch(self, cursor: str) -> list[TransactionRecord]:
        self.cursors.append(cursor)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_next:
            self.fail_next -= 1
            raise FetchError("subgraph request failed: boom")
        if self.pages:
            return self.pages.pop(0)
        return []


class FakeSink:
    """Relay connection stand-in recording what the crawler sends."""

    def __init__(self, connected: bool = True, accept: bool = True) -> None:
        self.connected = connected
        self.accept = accept
        self.sent: list[tuple[str, dict]] = []

    def is_connected(self) -> bool:
        return self.connected

    async def send(self, event_type: str, data=None) -> bool:
        if not self.connected:
            return False
        if self.accept:
            self.sent.append((event_type, data))
        return self.accept


class FakeWebSocket:
    """Minimal stand-in for a websockets client connection."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def send(self, data: str) -> None:
        if self.closed:
            raise ConnectionClosed(None, None)
        self.sent.append(data)

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._inbox.put_nowait(_CLOSE)

    def feed(self, raw) -> None:
        self._inbox.put_nowait(raw)

    def remote_close(self) -> None:
        self._inbox.put_nowait(_CLOSE)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._inbox.get()
        if item is _CLOSE:
            self.closed = True
            raise StopAsyncIteration
        return item


class FakeConnector:
    """
    websockets.connect replacement: fails `fail` times with `error`, or hangs
    forever when hang=True. `delays` holds per-call handshake latencies.
    """

    def __init__(
        self,
        *,
        fail: int = 0,
        hang: bool = False,
        error: Exception | None = None,
        delays: list[float] | None = None,
    ) -> None:
        self.fail = fail
        self.hang = hang
        self.error = error or OSError("connection refused")
        self.delays = list(delays or [])
        self.calls = 0
        self.sockets: list[FakeWebSocket] = []
        self.kwargs: dict = {}

    async def __call__(self, url: str, **kwargs) -> FakeWebSocket:
        self.calls += 1
        self.url = url
        self.kwargs = kwargs
        if self.hang:
            await asyncio.sleep(3600)
        if self.delays:
            await asyncio.sleep(self.delays.pop(0))
        if self.fail > 0:
            self.fail -= 1
            raise self.error
        ws = FakeWebSocket()
        self.sockets.append(ws)
        return ws


@pytest.fixture
def identity() -> CrawlerIdentity:
    return CrawlerIdentity(id="c1", name="Pepe", symbol="PEPE", chain="eth", image="pepe.png")
