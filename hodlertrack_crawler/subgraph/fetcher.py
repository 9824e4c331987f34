"""
Subgraph page fetcher: one GraphQL POST per crawl cycle.

Responsibilities:
- Render the transactions query for the current cursor.
- POST it to the subgraph endpoint with the Bearer token when configured.
- Normalize the page into TransactionRecord objects, oldest first.
- Turn every transport, HTTP, GraphQL or shape problem into FetchError so the
  crawler can leave its cursor untouched and retry on the next tick.
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from hodlertrack_crawler.core.exceptions import FetchError
from hodlertrack_crawler.crawler_logging import get_logger
from hodlertrack_crawler.subgraph.models import TransactionRecord
from hodlertrack_crawler.subgraph.query import PAGE_SIZE, transactions_query

logger = get_logger(__name__)

DEFAULT_REQUEST_TIMEOUT_SEC = 15.0


class PageFetcher(Protocol):
    """Returns records strictly after cursor in ascending timestamp order; empty cursor = from the start."""

    async def fetch(self, cursor: str) -> list[TransactionRecord]:
        ...


class SubgraphPageFetcher:
    """
    PageFetcher backed by a The Graph subgraph.

    Pass `client` to reuse a long-lived httpx.AsyncClient (caller owns it);
    otherwise a short-lived client is opened per fetch. `transport` is handed
    to those short-lived clients (e.g. httpx.MockTransport in tests).
    """

    def __init__(
        self,
        url: str,
        *,
        token: str | None = None,
        page_size: int = PAGE_SIZE,
        request_timeout_sec: float = DEFAULT_REQUEST_TIMEOUT_SEC,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not url.strip():
            raise ValueError("url must be non-empty")
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._url = url.strip()
        self._token = token
        self._page_size = page_size
        self._timeout = request_timeout_sec
        self._client = client
        self._transport = transport

    @property
    def url(self) -> str:
        return self._url

    @property
    def page_size(self) -> int:
        return self._page_size

    def build_query(self, cursor: str) -> str:
        return transactions_query(cursor, first=self._page_size)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def fetch(self, cursor: str) -> list[TransactionRecord]:
        """Fetch the page after cursor; raise FetchError on any failure."""
        body = {"query": self.build_query(cursor)}
        if self._client is not None:
            data = await self._post(self._client, body)
        else:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            ) as client:
                data = await self._post(client, body)
        return self._parse_page(data)

    async def _post(self, client: httpx.AsyncClient, body: dict[str, Any]) -> dict[str, Any]:
        try:
            resp = await client.post(self._url, json=body, headers=self._headers())
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            # 4xx other than 429 means the request itself is wrong
            retryable = status >= 500 or status == 429
            raise FetchError(f"subgraph HTTP {status}", retryable=retryable) from e
        except httpx.HTTPError as e:
            raise FetchError(f"subgraph request failed: {e}") from e
        except ValueError as e:
            raise FetchError(f"subgraph returned invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise FetchError("subgraph response is not an object", retryable=False)
        return data

    def _parse_page(self, data: dict[str, Any]) -> list[TransactionRecord]:
        errors = data.get("errors")
        if errors:
            first = errors[0] if isinstance(errors, list) and errors else errors
            message = first.get("message", first) if isinstance(first, dict) else first
            raise FetchError(f"subgraph query error: {message}", retryable=False)
        payload = data.get("data") or {}
        items = payload.get("transactions") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise FetchError("subgraph response has no transactions list", retryable=False)
        try:
            records = [TransactionRecord.from_subgraph_item(item) for item in items]
        except ValueError as e:
            raise FetchError(f"malformed transaction in page: {e}", retryable=False) from e
        logger.debug(
            "subgraph_page_fetched",
            url=self._url,
            count=len(records),
            last_timestamp=records[-1].timestamp if records else None,
        )
        return records
