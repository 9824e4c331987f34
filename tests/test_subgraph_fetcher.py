"""
Pytest tests for SubgraphPageFetcher.

The subgraph is replaced with httpx.MockTransport so tests run without network.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from hodlertrack_crawler.core.exceptions import FetchError
from hodlertrack_crawler.subgraph import SubgraphPageFetcher, TransactionRecord

SUBGRAPH_URL = "https://api.studio.thegraph.com/query/1/pepe-txs/version/latest"

TX_ITEMS = [
    {"id": "0xa-1", "hash": "0xa", "from": "0x1", "to": "0x2", "value": "5", "timestamp": "1700000001"},
    {"id": "0xb-1", "hash": "0xb", "from": "0x3", "to": None, "value": "340282366920938463463374607431768211457", "timestamp": "1700000002"},
]


def _fetcher(handler, **kwargs) -> SubgraphPageFetcher:
    return SubgraphPageFetcher(SUBGRAPH_URL, transport=httpx.MockTransport(handler), **kwargs)


def test_fetch_returns_records_and_sends_bearer_token():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        seen["query"] = json.loads(request.content)["query"]
        return httpx.Response(200, json={"data": {"transactions": TX_ITEMS}})

    records = asyncio.run(_fetcher(handler, token="secret").fetch("1700000000"))
    assert seen["auth"] == "Bearer secret"
    assert 'timestamp_gt: "1700000000"' in seen["query"]
    assert [r.timestamp for r in records] == ["1700000001", "1700000002"]
    assert records[1].recipient is None
    assert records[1].value == "340282366920938463463374607431768211457"
    assert isinstance(records[0], TransactionRecord)


def test_cold_start_query_and_no_token_header():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        seen["query"] = json.loads(request.content)["query"]
        return httpx.Response(200, json={"data": {"transactions": []}})

    assert asyncio.run(_fetcher(handler).fetch("")) == []
    assert seen["auth"] is None
    assert "timestamp_gt" not in seen["query"]


def test_http_error_is_fetch_error():
    fetcher = _fetcher(lambda request: httpx.Response(502, text="bad gateway"))
    with pytest.raises(FetchError) as exc:
        asyncio.run(fetcher.fetch(""))
    assert exc.value.retryable is True

    fetcher = _fetcher(lambda request: httpx.Response(400, text="bad request"))
    with pytest.raises(FetchError) as exc:
        asyncio.run(fetcher.fetch(""))
    assert exc.value.retryable is False


def test_transport_error_is_fetch_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(FetchError, match="request failed"):
        asyncio.run(_fetcher(handler).fetch(""))


def test_graphql_errors_and_bad_shapes_are_fetch_errors():
    bodies = [
        {"errors": [{"message": "Unknown field"}]},
        {"data": {}},
        {"data": {"transactions": [{"id": "x", "hash": "0x", "from": "0x1", "value": "1"}]}},
        ["not", "an", "object"],
    ]
    for body in bodies:
        fetcher = _fetcher(lambda request, body=body: httpx.Response(200, json=body))
        with pytest.raises(FetchError):
            asyncio.run(fetcher.fetch(""))

    fetcher = _fetcher(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(FetchError, match="invalid JSON"):
        asyncio.run(fetcher.fetch(""))


def test_shared_client_is_used():
    async def scenario():
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"data": {"transactions": TX_ITEMS[:1]}})
        )
        async with httpx.AsyncClient(transport=transport) as client:
            fetcher = SubgraphPageFetcher(SUBGRAPH_URL, client=client, page_size=1)
            records = await fetcher.fetch("")
            assert "first: 1" in fetcher.build_query("")
        return records

    assert len(asyncio.run(scenario())) == 1
