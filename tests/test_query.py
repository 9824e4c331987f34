"""
Pytest tests for the transactions page query.
"""

from __future__ import annotations

import pytest

from hodlertrack_crawler.subgraph import PAGE_SIZE, transactions_query


def test_cold_start_has_no_lower_bound():
    q = transactions_query("")
    assert "where" not in q
    assert "timestamp_gt" not in q
    assert f"first: {PAGE_SIZE}" in q
    assert "orderBy: timestamp" in q
    assert "orderDirection: asc" in q


def test_seeded_cursor_is_the_exclusive_lower_bound():
    q = transactions_query("1700000123")
    assert 'where: { timestamp_gt: "1700000123" }' in q
    assert q.count("timestamp_gt") == 1


def test_query_selects_transaction_fields():
    q = transactions_query("")
    for name in ("id", "hash", "from", "to", "value", "timestamp"):
        assert f"    {name}\n" in q


def test_cursor_is_escaped_and_page_size_respected():
    q = transactions_query('12"3', first=20)
    assert 'timestamp_gt: "12\\"3"' in q
    assert "first: 20" in q
    with pytest.raises(ValueError):
        transactions_query("", first=0)
