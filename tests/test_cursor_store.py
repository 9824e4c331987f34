"""
Pytest tests for the file-backed cursor store.
"""

from __future__ import annotations

import json

from hodlertrack_crawler.crawler import CursorStore


def test_load_missing_file_is_cold_start(tmp_path):
    assert CursorStore(tmp_path / "nope.json").load("c1") == ""


def test_save_and_load_per_crawler(tmp_path):
    path = tmp_path / "state" / "cursors.json"
    store = CursorStore(path)
    store.save("c1", "1700000001")
    store.save("c2", "1700000009")
    store.save("c1", "1700000005")
    assert store.load("c1") == "1700000005"
    assert store.load("c2") == "1700000009"
    assert json.loads(path.read_text()) == {"c1": "1700000005", "c2": "1700000009"}
    assert [p.name for p in path.parent.iterdir()] == ["cursors.json"]


def test_corrupt_file_is_treated_as_empty(tmp_path):
    path = tmp_path / "cursors.json"
    path.write_text("{not json")
    store = CursorStore(path)
    assert store.load("c1") == ""
    store.save("c1", "t1")
    assert store.load("c1") == "t1"
