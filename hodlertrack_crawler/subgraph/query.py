"""
GraphQL query for one page of transactions after a cursor.
"""

from __future__ import annotations

import json

PAGE_SIZE = 5

TRANSACTION_FIELDS = ("id", "hash", "from", "to", "value", "timestamp")


def transactions_query(last_timestamp: str, first: int = PAGE_SIZE) -> str:
    """
    Render the transactions page query.

    Records strictly after last_timestamp (timestamp_gt), oldest first, at most
    `first` items. An empty last_timestamp drops the where clause so the page
    starts at the beginning of the data set.
    """
    if first < 1:
        raise ValueError("first must be at least 1")
    args = [f"first: {int(first)}", "orderBy: timestamp", "orderDirection: asc"]
    if last_timestamp:
        # JSON string escaping is valid GraphQL string literal escaping
        args.append(f"where: {{ timestamp_gt: {json.dumps(last_timestamp)} }}")
    fields = "\n    ".join(TRANSACTION_FIELDS)
    return (
        "{\n"
        f"  transactions({', '.join(args)}) {{\n"
        f"    {fields}\n"
        "  }\n"
        "}\n"
    )
