# Subgraph access: transactions query, page fetcher, record model.

from hodlertrack_crawler.subgraph.fetcher import PageFetcher, SubgraphPageFetcher
from hodlertrack_crawler.subgraph.models import TransactionRecord
from hodlertrack_crawler.subgraph.query import PAGE_SIZE, transactions_query

__all__ = [
    "PAGE_SIZE",
    "PageFetcher",
    "SubgraphPageFetcher",
    "TransactionRecord",
    "transactions_query",
]
