"""
Main entrypoint: one crawler process relaying subgraph transactions to the relay.

Env: CRAWLER_ID (required), CRAWLER_NAME, CRAWLER_SYMBOL, CRAWLER_CHAIN, WEBSOCKET_URL,
SUBGRAPH_URL or SUBGRAPH_END_POINT + SUBGRAPH_ID, SUBGRAPH_TOKEN, LAST_TIMESTAMP, etc.
See hodlertrack_crawler/config/env.py for the full list.

Equivalent: python -m hodlertrack_crawler.runtime
"""

import sys

# Configure structured JSON logging before other imports that may log
from hodlertrack_crawler.crawler_logging import get_logger  # noqa: F401
from hodlertrack_crawler.runtime import main

if __name__ == "__main__":
    sys.exit(main())
