"""
Event envelope: one fetched page plus crawler identity, as sent to the relay.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from hodlertrack_crawler.crawler.models import CrawlerIdentity
from hodlertrack_crawler.subgraph.models import TransactionRecord

TRANSACTIONS_DATA_NEW = "transactions:data:new"


@dataclass(frozen=True)
class EventEnvelope:
    type: str
    crawler_id: str
    crawler_name: str
    crawler_symbol: str
    chain: str
    timestamp: str
    transactions: tuple[TransactionRecord, ...]

    @property
    def count(self) -> int:
        return len(self.transactions)

    def data(self) -> dict[str, Any]:
        return {
            "crawler_id": self.crawler_id,
            "crawler_name": self.crawler_name,
            "crawler_symbol": self.crawler_symbol,
            "chain": self.chain,
            "timestamp": self.timestamp,
            "transactions": [tx.to_wire() for tx in self.transactions],
            "count": self.count,
        }

    def to_wire(self) -> dict[str, Any]:
        return {"type": self.type, "data": self.data()}


def build_envelope(
    identity: CrawlerIdentity,
    chain: str,
    records: Iterable[TransactionRecord],
    *,
    now: datetime | None = None,
) -> EventEnvelope:
    """Pure: shape records (kept in upstream order) into a transactions:data:new envelope."""
    emitted_at = now or datetime.now(timezone.utc)
    return EventEnvelope(
        type=TRANSACTIONS_DATA_NEW,
        crawler_id=identity.id,
        crawler_name=identity.name,
        crawler_symbol=identity.symbol,
        chain=chain,
        timestamp=emitted_at.isoformat(),
        transactions=tuple(records),
    )
