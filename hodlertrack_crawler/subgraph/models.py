"""
Data models for subgraph transaction pages.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

_REQUIRED_FIELDS = ("id", "hash", "from", "value", "timestamp")


@dataclass(frozen=True)
class TransactionRecord:
    """
    One transaction as returned by the subgraph `transactions` entity.

    value is kept as the decimal string the subgraph returns (wei amounts exceed
    float precision). timestamp is the upstream ordering key and doubles as the
    pagination cursor.
    """

    id: str
    hash: str
    sender: str
    recipient: str | None  # None for contract creation
    value: str
    timestamp: str

    @classmethod
    def from_subgraph_item(cls, item: dict[str, Any]) -> "TransactionRecord":
        """Build from a single `transactions` item; raise ValueError if a required field is missing."""
        if not isinstance(item, dict):
            raise ValueError(f"transaction item must be an object, got {type(item).__name__}")
        missing = [f for f in _REQUIRED_FIELDS if item.get(f) in (None, "")]
        if missing:
            raise ValueError(f"transaction item missing fields: {', '.join(missing)}")
        to = item.get("to")
        return cls(
            id=str(item["id"]),
            hash=str(item["hash"]),
            sender=str(item["from"]),
            recipient=str(to) if to else None,
            value=str(item["value"]),
            timestamp=str(item["timestamp"]),
        )

    def to_wire(self) -> dict[str, Any]:
        """Serialize with the subgraph field names (from/to) used on the relay wire."""
        return {
            "id": self.id,
            "hash": self.hash,
            "from": self.sender,
            "to": self.recipient,
            "value": self.value,
            "timestamp": self.timestamp,
        }
