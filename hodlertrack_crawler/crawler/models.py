"""
Crawler identity and run state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from hodlertrack_crawler.core.exceptions import ConfigurationError


class CrawlerStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"
    ERROR = "error"


@dataclass(frozen=True)
class CrawlerIdentity:
    """Who this crawler is on the relay; fixed for the lifetime of the process."""

    id: str
    name: str
    symbol: str
    chain: str
    image: str = ""

    def __post_init__(self) -> None:
        for field_name in ("id", "name", "symbol", "chain"):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigurationError(f"crawler identity field '{field_name}' is required")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CrawlerRunState:
    """Mutable run state; updated_at never moves backwards."""

    status: CrawlerStatus = CrawlerStatus.IDLE
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def touch(self) -> None:
        now = _utcnow()
        if now > self.updated_at:
            self.updated_at = now

    def transition(self, status: CrawlerStatus) -> None:
        self.status = status
        self.touch()
