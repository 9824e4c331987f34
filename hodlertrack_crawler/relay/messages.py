"""
Inbound relay messages, decoded once at the socket boundary.

The relay may send structured JSON ({"type": "ping"}) or plain text ("ping").
Everything is mapped onto InboundKind so the connection matches on a closed set.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class InboundKind(str, Enum):
    PING = "ping"
    PONG = "pong"
    OTHER = "other"


@dataclass(frozen=True)
class InboundMessage:
    kind: InboundKind
    type: str | None = None
    data: Any = None
    raw: str = ""
    fields: dict[str, Any] = field(default_factory=dict)


def _kind_for(type_name: str | None) -> InboundKind:
    if not type_name:
        return InboundKind.OTHER
    name = type_name.strip().lower()
    if name == InboundKind.PING.value:
        return InboundKind.PING
    if name == InboundKind.PONG.value:
        return InboundKind.PONG
    return InboundKind.OTHER


def decode_inbound(raw: str | bytes) -> InboundMessage:
    """Decode one WebSocket frame; never raises."""
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, (bytes, bytearray)) else str(raw)
    try:
        parsed = json.loads(text)
    except ValueError:
        # Not JSON: plain-text frame
        return InboundMessage(kind=_kind_for(text), type=text.strip() or None, raw=text)
    if isinstance(parsed, dict):
        type_name = parsed.get("type")
        type_name = type_name if isinstance(type_name, str) else None
        return InboundMessage(
            kind=_kind_for(type_name),
            type=type_name,
            data=parsed.get("data"),
            raw=text,
            fields=parsed,
        )
    if isinstance(parsed, str):
        return InboundMessage(kind=_kind_for(parsed), type=parsed, raw=text)
    return InboundMessage(kind=InboundKind.OTHER, data=parsed, raw=text)
