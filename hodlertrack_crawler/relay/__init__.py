# Relay side: persistent WebSocket connection, inbound message decoding.

from hodlertrack_crawler.relay.connection import (
    ConnectionState,
    RelayConfig,
    RelayConnection,
)
from hodlertrack_crawler.relay.messages import InboundKind, InboundMessage, decode_inbound

__all__ = [
    "ConnectionState",
    "InboundKind",
    "InboundMessage",
    "RelayConfig",
    "RelayConnection",
    "decode_inbound",
]
