"""
Pytest tests for inbound relay message decoding.
"""

from __future__ import annotations

from hodlertrack_crawler.relay import InboundKind, decode_inbound


def test_structured_and_plain_ping():
    assert decode_inbound('{"type": "ping"}').kind is InboundKind.PING
    assert decode_inbound(" Ping\n").kind is InboundKind.PING
    assert decode_inbound(b"ping").kind is InboundKind.PING
    assert decode_inbound('"ping"').kind is InboundKind.PING


def test_pong_and_other():
    assert decode_inbound('{"type": "pong"}').kind is InboundKind.PONG
    msg = decode_inbound('{"type": "crawler:command", "data": {"action": "start"}}')
    assert msg.kind is InboundKind.OTHER
    assert msg.type == "crawler:command"
    assert msg.data == {"action": "start"}


def test_garbage_never_raises():
    assert decode_inbound("hello there").kind is InboundKind.OTHER
    assert decode_inbound("[1, 2]").kind is InboundKind.OTHER
    assert decode_inbound('{"type": 5}').kind is InboundKind.OTHER
    assert decode_inbound(b"\xff\xfe").kind is InboundKind.OTHER
