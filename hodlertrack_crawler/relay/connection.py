"""
Relay connection: one persistent WebSocket to the HodlerTrack relay.

State machine: disconnected → connecting → connected → (remote close, transport
error, stale timeout) → disconnected → (reconnect timer) → connecting ...
A failed or timed-out handshake goes straight back to disconnected and also
schedules a reconnect. Only disconnect() ends the cycle.

Backoff: base * 2**(attempt - 1), capped; reset on the next successful connect.
Liveness: inbound ping gets an immediate pong; a stale watchdog drops the socket
when nothing arrives for stale_timeout_sec. This is a best-effort heuristic on
top of the protocol-level pings the websockets library already sends.

Backpressure: send() while not connected logs and returns False. Events are
dropped rather than buffered.
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from hodlertrack_crawler.core.exceptions import RelayConnectionError
from hodlertrack_crawler.crawler_logging import get_logger
from hodlertrack_crawler.relay.messages import InboundKind, InboundMessage, decode_inbound

logger = get_logger(__name__)

DEFAULT_CONNECT_TIMEOUT_SEC = 10.0
DEFAULT_RECONNECT_BASE_SEC = 1.0
DEFAULT_RECONNECT_MAX_SEC = 30.0
DEFAULT_STALE_TIMEOUT_SEC = 60.0
DEFAULT_STALE_CHECK_INTERVAL_SEC = 5.0
DEFAULT_WS_PING_INTERVAL = 20.0
DEFAULT_WS_PING_TIMEOUT = 20.0
_WS_CLOSE_TIMEOUT = 5.0


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSING = "closing"


@dataclass
class RelayConfig:
    """Config for the relay connection."""

    url: str
    connect_timeout_sec: float = DEFAULT_CONNECT_TIMEOUT_SEC
    reconnect_base_sec: float = DEFAULT_RECONNECT_BASE_SEC
    reconnect_max_sec: float = DEFAULT_RECONNECT_MAX_SEC
    stale_timeout_sec: float | None = DEFAULT_STALE_TIMEOUT_SEC
    stale_check_interval_sec: float = DEFAULT_STALE_CHECK_INTERVAL_SEC
    ws_ping_interval: float | None = DEFAULT_WS_PING_INTERVAL
    ws_ping_timeout: float | None = DEFAULT_WS_PING_TIMEOUT
    send_welcome: bool = True


MessageHandler = Callable[[InboundMessage], Awaitable[None] | None]


class RelayConnection:
    """
    Owns the relay WebSocket and its ConnectionState.

    connect_fn is the websockets.connect-compatible opener; tests inject a fake.
    on_message receives inbound messages other than ping/pong (sync or async).
    """

    def __init__(
        self,
        config: RelayConfig,
        *,
        on_message: MessageHandler | None = None,
        connect_fn: Callable[..., Any] | None = None,
    ) -> None:
        if not config.url.strip():
            raise ValueError("url must be non-empty")
        self._config = config
        self._on_message = on_message
        self._connect_fn = connect_fn or websockets.connect
        self._state = ConnectionState.DISCONNECTED
        self._ws: Any = None
        self._generation = 0
        self._closed_by_user = False
        self._reconnect_attempts = 0
        self._reconnect_task: asyncio.Task[None] | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._watchdog_task: asyncio.Task[None] | None = None
        self._last_message_at = 0.0

    @property
    def url(self) -> str:
        return self._config.url

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    @property
    def last_message_at(self) -> float:
        """time.monotonic() of the last inbound message (or of the open); 0.0 if never connected."""
        return self._last_message_at

    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def status(self) -> str:
        return self._state.value

    def reconnect_pending(self) -> bool:
        return self._reconnect_task is not None and not self._reconnect_task.done()

    def backoff_delay(self, attempt: int) -> float:
        """Delay before reconnect attempt number `attempt` (1-based)."""
        exponent = max(0, attempt - 1)
        delay = self._config.reconnect_base_sec * (2 ** min(exponent, 32))
        return min(delay, self._config.reconnect_max_sec)

    async def connect(self) -> None:
        """
        Open the relay socket. No-op if already connected or connecting.
        Raises RelayConnectionError on handshake error or timeout (a reconnect is scheduled).
        """
        if self._state in (ConnectionState.CONNECTED, ConnectionState.CONNECTING):
            logger.debug("relay_connect_skipped", state=self._state.value)
            return
        if self._state is ConnectionState.CLOSING:
            logger.debug("relay_connect_skipped", state=self._state.value)
            return
        self._closed_by_user = False
        self._generation += 1
        generation = self._generation
        self._state = ConnectionState.CONNECTING
        logger.info("relay_connecting", url=self._config.url, attempt=self._reconnect_attempts)
        try:
            ws = await asyncio.wait_for(self._open(), timeout=self._config.connect_timeout_sec)
        except asyncio.CancelledError:
            if generation == self._generation:
                self._state = ConnectionState.DISCONNECTED
            raise
        except asyncio.TimeoutError as e:
            self._handshake_failed(generation, "timeout")
            raise RelayConnectionError(
                f"relay connection timeout after {self._config.connect_timeout_sec}s"
            ) from e
        except (OSError, WebSocketException) as e:
            self._handshake_failed(generation, str(e))
            raise RelayConnectionError(f"relay handshake failed: {e}") from e
        except Exception as e:
            logger.exception("relay_connect_unexpected_error", url=self._config.url, error=str(e))
            self._handshake_failed(generation, str(e))
            raise RelayConnectionError(f"relay handshake failed: {e}") from e

        if generation != self._generation or self._closed_by_user:
            # disconnect() (and possibly a newer connect()) landed during the handshake
            logger.info("relay_connect_discarded", url=self._config.url)
            await self._close_quietly(ws)
            return

        previous = self._ws
        self._cancel_background()
        self._ws = ws
        self._state = ConnectionState.CONNECTED
        self._reconnect_attempts = 0
        self._last_message_at = time.monotonic()
        loop = asyncio.get_running_loop()
        self._reader_task = loop.create_task(self._read_loop(ws))
        if self._config.stale_timeout_sec:
            self._watchdog_task = loop.create_task(self._watchdog(ws))
        logger.info("relay_connected", url=self._config.url)
        if previous is not None and previous is not ws:
            await self._close_quietly(previous)
        if self._config.send_welcome:
            await self.send("welcome")

    async def _open(self) -> Any:
        return await self._connect_fn(
            self._config.url,
            ping_interval=self._config.ws_ping_interval,
            ping_timeout=self._config.ws_ping_timeout,
            close_timeout=_WS_CLOSE_TIMEOUT,
        )

    def _handshake_failed(self, generation: int, reason: str) -> None:
        if generation != self._generation:
            logger.info("relay_connect_superseded", url=self._config.url, error=reason)
            return
        self._state = ConnectionState.DISCONNECTED
        logger.warning("relay_connect_failed", url=self._config.url, error=reason)
        if not self._closed_by_user:
            self._schedule_reconnect()

    async def send(self, event_type: str, data: Any = None) -> bool:
        """
        Send {"type": event_type, "data": data} to the relay.

        Returns True when written. Never raises for connection problems: when
        not connected the frame is dropped and False is returned.
        """
        ws = self._ws
        if self._state is not ConnectionState.CONNECTED or ws is None:
            logger.warning(
                "relay_send_skipped_not_connected",
                message_type=event_type,
                state=self._state.value,
            )
            return False
        frame: dict[str, Any] = {"type": event_type}
        if data is not None:
            frame["data"] = data
        try:
            payload = json.dumps(frame)
        except (TypeError, ValueError) as e:
            logger.error("relay_send_encode_failed", message_type=event_type, error=str(e))
            return False
        try:
            await ws.send(payload)
        except (ConnectionClosed, OSError, WebSocketException) as e:
            logger.warning("relay_send_failed", message_type=event_type, error=str(e))
            self._connection_lost(ws, "send_failed")
            await self._close_quietly(ws)
            return False
        logger.debug("relay_message_sent", message_type=event_type, size=len(payload))
        return True

    async def disconnect(self) -> None:
        """Close the socket and stop reconnecting. Idempotent."""
        self._closed_by_user = True
        self._generation += 1
        self._cancel_reconnect()
        ws = self._ws
        self._ws = None
        self._cancel_background()
        if ws is not None:
            self._state = ConnectionState.CLOSING
            logger.info("relay_disconnecting", url=self._config.url)
            await self._close_quietly(ws)
        if self._state is not ConnectionState.DISCONNECTED:
            logger.info("relay_disconnected", url=self._config.url, reason="explicit")
        self._state = ConnectionState.DISCONNECTED

    def _connection_lost(self, ws: Any, reason: str) -> None:
        """Transition to disconnected for `ws` unless it was already replaced or closed."""
        if ws is not self._ws:
            return
        self._ws = None
        self._state = ConnectionState.DISCONNECTED
        self._cancel_background()
        logger.warning("relay_connection_lost", url=self._config.url, reason=reason)
        if not self._closed_by_user:
            self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self.reconnect_pending():
            return
        self._reconnect_attempts += 1
        delay = self.backoff_delay(self._reconnect_attempts)
        logger.info(
            "relay_reconnect_scheduled",
            attempt=self._reconnect_attempts,
            delay_sec=round(delay, 2),
        )
        self._reconnect_task = asyncio.get_running_loop().create_task(
            self._reconnect_after(delay)
        )

    async def _reconnect_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._reconnect_task = None
        if self._closed_by_user:
            return
        try:
            await self.connect()
        except RelayConnectionError as e:
            # connect() already logged it and scheduled the next attempt
            logger.debug("relay_reconnect_attempt_failed", error=str(e))

    def _cancel_reconnect(self) -> None:
        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    def _cancel_background(self) -> None:
        current = asyncio.current_task()
        for task in (self._reader_task, self._watchdog_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
        self._reader_task = None
        self._watchdog_task = None

    async def _read_loop(self, ws: Any) -> None:
        reason = "remote_closed"
        try:
            async for raw in ws:
                await self._handle_message(raw)
        except ConnectionClosed as e:
            reason = f"closed code={e.rcvd.code if e.rcvd else None}"
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("relay_read_error", error=str(e))
            reason = "transport_error"
        self._connection_lost(ws, reason)

    async def _handle_message(self, raw: str | bytes) -> None:
        self._last_message_at = time.monotonic()
        message = decode_inbound(raw)
        if message.kind is InboundKind.PING:
            logger.debug("relay_ping_received")
            await self.send("pong")
        elif message.kind is InboundKind.PONG:
            logger.debug("relay_pong_received")
        elif self._on_message is not None:
            try:
                result = self._on_message(message)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.exception("relay_message_handler_failed", type=message.type, error=str(e))
        else:
            logger.debug("relay_message_ignored", type=message.type)

    async def _watchdog(self, ws: Any) -> None:
        stale_after = self._config.stale_timeout_sec or 0.0
        interval = min(self._config.stale_check_interval_sec, stale_after)
        while self._ws is ws and self._state is ConnectionState.CONNECTED:
            await asyncio.sleep(interval)
            idle = time.monotonic() - self._last_message_at
            if self._ws is ws and idle > stale_after:
                logger.warning("relay_stale", idle_sec=round(idle, 1), stale_timeout_sec=stale_after)
                self._connection_lost(ws, "stale_timeout")
                await self._close_quietly(ws)
                return

    async def _close_quietly(self, ws: Any) -> None:
        try:
            await ws.close()
        except (ConnectionClosed, OSError, WebSocketException) as e:
            logger.debug("relay_close_failed", error=str(e))
