"""Binance WebSocket client for real-time K-line data using picows."""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Literal

from picows import ws_connect, WSFrame, WSTransport, WSListener, WSMsgType

from core.models import Candle

logger = logging.getLogger(__name__)

FeedEventKind = Literal["tick", "closed"]

# (listener_factory, url) -> (transport, listener), same shape as picows.ws_connect
ConnectFunc = Callable[
    [Callable[[], WSListener], str], Awaitable[tuple[WSTransport, WSListener]]
]


@dataclass(slots=True)
class FeedEvent:
    """One event handed from the feed to the stream coordinator."""

    kind: FeedEventKind
    candle: Candle


@dataclass
class RetryPolicy:
    """Fixed-delay reconnect policy: same delay every time, no attempt cap."""

    delay: float = 3.0
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)

    async def wait(self) -> None:
        """Wait before the next connection attempt."""
        await self.sleep(self.delay)


def decode_kline_frame(message: str | bytes) -> Candle | None:
    """
    Decode a Binance kline stream frame.

    Args:
        message: Raw text frame

    Returns:
        Candle, or None for frames that carry no kline (e.g. subscription acks)

    Raises:
        ValueError: If the frame is not JSON or the kline fields are invalid
            or not finite
    """
    data = json.loads(message)
    if not isinstance(data, dict) or not data.get("k"):
        return None

    k = data["k"]
    try:
        return Candle(
            open_time=int(k["t"]),
            open=float(k["o"]),
            high=float(k["h"]),
            low=float(k["l"]),
            close=float(k["c"]),
            volume=float(k["v"]),
            is_final=k["x"],
        )
    except (KeyError, TypeError, OverflowError) as e:
        raise ValueError(f"invalid kline payload: {e!r}") from e


class BinanceKlineListener(WSListener):
    """picows listener for a single Binance K-line stream."""

    def __init__(
        self,
        on_message: Callable[[str], None],
        on_connected: Callable[[], None],
        on_disconnected: Callable[[], None],
    ):
        self._on_message = on_message
        self._on_connected = on_connected
        self._on_disconnected = on_disconnected

    def on_ws_connected(self, transport: WSTransport):
        """Called when WebSocket connection is established."""
        logger.info("picows: K-line WebSocket connected")
        self._on_connected()

    def on_ws_disconnected(self, transport: WSTransport):
        """Called when WebSocket is disconnected."""
        logger.info("picows: K-line WebSocket disconnected")
        self._on_disconnected()

    def on_ws_frame(self, transport: WSTransport, frame: WSFrame):
        """Called when a new frame is received."""
        if frame.msg_type == WSMsgType.TEXT:
            self._on_message(frame.get_payload_as_utf8_text())
        elif frame.msg_type == WSMsgType.PING:
            transport.send_pong(frame.get_payload_as_bytes())
        elif frame.msg_type == WSMsgType.CLOSE:
            transport.send_close(frame.get_close_code())
            transport.disconnect()


async def _picows_connect(
    listener_factory: Callable[[], WSListener], url: str
) -> tuple[WSTransport, WSListener]:
    return await ws_connect(
        listener_factory,
        url,
        enable_auto_ping=True,
        auto_ping_idle_timeout=30,
        auto_ping_reply_timeout=10,
    )


class BinanceKlineWebSocket:
    """Feed connector for one Binance K-line stream.

    Every inbound kline is put on ``events`` as a ``tick``; a kline whose
    candle has closed is additionally put on as ``closed``. When the
    connection drops or fails, a new one is attempted after the retry
    policy's fixed delay, for as long as the connector is running.
    """

    def __init__(
        self,
        url: str,
        events: asyncio.Queue[FeedEvent],
        retry_policy: RetryPolicy | None = None,
        connect: ConnectFunc | None = None,
    ):
        self.url = url
        self.retry_policy = retry_policy or RetryPolicy()
        self._events = events
        self._connect = connect or _picows_connect
        self._running = False
        self._connected = False
        self._attempts = 0
        self._transport: WSTransport | None = None
        self._task: asyncio.Task | None = None

    @property
    def connected(self) -> bool:
        """Whether the upstream connection is currently up."""
        return self._connected

    @property
    def attempts(self) -> int:
        """Number of connection attempts made so far."""
        return self._attempts

    async def start(self) -> None:
        """Start the connection loop in a background task."""
        if self._task and not self._task.done():
            return
        self._running = True
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Stop the loop, close the connection and cancel any pending reconnect."""
        self._running = False
        if self._transport:
            self._transport.disconnect()
        if self._task and self._task is not asyncio.current_task():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

    def handle_message(self, message: str) -> None:
        """Decode one frame and enqueue the resulting events."""
        try:
            candle = decode_kline_frame(message)
        except ValueError as e:
            logger.error(f"Failed to parse kline message: {e}")
            return

        if candle is None:
            return

        self._events.put_nowait(FeedEvent("tick", candle))
        if candle.is_final:
            self._events.put_nowait(FeedEvent("closed", candle))

    def _on_connected(self) -> None:
        self._connected = True

    def _on_disconnected(self) -> None:
        self._connected = False

    def _make_listener(self) -> BinanceKlineListener:
        return BinanceKlineListener(
            on_message=self.handle_message,
            on_connected=self._on_connected,
            on_disconnected=self._on_disconnected,
        )

    async def run(self) -> None:
        """Main WebSocket loop with fixed-delay reconnection."""
        self._running = True
        while self._running:
            try:
                await self._connect_and_process()
            except Exception as e:
                logger.error(f"K-line WS error: {e}")

            if self._running:
                logger.info(
                    f"K-line WS closed, reconnecting in {self.retry_policy.delay} seconds..."
                )
                await self.retry_policy.wait()

    async def _connect_and_process(self) -> None:
        """Connect to WebSocket and wait for disconnection."""
        self._attempts += 1
        logger.info(f"Connecting to {self.url}")
        transport, _ = await self._connect(self._make_listener, self.url)
        self._transport = transport
        try:
            await transport.wait_disconnected()
        finally:
            self._transport = None
            self._connected = False
            # Force termination if the peer left the socket half-open
            transport.disconnect()
