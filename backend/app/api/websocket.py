"""WebSocket endpoint and broadcast hub for real-time updates."""

import asyncio
import logging
from typing import Any, Callable

import orjson
from fastapi import WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState
from pydantic import BaseModel

from core.models import Candle, Signal

logger = logging.getLogger(__name__)

# Returns the signal replayed to late joiners, or None
CatchUpProvider = Callable[[], Signal | None]


def _orjson_dumps(obj: Any) -> str:
    """Serialize object to JSON string using orjson."""
    return orjson.dumps(obj, default=str).decode("utf-8")


class WebSocketMessage(BaseModel):
    """WebSocket message envelope."""

    type: str  # "price", "signal", "status"
    data: Any

    def to_json(self) -> str:
        """Serialize to JSON string using orjson for performance."""
        return _orjson_dumps(self.model_dump())


def _is_open(websocket: WebSocket) -> bool:
    return (
        websocket.client_state == WebSocketState.CONNECTED
        and websocket.application_state == WebSocketState.CONNECTED
    )


class BroadcastHub:
    """Manage subscriber connections and fan events out to all of them.

    Publishing and the catch-up sent to a new subscriber share one lock, so
    a subscriber that joins after a signal was stored gets that signal
    before anything published later.
    """

    def __init__(self, catch_up: CatchUpProvider | None = None):
        self._connections: list[WebSocket] = []
        self._lock = asyncio.Lock()
        self.catch_up = catch_up

    async def connect(self, websocket: WebSocket) -> None:
        """Accept and register a new subscriber, then replay the last signal."""
        await websocket.accept()
        async with self._lock:
            self._connections.append(websocket)
            signal = self.catch_up() if self.catch_up else None
            if signal is not None:
                await websocket.send_text(
                    WebSocketMessage(type="signal", data=signal.to_payload()).to_json()
                )
            await websocket.send_text(
                WebSocketMessage(type="status", data="connected").to_json()
            )
        logger.info(f"WebSocket connected. Total connections: {len(self._connections)}")

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a disconnected subscriber."""
        async with self._lock:
            if websocket in self._connections:
                self._connections.remove(websocket)
        logger.info(f"WebSocket disconnected. Total connections: {len(self._connections)}")

    async def publish(self, type: str, data: Any) -> int:
        """
        Send one ``{type, data}`` envelope to every open subscriber.

        Subscribers whose socket is not open are skipped. A subscriber whose
        send fails is dropped. Nothing is retried or queued.

        Returns:
            Number of subscribers the message was sent to
        """
        if not self._connections:
            return 0

        message_text = WebSocketMessage(type=type, data=data).to_json()
        sent = 0
        disconnected = []

        async with self._lock:
            for websocket in self._connections:
                if not _is_open(websocket):
                    continue
                try:
                    await websocket.send_text(message_text)
                    sent += 1
                except Exception as e:
                    logger.warning(f"Failed to send message: {e}")
                    disconnected.append(websocket)

            for ws in disconnected:
                self._connections.remove(ws)

        return sent

    async def send_price(self, candle: Candle) -> int:
        """Broadcast a price tick."""
        return await self.publish("price", {"t": candle.open_time, "close": candle.close})

    async def send_signal(self, signal: Signal) -> int:
        """Broadcast a signal decision."""
        return await self.publish("signal", signal.to_payload())

    @property
    def connection_count(self) -> int:
        """Get number of active connections."""
        return len(self._connections)


async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time updates.

    Messages sent to clients:
    - price: Every kline tick, {"t": open_time, "close": close}
    - signal: Decision for every closed candle (and the last one on connect)
    - status: "connected" right after the catch-up

    Message format:
    {
        "type": "signal",
        "data": {...}
    }

    Clients are not expected to send anything; incoming text is ignored.
    """
    hub: BroadcastHub = websocket.app.state.hub
    try:
        await hub.connect(websocket)
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        await hub.disconnect(websocket)
