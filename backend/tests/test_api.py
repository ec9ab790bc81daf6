"""Tests for the REST routes and the subscriber WebSocket endpoint."""

import asyncio
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.responses import ORJSONResponse
from fastapi.testclient import TestClient

from app.api import BroadcastHub, push_router, router, websocket_endpoint
from app.clients import BinanceKlineWebSocket
from app.config import get_settings
from app.services import StreamCoordinator
from core.models import Candle, Signal, SignalKind


def candle_payload(open_time: int, close: float = 100.0) -> dict:
    return {
        "t": open_time,
        "open": close,
        "high": close + 1,
        "low": close - 1,
        "close": close,
        "volume": 5.0,
        "isFinal": True,
    }


@pytest.fixture
def coordinator() -> StreamCoordinator:
    hub = BroadcastHub(catch_up=lambda: coordinator.last_signal)
    coordinator = StreamCoordinator(
        symbol="btcusdt", hub=hub, clock=lambda: 1700000000000
    )
    return coordinator


@pytest.fixture
def client(coordinator) -> TestClient:
    """App wired like app.main, without starting the upstream feed."""
    app = FastAPI(default_response_class=ORJSONResponse)
    app.include_router(router, prefix="/api")
    app.include_router(push_router)
    app.websocket("/ws")(websocket_endpoint)
    app.state.coordinator = coordinator
    app.state.hub = coordinator.hub
    return TestClient(app)


class TestLastSignal:
    """Tests for GET /api/last-signal."""

    def test_empty_before_first_signal(self, client):
        response = client.get("/api/last-signal")

        assert response.status_code == 200
        assert response.json() == {}

    def test_returns_last_signal(self, client, coordinator):
        asyncio.run(coordinator.handle_closed(Candle.model_validate(candle_payload(0))))

        response = client.get("/api/last-signal")

        assert response.status_code == 200
        assert response.json() == {
            "signal": "HOLD",
            "reason": "not enough data",
            "symbol": "btcusdt",
            "ts": 1700000000000,
        }


class TestOhlc:
    """Tests for GET /api/ohlc."""

    def test_default_limit(self, client, coordinator):
        coordinator.overwrite(
            [Candle.model_validate(candle_payload(i)) for i in range(300)]
        )

        data = client.get("/api/ohlc").json()

        assert len(data) == 200
        assert data[0]["t"] == 100
        assert data[-1]["t"] == 299

    def test_explicit_limit(self, client, coordinator):
        coordinator.overwrite(
            [Candle.model_validate(candle_payload(i)) for i in range(10)]
        )

        data = client.get("/api/ohlc", params={"limit": 3}).json()

        assert [c["t"] for c in data] == [7, 8, 9]

    def test_empty_history(self, client):
        assert client.get("/api/ohlc").json() == []


class TestPushOhlc:
    """Tests for POST /push-ohlc."""

    def test_overwrites_history(self, client, coordinator):
        response = client.post(
            "/push-ohlc", json=[candle_payload(i, 100.0 + i) for i in range(5)]
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True, "count": 5}
        assert coordinator.history.closes() == [100.0, 101.0, 102.0, 103.0, 104.0]

    def test_keeps_newest_500(self, client, coordinator):
        response = client.post(
            "/push-ohlc", json=[candle_payload(i) for i in range(600)]
        )

        assert response.json() == {"ok": True, "count": 500}
        assert coordinator.snapshot()[0].open_time == 100

    def test_rejects_non_array(self, client, coordinator):
        coordinator.overwrite([Candle.model_validate(candle_payload(1))])

        response = client.post("/push-ohlc", json={"t": 1})

        assert response.status_code == 400
        assert response.json() == {"ok": False, "reason": "send array"}
        assert len(coordinator.history) == 1

    def test_rejects_invalid_candles(self, client, coordinator):
        coordinator.overwrite([Candle.model_validate(candle_payload(1))])

        response = client.post("/push-ohlc", json=[{"t": 1, "close": "abc"}])

        assert response.status_code == 400
        assert response.json()["ok"] is False
        assert len(coordinator.history) == 1

    def test_rejects_non_finite_prices(self, client, coordinator):
        response = client.post(
            "/push-ohlc",
            content='[{"t": 1, "open": 1, "high": 1, "low": 1, "close": NaN}]',
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 400
        assert len(coordinator.history) == 0


class TestWebSocketEndpoint:
    """Tests for the /ws subscriber channel."""

    def test_status_on_connect(self, client, coordinator):
        with client.websocket_connect("/ws") as ws:
            assert ws.receive_json() == {"type": "status", "data": "connected"}
            assert coordinator.hub.connection_count == 1

    def test_catch_up_signal_before_status(self, client, coordinator):
        signal = Signal(
            kind=SignalKind.SELL,
            reason="EMA down cross + RSI 70",
            entry=99.0,
            stop_loss=100.0,
            take_profit=96.0,
            confidence=0.65,
            price=99.0,
            rsi=70.0,
            symbol="btcusdt",
            timestamp=1700000000000,
        )
        coordinator.hub.catch_up = lambda: signal

        with client.websocket_connect("/ws") as ws:
            first = ws.receive_json()
            second = ws.receive_json()

        assert first == {"type": "signal", "data": signal.to_payload()}
        assert second["type"] == "status"

    def test_client_messages_ignored(self, client, coordinator):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("hello")
            ws.send_text("still here")
            assert coordinator.hub.connection_count == 1


class TestApplicationLifespan:
    """Tests for the wiring done by app.main on startup and shutdown."""

    @pytest.fixture
    def feed_start(self, monkeypatch) -> AsyncMock:
        """Keep the upstream feed offline."""
        start = AsyncMock()
        monkeypatch.setattr(BinanceKlineWebSocket, "start", start)
        monkeypatch.setattr(BinanceKlineWebSocket, "stop", AsyncMock())
        return start

    def test_startup_wires_state(self, feed_start):
        from app.main import app

        with TestClient(app) as client:
            coordinator = app.state.coordinator

            assert coordinator.hub is app.state.hub
            assert coordinator.symbol == get_settings().symbol
            assert client.get("/health").json() == {"status": "healthy"}
            assert client.get("/").json()["feed_connected"] is False

        feed_start.assert_awaited_once()

    def test_hub_replays_coordinator_signal(self, feed_start):
        from app.main import app

        with TestClient(app) as client:
            coordinator = app.state.coordinator
            client.portal.call(
                coordinator.handle_closed, Candle.model_validate(candle_payload(0))
            )

            with client.websocket_connect("/ws") as ws:
                first = ws.receive_json()
                second = ws.receive_json()

        assert first["type"] == "signal"
        assert first["data"]["reason"] == "not enough data"
        assert second == {"type": "status", "data": "connected"}
