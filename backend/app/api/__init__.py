"""API endpoints."""

from app.api.routes import router, push_router
from app.api.websocket import BroadcastHub, WebSocketMessage, websocket_endpoint

__all__ = [
    "router",
    "push_router",
    "BroadcastHub",
    "WebSocketMessage",
    "websocket_endpoint",
]
