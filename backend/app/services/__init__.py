"""Business services."""

from app.services.stream_coordinator import StreamCoordinator

__all__ = [
    "StreamCoordinator",
]
