"""Exchange clients."""

from app.clients.binance_ws_kline import (
    BinanceKlineWebSocket,
    FeedEvent,
    RetryPolicy,
    decode_kline_frame,
)

__all__ = [
    "BinanceKlineWebSocket",
    "FeedEvent",
    "RetryPolicy",
    "decode_kline_frame",
]
