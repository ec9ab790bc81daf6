"""Pure data models shared by the core logic and the app."""

from core.models.candle import Candle, CandleHistory, DEFAULT_HISTORY_SIZE
from core.models.config import StrategyConfig
from core.models.signal import Signal, SignalKind

__all__ = [
    "Candle",
    "CandleHistory",
    "DEFAULT_HISTORY_SIZE",
    "StrategyConfig",
    "Signal",
    "SignalKind",
]
