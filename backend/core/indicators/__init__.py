"""Technical indicators (pure math, no I/O)."""

from core.indicators.indicators import (
    ema,
    rsi,
    IndicatorEngine,
    IndicatorSnapshot,
    RSI_EPSILON,
)

__all__ = [
    "ema",
    "rsi",
    "IndicatorEngine",
    "IndicatorSnapshot",
    "RSI_EPSILON",
]
