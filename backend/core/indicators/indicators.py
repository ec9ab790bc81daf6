"""Technical indicators for signal generation.

EMA and RSI over a close-price series. Both are recomputed over the whole
retained series on every closed candle; the series is capped by the candle
history so a full pass stays cheap.

Two details differ from common indicator libraries and are kept on purpose:
- EMA is seeded with the first value, not with an SMA warm-up window.
- RSI divides by a 1e-8 epsilon when the average loss is exactly zero.
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np

# Substituted for a zero average loss
RSI_EPSILON = 1e-8


# =============================================================================
# Indicator functions
# =============================================================================

def ema(values: Sequence[float], length: int) -> np.ndarray:
    """
    Calculate Exponential Moving Average.

    out[0] = values[0]
    out[i] = values[i] * k + out[i - 1] * (1 - k), with k = 2 / (length + 1)

    Args:
        values: Sequence of price values
        length: EMA length controlling the decay speed

    Returns:
        Array of EMA values, same length as input, no undefined entries
    """
    arr = np.asarray(values, dtype=np.float64)
    result = np.empty_like(arr)
    if len(arr) == 0:
        return result

    k = 2.0 / (length + 1)
    result[0] = arr[0]
    for i in range(1, len(arr)):
        result[i] = arr[i] * k + result[i - 1] * (1 - k)

    return result


def rsi(values: Sequence[float], period: int = 14) -> np.ndarray:
    """
    Calculate Relative Strength Index with Wilder smoothing.

    The first average gain/loss is the simple mean over the first ``period``
    deltas. Every later index smooths with weight (period - 1) / period.

    Args:
        values: Sequence of price values
        period: RSI period

    Returns:
        Array of RSI values, NaN for indices <= period
    """
    arr = np.asarray(values, dtype=np.float64)
    result = np.full(len(arr), np.nan)
    if len(arr) <= period:
        return result

    deltas = np.diff(arr)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = float(np.mean(gains[:period]))
    avg_loss = float(np.mean(losses[:period]))

    for i in range(period + 1, len(arr)):
        avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
        result[i] = _rsi_value(avg_gain, avg_loss)

    return result


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    rs = avg_gain / (avg_loss if avg_loss != 0 else RSI_EPSILON)
    return 100.0 - 100.0 / (1.0 + rs)


# =============================================================================
# IndicatorEngine
# =============================================================================

@dataclass(slots=True)
class IndicatorSnapshot:
    """Indicator arrays aligned 1:1 with the close series they came from."""

    ema_short: np.ndarray
    ema_long: np.ndarray
    rsi: np.ndarray

    def __len__(self) -> int:
        return len(self.ema_short)


class IndicatorEngine:
    """Calculator for the indicators needed by the crossover strategy."""

    def __init__(
        self,
        ema_short: int = 9,
        ema_long: int = 21,
        rsi_period: int = 14,
    ):
        self.ema_short = ema_short
        self.ema_long = ema_long
        self.rsi_period = rsi_period

    def compute(self, closes: Sequence[float]) -> IndicatorSnapshot:
        """
        Recompute all indicators over the full close series.

        Args:
            closes: Close prices, oldest first

        Returns:
            IndicatorSnapshot with arrays of len(closes)
        """
        return IndicatorSnapshot(
            ema_short=ema(closes, self.ema_short),
            ema_long=ema(closes, self.ema_long),
            rsi=rsi(closes, self.rsi_period),
        )
