"""Candle (kline) data models."""

from collections import deque
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_HISTORY_SIZE = 500


class Candle(BaseModel):
    """Candlestick data for one interval of the configured symbol.

    Serialized with the short wire keys used by the subscriber channel
    (``t`` for the open time, ``isFinal`` for the close flag).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, allow_inf_nan=False)

    open_time: int = Field(alias="t")  # Open time, ms since epoch
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    is_final: bool = Field(default=True, alias="isFinal")

    def to_payload(self) -> dict:
        """Serialize using the wire keys."""
        return self.model_dump(by_alias=True)


class CandleHistory:
    """Bounded, ordered record of closed candles.

    Candles are kept in arrival order. Once ``max_size`` is exceeded the
    oldest candle is evicted, one per append.
    """

    def __init__(self, max_size: int = DEFAULT_HISTORY_SIZE):
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._candles: deque[Candle] = deque(maxlen=max_size)

    def append(self, candle: Candle) -> None:
        """Add the newest closed candle, evicting the oldest if full."""
        self._candles.append(candle)

    def snapshot(self, n: int | None = None) -> list[Candle]:
        """Get the last ``n`` candles (all when ``n`` is None), oldest first."""
        if n is None:
            return list(self._candles)
        if n <= 0:
            return []
        return list(self._candles)[-n:]

    def overwrite(self, candles: Iterable[Candle]) -> None:
        """Replace the whole history, keeping only the newest ``max_size``."""
        self._candles = deque(candles, maxlen=self.max_size)

    def closes(self) -> list[float]:
        """Get list of close prices."""
        return [c.close for c in self._candles]

    def __len__(self) -> int:
        return len(self._candles)
