"""Strategy configuration models."""

from __future__ import annotations

from pydantic import BaseModel, model_validator


class StrategyConfig(BaseModel):
    """EMA crossover + RSI strategy parameters."""

    # Indicator periods
    ema_short: int = 9
    ema_long: int = 21
    rsi_period: int = 14

    # RSI gates: BUY only below rsi_buy, SELL only above rsi_sell
    rsi_buy: float = 45.0
    rsi_sell: float = 65.0

    # Stop / target distance as multiples of the EMA gap
    sl_gap_mult: float = 0.5
    tp_gap_mult: float = 1.5

    # Confidence = min(max_confidence, base_confidence + rsi distance / 100)
    base_confidence: float = 0.6
    max_confidence: float = 0.95

    @model_validator(mode="after")
    def _check_periods(self) -> StrategyConfig:
        if self.ema_short <= 0 or self.ema_long <= 0 or self.rsi_period <= 0:
            raise ValueError("indicator periods must be positive")
        if self.ema_short >= self.ema_long:
            raise ValueError("ema_short must be shorter than ema_long")
        return self
