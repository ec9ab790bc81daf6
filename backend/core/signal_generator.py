"""Signal generator implementing the EMA crossover + RSI strategy.

- Short EMA crosses above long EMA while RSI < rsi_buy  -> BUY
- Short EMA crosses below long EMA while RSI > rsi_sell -> SELL
- Anything else                                        -> HOLD

Stop loss and take profit are placed at multiples of the gap between the
two EMAs on the crossover bar.

This module is pure business logic with no I/O dependencies. It keeps no
state between calls: everything it needs is passed in.
"""

import logging
import math
from typing import Sequence

from core.indicators import IndicatorEngine, IndicatorSnapshot
from core.models import Signal, SignalKind, StrategyConfig

logger = logging.getLogger(__name__)

# RSI used when the value at the decision bar is undefined
NEUTRAL_RSI = 50.0


class SignalGenerator:
    """Turns the latest indicator values into a BUY / SELL / HOLD decision."""

    def __init__(self, config: StrategyConfig | None = None):
        self.config = config or StrategyConfig()
        self.engine = IndicatorEngine(
            ema_short=self.config.ema_short,
            ema_long=self.config.ema_long,
            rsi_period=self.config.rsi_period,
        )

    def compute_indicators(self, closes: Sequence[float]) -> IndicatorSnapshot:
        """Recompute the indicator snapshot for a close series."""
        return self.engine.compute(closes)

    def evaluate(self, closes: Sequence[float]) -> Signal:
        """Compute indicators over ``closes`` and decide on the last bar."""
        return self.decide(closes, self.compute_indicators(closes))

    def decide(self, closes: Sequence[float], snapshot: IndicatorSnapshot) -> Signal:
        """
        Decide on the last bar of ``closes``.

        The RSI gates and the confidence use the unrounded RSI, so 44.6
        passes the BUY gate of 45. Only the reported value is rounded.

        Args:
            closes: Close prices, oldest first
            snapshot: Indicators aligned with ``closes``

        Returns:
            Signal for the last bar (HOLD when there is not enough data)
        """
        cfg = self.config
        i = len(closes) - 1
        if i <= cfg.ema_long:
            return Signal(kind=SignalKind.HOLD, reason="not enough data")

        if len(snapshot) != len(closes):
            raise ValueError(
                f"Indicator snapshot length {len(snapshot)} does not match "
                f"{len(closes)} closes"
            )

        fast, slow = snapshot.ema_short, snapshot.ema_long
        prev = i - 1
        crossed_up = fast[prev] <= slow[prev] and fast[i] > slow[i]
        crossed_down = fast[prev] >= slow[prev] and fast[i] < slow[i]

        rsi_value = float(snapshot.rsi[i])
        if math.isnan(rsi_value):
            rsi_value = NEUTRAL_RSI
        price = float(closes[i])

        if crossed_up and rsi_value < cfg.rsi_buy:
            return self._build_trade(
                SignalKind.BUY,
                price=price,
                gap=abs(float(fast[i]) - float(slow[i])),
                rsi_value=rsi_value,
                rsi_distance=cfg.rsi_buy - rsi_value,
                reason=f"EMA up cross + RSI {rsi_value:.0f}",
            )

        if crossed_down and rsi_value > cfg.rsi_sell:
            return self._build_trade(
                SignalKind.SELL,
                price=price,
                gap=abs(float(fast[i]) - float(slow[i])),
                rsi_value=rsi_value,
                rsi_distance=rsi_value - cfg.rsi_sell,
                reason=f"EMA down cross + RSI {rsi_value:.0f}",
            )

        return Signal(
            kind=SignalKind.HOLD,
            reason=f"No crossover (RSI {rsi_value:.0f})",
            price=price,
            rsi=round(rsi_value, 2),
        )

    def _build_trade(
        self,
        kind: SignalKind,
        price: float,
        gap: float,
        rsi_value: float,
        rsi_distance: float,
        reason: str,
    ) -> Signal:
        cfg = self.config
        # Zero-width stops are never emitted
        if gap == 0:
            gap = 1.0

        # +1 for BUY (stop below, target above), -1 for SELL
        side = 1 if kind == SignalKind.BUY else -1
        stop_loss = price - side * cfg.sl_gap_mult * gap
        take_profit = price + side * cfg.tp_gap_mult * gap
        confidence = min(cfg.max_confidence, cfg.base_confidence + rsi_distance / 100)

        logger.info(
            f"{kind.value}: entry={price} sl={stop_loss:.2f} tp={take_profit:.2f} "
            f"gap={gap:.4f} RSI={rsi_value:.2f}"
        )

        return Signal(
            kind=kind,
            reason=reason,
            entry=price,
            stop_loss=round(stop_loss, 2),
            take_profit=round(take_profit, 2),
            confidence=round(confidence, 2),
            price=price,
            rsi=round(rsi_value, 2),
        )
