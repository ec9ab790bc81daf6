"""Stream coordinator: the single owner of live market state.

Consumes feed events in arrival order:
- tick   -> broadcast a price update
- closed -> append to history, recompute indicators, decide, store the
            result as the last signal and broadcast it

History and the last signal are only mutated from here (plus the bulk
overwrite used by the REST API), all on the one event loop.
"""

import asyncio
import logging
import time
from typing import Callable, Iterable

from app.api.websocket import BroadcastHub
from app.clients import FeedEvent
from core.indicators import IndicatorSnapshot
from core.models import Candle, CandleHistory, Signal
from core.signal_generator import SignalGenerator

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class StreamCoordinator:
    """Owns candle history, indicators and the last signal for one symbol."""

    def __init__(
        self,
        symbol: str,
        hub: BroadcastHub,
        generator: SignalGenerator | None = None,
        history: CandleHistory | None = None,
        clock: Callable[[], int] = _now_ms,
    ):
        self.symbol = symbol
        self.hub = hub
        self.generator = generator or SignalGenerator()
        self.history = history if history is not None else CandleHistory()
        self._clock = clock
        self._indicators: IndicatorSnapshot | None = None
        self._last_signal: Signal | None = None

    @property
    def last_signal(self) -> Signal | None:
        """Most recent decision, or None before the first closed candle."""
        return self._last_signal

    @property
    def indicators(self) -> IndicatorSnapshot | None:
        """Indicator snapshot from the last closed candle."""
        return self._indicators

    async def run(self, events: asyncio.Queue[FeedEvent]) -> None:
        """Consume feed events until cancelled."""
        while True:
            event = await events.get()
            try:
                await self.handle_event(event)
            except Exception as e:
                logger.error(f"Error handling {event.kind} event: {e}")
            finally:
                events.task_done()

    async def handle_event(self, event: FeedEvent) -> None:
        """Dispatch one feed event."""
        if event.kind == "tick":
            await self.handle_tick(event.candle)
        elif event.kind == "closed":
            await self.handle_closed(event.candle)
        else:
            logger.warning(f"Unknown feed event kind: {event.kind}")

    async def handle_tick(self, candle: Candle) -> None:
        """Broadcast the latest price."""
        await self.hub.send_price(candle)

    async def handle_closed(self, candle: Candle) -> Signal:
        """Process a closed candle and broadcast the resulting signal."""
        self.history.append(candle)

        closes = self.history.closes()
        self._indicators = self.generator.compute_indicators(closes)
        decision = self.generator.decide(closes, self._indicators)

        signal = decision.model_copy(
            update={"symbol": self.symbol, "timestamp": self._clock()}
        )
        self._last_signal = signal
        logger.info(f"Signal -> {signal.kind.value} {signal.reason}")

        await self.hub.send_signal(signal)
        return signal

    def snapshot(self, n: int | None = None) -> list[Candle]:
        """Get the last ``n`` closed candles (all when ``n`` is None)."""
        return self.history.snapshot(n)

    def overwrite(self, candles: Iterable[Candle]) -> int:
        """Replace the candle history; returns the number of candles kept."""
        self.history.overwrite(candles)
        logger.info(f"Candle history overwritten: {len(self.history)} candles")
        return len(self.history)
