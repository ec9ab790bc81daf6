"""Trading signal data models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class SignalKind(str, Enum):
    """Trading decision."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class Signal(BaseModel):
    """Decision produced for one closed candle.

    ``entry``, ``stop_loss``, ``take_profit`` and ``confidence`` are only
    set for BUY/SELL. ``symbol`` and ``timestamp`` are stamped by the
    stream coordinator once the decision is made.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    kind: SignalKind = Field(alias="signal")
    reason: str
    entry: float | None = None
    stop_loss: float | None = None
    take_profit: float | None = None
    confidence: float | None = None
    price: float | None = None
    rsi: float | None = None
    symbol: str | None = None
    timestamp: int | None = Field(default=None, alias="ts")  # ms since epoch

    def to_payload(self) -> dict:
        """Serialize using the wire keys, omitting unset fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
