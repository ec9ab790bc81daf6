"""Application configuration."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.models import StrategyConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Upstream feed (one symbol / interval per process)
    symbol: str = "btcusdt"
    interval: str = "1m"
    binance_ws_base: str = "wss://stream.binance.com:9443/ws"
    reconnect_delay: float = 3.0  # Seconds, fixed, retried forever

    # Candle history
    history_size: int = 500
    ohlc_read_limit: int = 200  # Candles returned by GET /api/ohlc

    # Strategy Parameters
    ema_short: int = 9
    ema_long: int = 21
    rsi_period: int = 14
    rsi_buy: float = 45.0
    rsi_sell: float = 65.0

    # Server
    host: str = "0.0.0.0"
    port: int = 5000
    debug: bool = False

    @property
    def stream_url(self) -> str:
        """Binance kline stream URL for the configured symbol/interval."""
        return f"{self.binance_ws_base}/{self.symbol.lower()}@kline_{self.interval}"

    def strategy_config(self) -> StrategyConfig:
        """Build the strategy configuration from settings."""
        return StrategyConfig(
            ema_short=self.ema_short,
            ema_long=self.ema_long,
            rsi_period=self.rsi_period,
            rsi_buy=self.rsi_buy,
            rsi_sell=self.rsi_sell,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
