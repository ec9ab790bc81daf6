"""Main application entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries (must be set before importing them)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)
logging.getLogger("picows").setLevel(logging.WARNING)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

# Try to use uvloop for better performance (Unix only)
try:
    import uvloop
    uvloop.install()
    _UVLOOP_ENABLED = True
except ImportError:
    _UVLOOP_ENABLED = False

from app.api import BroadcastHub, push_router, router, websocket_endpoint
from app.clients import BinanceKlineWebSocket, FeedEvent, RetryPolicy
from app.config import get_settings
from app.services import StreamCoordinator
from core.models import CandleHistory
from core.signal_generator import SignalGenerator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()

    logger.info("Starting crossover signal stream...")
    logger.info(f"Event loop: {'uvloop' if _UVLOOP_ENABLED else 'asyncio'}")
    logger.info(f"Binance symbol: {settings.symbol} interval: {settings.interval}")

    events: asyncio.Queue[FeedEvent] = asyncio.Queue()
    hub = BroadcastHub(catch_up=lambda: coordinator.last_signal)
    coordinator = StreamCoordinator(
        symbol=settings.symbol,
        hub=hub,
        generator=SignalGenerator(settings.strategy_config()),
        history=CandleHistory(max_size=settings.history_size),
    )
    feed = BinanceKlineWebSocket(
        url=settings.stream_url,
        events=events,
        retry_policy=RetryPolicy(delay=settings.reconnect_delay),
    )

    app.state.hub = hub
    app.state.coordinator = coordinator
    app.state.feed = feed

    coordinator_task = asyncio.create_task(coordinator.run(events))
    await feed.start()
    logger.info("Market data feed started")

    yield

    # Shutdown
    logger.info("Shutting down...")

    await feed.stop()

    coordinator_task.cancel()
    try:
        await coordinator_task
    except asyncio.CancelledError:
        pass

    logger.info("Shutdown complete")


# Create FastAPI app with orjson for faster JSON serialization
app = FastAPI(
    title="Crossover Signal Stream",
    description="Live EMA crossover + RSI signals for one Binance symbol",
    version="0.1.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include REST routes
app.include_router(router, prefix="/api")
app.include_router(push_router)

# WebSocket endpoint
app.websocket("/ws")(websocket_endpoint)


@app.get("/")
async def root():
    """Root endpoint."""
    settings = get_settings()
    feed = getattr(app.state, "feed", None)
    return {
        "message": "Backend connected (Binance live)",
        "symbol": settings.symbol,
        "interval": settings.interval,
        "feed_connected": bool(feed and feed.connected),
        "event_loop": "uvloop" if _UVLOOP_ENABLED else "asyncio",
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
