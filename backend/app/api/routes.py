"""REST API routes."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel, TypeAdapter, ValidationError

from app.config import get_settings
from core.models import Candle

logger = logging.getLogger(__name__)

router = APIRouter()
push_router = APIRouter()

_candle_list = TypeAdapter(list[Candle])


class PushResponse(BaseModel):
    """Bulk overwrite response model."""

    ok: bool
    count: int | None = None
    reason: str | None = None


# Dependency for the stream coordinator owned by the running app
def get_coordinator(request: Request):
    return request.app.state.coordinator


@router.get("/last-signal")
async def get_last_signal(coordinator=Depends(get_coordinator)):
    """Get the most recent signal, or an empty object before the first one."""
    signal = coordinator.last_signal
    if signal is None:
        return {}
    return signal.to_payload()


@router.get("/ohlc")
async def get_ohlc(
    limit: int | None = Query(None, ge=1, le=500, description="Maximum candles to return"),
    coordinator=Depends(get_coordinator),
):
    """Get the most recent closed candles, oldest first."""
    if limit is None:
        limit = get_settings().ohlc_read_limit
    return [c.to_payload() for c in coordinator.snapshot(limit)]


@push_router.post("/push-ohlc", response_model=PushResponse, response_model_exclude_none=True)
async def push_ohlc(
    payload: Any = Body(None),
    coordinator=Depends(get_coordinator),
):
    """Overwrite the candle history with a JSON array of candles.

    Only the newest candles that fit in the history are kept. The history
    is left untouched when the body is rejected.
    """
    if not isinstance(payload, list):
        return ORJSONResponse(
            status_code=400,
            content={"ok": False, "reason": "send array"},
        )

    try:
        candles = _candle_list.validate_python(payload)
    except ValidationError as e:
        logger.warning(f"Rejected candle overwrite: {e.error_count()} invalid field(s)")
        return ORJSONResponse(
            status_code=400,
            content={"ok": False, "reason": f"invalid candles: {e.error_count()} error(s)"},
        )

    count = coordinator.overwrite(candles)
    return PushResponse(ok=True, count=count)
