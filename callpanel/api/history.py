import asyncio
import logging

from fastapi import APIRouter, Query, Request

from ..config import HISTORY_DEFAULT_LIMIT, HISTORY_MAX_LIMIT
from .response_builders import build_failure_response, build_internal_error_response

router = APIRouter(tags=["History"])
logger = logging.getLogger("callpanel.history")


@router.get("/channels/{slug}/history")
async def channel_history(
    slug: str,
    request: Request,
    limit: int = Query(HISTORY_DEFAULT_LIMIT, ge=1, le=HISTORY_MAX_LIMIT),
):
    """Latest calls of a channel, newest first. Displays use it to repaint after reconnecting."""
    try:
        calls = await asyncio.to_thread(request.app.state.channel_service.history, slug, limit)
    except Exception:
        logger.exception("History lookup failed", extra={"channel": slug})
        return build_internal_error_response()

    if calls is None:
        return build_failure_response(404, "Channel not found")

    return {"success": True, "data": [c.to_wire() for c in calls]}
