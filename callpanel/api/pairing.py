import asyncio
import logging

from fastapi import APIRouter, Depends, Request

from ..auth.deps import require_admin
from ..errors import ExpiredOrInvalidCode
from ..schemas.pairing import PairingValidateRequest
from ..services.prometheus_metrics import prometheus_metrics
from .response_builders import build_failure_response

router = APIRouter()
logger = logging.getLogger("callpanel.pairing")


@router.post("/pairing/validate", dependencies=[Depends(require_admin)])
async def validate_pairing(body: PairingValidateRequest, request: Request):
    """Bind a display's pending code to a channel and push it a scoped token"""
    channels = request.app.state.channel_service
    try:
        channel = await asyncio.to_thread(channels.find_by_slug, body.channelSlug)
    except Exception:
        logger.exception("Pairing failed: channel lookup error", extra={"channel": body.channelSlug})
        prometheus_metrics.increment_pairing("error")
        return build_failure_response(500, "Internal error")

    if channel is None:
        prometheus_metrics.increment_pairing("channel_not_found")
        return build_failure_response(404, "Channel not found")

    try:
        request.app.state.pairing.validate(body.code, channel.slug, channel.api_key)
    except ExpiredOrInvalidCode as e:
        prometheus_metrics.increment_pairing("invalid_code")
        return build_failure_response(410, str(e))
    except Exception:
        logger.exception("Pairing failed", extra={"channel": channel.slug})
        prometheus_metrics.increment_pairing("error")
        return build_failure_response(500, "Internal error")

    prometheus_metrics.increment_pairing("paired")
    return {"success": True, "message": "Pairing completed"}
