import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request

from ..auth.deps import require_channel
from ..errors import PayloadValidationError, UnknownFormatError
from ..models.channel import Channel
from ..schemas.call import CallEntity
from ..services.normalizer import normalize
from ..services.prometheus_metrics import prometheus_metrics
from .response_builders import (
    build_failure_response, build_internal_error_response, build_validation_error_response
)

router = APIRouter()
logger = logging.getLogger("callpanel.ingest")


async def _persist_and_broadcast(request: Request, channel: Channel, call: CallEntity, body: Any) -> CallEntity:
    call_id = await asyncio.to_thread(request.app.state.call_service.insert_call, channel.id, call, body)
    persisted = call.model_copy(update={"id": call_id})
    request.app.state.gateway.broadcast_call(channel.slug, persisted.to_wire())
    return persisted


@router.post("/chamada")
async def ingest_call(request: Request, channel: Channel = Depends(require_channel)):
    """Normalize an upstream call, persist it and broadcast it to the channel room"""
    trace_id = getattr(request.state, "trace_id", None)

    raw = await request.body()
    try:
        body = json.loads(raw) if raw else None
    except ValueError:
        prometheus_metrics.increment_ingest_reject("invalid_json")
        return build_failure_response(400, "Body is not valid JSON")

    try:
        call = normalize(body)
    except PayloadValidationError as e:
        logger.warning("Ingest rejected - invalid payload", extra={
            "trace_id": trace_id,
            "component": "ingest",
            "channel": channel.slug,
            "source": e.source,
            "issues": len(e.issues),
        })
        prometheus_metrics.increment_ingest_reject("validation")
        return build_validation_error_response(e.issues)
    except UnknownFormatError as e:
        logger.warning("Ingest rejected - unknown format", extra={
            "trace_id": trace_id,
            "component": "ingest",
            "channel": channel.slug,
        })
        prometheus_metrics.increment_ingest_reject("unknown_format")
        return build_failure_response(400, str(e))

    # Shielded so an abandoned request still persists and broadcasts
    try:
        persisted = await asyncio.shield(_persist_and_broadcast(request, channel, call, body))
    except Exception:
        logger.exception("Ingest failed while persisting call", extra={
            "trace_id": trace_id,
            "component": "ingest",
            "channel": channel.slug,
        })
        prometheus_metrics.increment_ingest_reject("persistence")
        return build_internal_error_response()

    prometheus_metrics.increment_calls_ingested(persisted.raw_source)
    logger.info("Call ingested", extra={
        "trace_id": trace_id,
        "component": "ingest",
        "channel": channel.slug,
        "source": persisted.raw_source,
        "call_id": persisted.id,
    })

    return {
        "success": True,
        "data": {
            "id": persisted.id,
            "channel": channel.slug,
            "call": persisted.to_wire(),
        },
    }
