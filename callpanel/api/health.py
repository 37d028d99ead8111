"""
Health and Prometheus endpoints - no authentication required by default
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request, Response
from fastapi.responses import PlainTextResponse

from ..auth.deps import require_admin
from ..config import API_VERSION, ENVIRONMENT, PUBLIC_METRICS
from ..services.prometheus_metrics import prometheus_metrics

router = APIRouter()


@router.get("/health", include_in_schema=False)
async def health(request: Request):
    state = request.app.state
    return {
        "status": "ok",
        "version": API_VERSION,
        "environment": ENVIRONMENT,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.monotonic() - state.started_at, 3),
        "connectedClients": state.gateway.client_count,
        "pendingPairings": state.pairing.pending_count(),
    }


@router.get("/metrics", summary="Prometheus metrics")
async def get_prometheus_metrics(request: Request) -> Response:
    """
    Get metrics in Prometheus exposition format.
    """
    if not PUBLIC_METRICS:
        require_admin(request)
    try:
        return PlainTextResponse(
            content=prometheus_metrics.get_metrics(),
            media_type=prometheus_metrics.get_content_type()
        )
    except Exception as e:
        logging.getLogger("callpanel").error(f"Failed to get metrics: {e}")
        return PlainTextResponse(
            content="# Metrics temporarily unavailable\n",
            media_type="text/plain"
        )
