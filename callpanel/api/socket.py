"""
Display socket endpoint.

Handshake auth comes from the query string: `channelSlug` and `token`
(a repeated `token` parameter is read as an array). Sockets without a
channelSlug connect anonymously and may only use pairing rooms.

Refused handshakes are accepted and then closed with the 44xx/1011 code and
reason, since a close before accept reaches browsers as a bare HTTP 403.
"""
import asyncio
import logging
from contextlib import suppress

from fastapi import APIRouter, WebSocket

from ..gateway import ERROR_EVENT, SocketAuthError
from ..services.prometheus_metrics import prometheus_metrics

router = APIRouter()
logger = logging.getLogger("callpanel.gateway")


@router.websocket("/ws")
async def display_socket(websocket: WebSocket):
    gateway = websocket.app.state.gateway
    tokens = websocket.query_params.getlist("token")
    auth = {
        "channelSlug": websocket.query_params.get("channelSlug"),
        "token": tokens if len(tokens) > 1 else (tokens[0] if tokens else None),
    }

    try:
        verified = await gateway.authenticate(auth)
    except SocketAuthError as e:
        logger.warning("Socket rejected: %s", e.reason, extra={"channel": auth["channelSlug"]})
        prometheus_metrics.increment_socket_rejected(e.reason)
        await websocket.accept()
        await websocket.close(code=e.code, reason=e.reason)
        return

    await websocket.accept()
    conn = gateway.connect(websocket, verified)
    sender = asyncio.create_task(conn.run_sender())
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            text = message.get("text")
            if text is None:
                conn.send(ERROR_EVENT, {"error": "BadRequest", "message": "Only text frames are accepted"})
                continue
            gateway.handle_raw(conn, text)
    finally:
        gateway.disconnect(conn)
        sender.cancel()
        with suppress(asyncio.CancelledError):
            await sender
