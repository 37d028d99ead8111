"""
Connection gateway for display sockets.

Two room kinds share one transport:
  - pairing rooms (`pairing-{code}`), open to anonymous sockets, used only to
    deliver the one-shot `paired` event;
  - channel rooms (keyed by channel slug), joinable only by sockets that
    presented a token signed with that channel's secret.

Room membership and the pairing registry live on the event loop; the only
awaited I/O (channel lookup) runs before any of that state is touched.
Each connection owns an outbound queue drained by its own sender task, so a
broadcast never waits on a slow client and per-room order is preserved.
"""
import asyncio
import itertools
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from .auth.tokens import strip_bearer, verify_token
from .config import SOCKET_SEND_QUEUE_MAX
from .services.pairing import PairingRegistry, is_valid_code, pairing_room
from .services.prometheus_metrics import prometheus_metrics

logger = logging.getLogger("callpanel.gateway")

CALL_UPDATE_EVENT = "call_update"
ERROR_EVENT = "error"
JOINED_EVENT = "joined"
CODE_REGISTERED_EVENT = "code_registered"

# Close codes sent when a handshake is refused
CLOSE_UNAUTHORIZED = 4401
CLOSE_NOT_FOUND = 4404
CLOSE_INTERNAL = 1011

ChannelLookup = Callable[[str], Awaitable[Optional[Any]]]


class SocketAuthError(Exception):
    def __init__(self, reason: str, code: int):
        self.reason = reason
        self.code = code
        super().__init__(reason)


class Connection:
    """One accepted socket and its outbound queue"""

    def __init__(self, websocket, client_id: str, auth: Optional[Dict[str, Any]], queue_max: int = SOCKET_SEND_QUEUE_MAX):
        self.websocket = websocket
        self.id = client_id
        self.auth = auth
        self.rooms: Set[str] = set()
        self._queue: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue(maxsize=queue_max)

    @property
    def authenticated(self) -> bool:
        return self.auth is not None

    @property
    def channel(self) -> Optional[str]:
        return self.auth.get("channel") if self.auth else None

    def send(self, event: str, data: Any) -> bool:
        message = {"event": event, "data": data}
        try:
            self._queue.put_nowait(message)
            return True
        except asyncio.QueueFull:
            # Drop the oldest pending message to make room
            try:
                self._queue.get_nowait()
                self._queue.put_nowait(message)
            except (asyncio.QueueEmpty, asyncio.QueueFull):
                return False
            prometheus_metrics.increment_socket_dropped()
            logger.warning("Socket queue full, dropped oldest message", extra={"client_id": self.id})
            return True

    async def run_sender(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                await self.websocket.send_json(message)
            except Exception:
                logger.info("Socket send failed, stopping sender", extra={"client_id": self.id})
                return


class ConnectionGateway:
    def __init__(self, lookup_channel: ChannelLookup, queue_max: int = SOCKET_SEND_QUEUE_MAX):
        self._lookup_channel = lookup_channel
        self._queue_max = queue_max
        self._rooms: Dict[str, Set[Connection]] = {}
        self._connections: Dict[str, Connection] = {}
        self._ids = itertools.count(1)
        self.pairing: Optional[PairingRegistry] = None

    # ----- handshake -----

    async def authenticate(self, auth: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Verify the handshake auth payload.

        Returns the verified token payload, or None for an anonymous socket
        (no channelSlug). Raises SocketAuthError when the socket must be refused.
        """
        channel_slug = auth.get("channelSlug")
        if not channel_slug:
            return None

        token = strip_bearer(auth.get("token"))
        if not token:
            raise SocketAuthError("TokenMissing", CLOSE_UNAUTHORIZED)

        try:
            channel = await self._lookup_channel(channel_slug)
            if channel is None:
                raise SocketAuthError("ChannelNotFound", CLOSE_NOT_FOUND)
            payload = verify_token(token, channel.api_key)
        except SocketAuthError:
            raise
        except Exception:
            logger.exception("Socket authentication failed unexpectedly", extra={"channel": channel_slug})
            raise SocketAuthError("InternalError", CLOSE_INTERNAL)

        if payload is None:
            raise SocketAuthError("InvalidToken", CLOSE_UNAUTHORIZED)
        return payload

    # ----- membership -----

    def connect(self, websocket, auth: Optional[Dict[str, Any]]) -> Connection:
        conn = Connection(websocket, f"sock-{next(self._ids)}", auth, self._queue_max)
        self._connections[conn.id] = conn
        prometheus_metrics.set_sockets_connected(len(self._connections))
        logger.info("Socket connected", extra={"client_id": conn.id, "channel": conn.channel})
        return conn

    def disconnect(self, conn: Connection) -> None:
        for room in conn.rooms:
            members = self._rooms.get(room)
            if members is not None:
                members.discard(conn)
                if not members:
                    del self._rooms[room]
        conn.rooms.clear()
        self._connections.pop(conn.id, None)
        prometheus_metrics.set_sockets_connected(len(self._connections))
        logger.info("Socket disconnected", extra={"client_id": conn.id})

    def join(self, conn: Connection, room: str) -> None:
        self._rooms.setdefault(room, set()).add(conn)
        conn.rooms.add(room)
        conn.send(JOINED_EVENT, {"room": room})
        logger.info(
            "Socket joined room",
            extra={"client_id": conn.id, "room": room, "members": self.room_size(room)},
        )

    def room_size(self, room: str) -> int:
        return len(self._rooms.get(room, ()))

    @property
    def client_count(self) -> int:
        return len(self._connections)

    # ----- outbound -----

    def emit(self, room: str, event: str, data: Any) -> int:
        """Queue an event for every socket currently in the room"""
        members = list(self._rooms.get(room, ()))
        for conn in members:
            conn.send(event, data)
        prometheus_metrics.increment_broadcasts(event)
        return len(members)

    def broadcast_call(self, channel: Any, payload: Dict[str, Any]) -> int:
        if not isinstance(channel, str) or not channel:
            logger.warning("broadcast_call skipped: invalid channel %r", channel)
            return 0
        delivered = self.emit(channel, CALL_UPDATE_EVENT, payload)
        logger.info("Call broadcast", extra={"channel": channel, "subscribers": delivered})
        return delivered

    # ----- inbound -----

    def handle_raw(self, conn: Connection, raw: str) -> None:
        try:
            message = json.loads(raw)
        except (ValueError, RecursionError):
            conn.send(ERROR_EVENT, {"error": "BadRequest", "message": "Frame is not valid JSON"})
            return
        self.handle_message(conn, message)

    def handle_message(self, conn: Connection, message: Any) -> None:
        if not isinstance(message, dict) or not isinstance(message.get("event"), str):
            conn.send(ERROR_EVENT, {"error": "BadRequest", "message": "Expected {event, data}"})
            return

        event = message["event"]
        data = message.get("data")

        if event == "join_channel":
            self._on_join_channel(conn, data)
        elif event == "waiting_pair":
            self._on_waiting_pair(conn, data)
        elif event == "register_temp_code":
            self._on_register_temp_code(conn, data)
        else:
            conn.send(ERROR_EVENT, {"error": "BadRequest", "message": f"Unknown event: {event}"})

    def _on_join_channel(self, conn: Connection, channel_id: Any) -> None:
        if not conn.authenticated:
            logger.warning("Anonymous socket tried to join a channel", extra={"client_id": conn.id})
            conn.send(ERROR_EVENT, {"error": "Unauthorized", "message": "Authentication required to join a channel"})
            return
        if not isinstance(channel_id, str) or not channel_id:
            conn.send(ERROR_EVENT, {"error": "BadRequest", "message": "Channel id must be a non-empty string"})
            return
        self.join(conn, channel_id)

    def _on_waiting_pair(self, conn: Connection, code: Any) -> None:
        if not is_valid_code(code):
            conn.send(ERROR_EVENT, {"error": "BadRequest", "message": "Code must be 6 digits"})
            return
        self.join(conn, pairing_room(code))

    def _on_register_temp_code(self, conn: Connection, data: Any) -> None:
        code = data.get("code") if isinstance(data, dict) else None
        if not is_valid_code(code):
            conn.send(ERROR_EVENT, {"error": "BadRequest", "message": "Code must be 6 digits"})
            return
        if self.pairing is None:
            logger.error("register_temp_code received but no pairing registry is attached")
            conn.send(ERROR_EVENT, {"error": "InternalError"})
            return
        refreshed = self.pairing.is_pending(code)
        self.pairing.register(code)
        logger.info("Pairing code registered", extra={"client_id": conn.id, "refreshed": refreshed})
        conn.send(CODE_REGISTERED_EVENT, {"code": code, "refreshed": refreshed})
