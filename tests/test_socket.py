"""
Socket endpoint tests over the in-process transport
"""
import pytest
from starlette.websockets import WebSocketDisconnect

from callpanel.auth.tokens import issue_client_token


def socket_url(channel_slug=None, token=None):
    params = []
    if channel_slug:
        params.append(f"channelSlug={channel_slug}")
    if token:
        params.append(f"token={token}")
    return "/ws" + ("?" + "&".join(params) if params else "")


def rejection(client, url):
    """Refusals are accepted first, then closed with the reason code"""
    with client.websocket_connect(url) as ws:
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_json()
    return exc.value


def test_channel_without_token_is_rejected(client, channel):
    closed = rejection(client, socket_url(channel.slug))
    assert closed.code == 4401
    assert closed.reason == "TokenMissing"


def test_unknown_channel_is_rejected(client, channel):
    token = issue_client_token(channel.slug, channel.api_key)
    closed = rejection(client, socket_url("nao-existe", token))
    assert closed.code == 4404
    assert closed.reason == "ChannelNotFound"


def test_token_signed_by_other_channel_is_rejected(client, channel):
    token = issue_client_token(channel.slug, "7e9a1b3c-2d4f-4e6a-8b0c-1d2e3f4a5b6c")
    closed = rejection(client, socket_url(channel.slug, token))
    assert closed.code == 4401
    assert closed.reason == "InvalidToken"


def test_joined_display_receives_call(client, channel, ingest_headers, sga_payload):
    token = issue_client_token(channel.slug, channel.api_key)
    with client.websocket_connect(socket_url(channel.slug, token)) as ws:
        ws.send_json({"event": "join_channel", "data": channel.slug})
        assert ws.receive_json() == {"event": "joined", "data": {"room": channel.slug}}

        response = client.post("/api/v1/chamada", json=sga_payload, headers=ingest_headers)
        assert response.status_code == 200

        message = ws.receive_json()
        assert message["event"] == "call_update"
        assert message["data"] == response.json()["data"]["call"]


def test_anonymous_socket_cannot_join_channel(client, channel):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"event": "join_channel", "data": channel.slug})
        message = ws.receive_json()
        assert message["event"] == "error"
        assert message["data"]["error"] == "Unauthorized"


def test_connected_display_is_counted(app, client, channel):
    token = issue_client_token(channel.slug, channel.api_key)
    with client.websocket_connect(socket_url(channel.slug, token)) as ws:
        ws.send_json({"event": "join_channel", "data": channel.slug})
        ws.receive_json()
        assert app.state.gateway.room_size(channel.slug) == 1
        assert client.get("/health").json()["connectedClients"] == 1


def test_binary_frame_gets_error_and_socket_stays_open(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_bytes(b"\x00\x01")
        message = ws.receive_json()
        assert message["event"] == "error"
        assert message["data"]["error"] == "BadRequest"

        ws.send_json({"event": "waiting_pair", "data": "123456"})
        assert ws.receive_json() == {"event": "joined", "data": {"room": "pairing-123456"}}


def test_deeply_nested_frame_gets_error(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("[" * 100000)
        assert ws.receive_json()["event"] == "error"

        ws.send_json({"event": "waiting_pair", "data": "123456"})
        assert ws.receive_json()["event"] == "joined"
