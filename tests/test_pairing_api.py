"""
Pairing flow: display socket registers a code, operator validates it over HTTP
"""
from callpanel.auth.tokens import verify_token

VALIDATE = "/api/v1/pairing/validate"


def open_pairing(ws, code="123456"):
    ws.send_json({"event": "waiting_pair", "data": code})
    assert ws.receive_json() == {"event": "joined", "data": {"room": f"pairing-{code}"}}
    ws.send_json({"event": "register_temp_code", "data": {"code": code}})
    assert ws.receive_json() == {"event": "code_registered", "data": {"code": code, "refreshed": False}}


def test_pairing_delivers_scoped_token_once(client, channel, admin_headers):
    with client.websocket_connect("/ws") as ws:
        open_pairing(ws)

        response = client.post(VALIDATE, json={"code": "123456", "channelSlug": channel.slug}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["success"] is True

        paired = ws.receive_json()
        assert paired["event"] == "paired"
        assert paired["data"]["slug"] == channel.slug
        payload = verify_token(paired["data"]["token"], channel.api_key)
        assert payload["role"] == "client"
        assert payload["channel"] == channel.slug

        # Single use
        again = client.post(VALIDATE, json={"code": "123456", "channelSlug": channel.slug}, headers=admin_headers)
        assert again.status_code == 410
        assert again.json() == {"success": False, "error": "Invalid or expired code"}

        # Next frame answers this message, so no second `paired` was queued
        ws.send_json({"event": "bogus"})
        assert ws.receive_json()["event"] == "error"


def test_paired_token_opens_channel_socket(client, channel, admin_headers):
    with client.websocket_connect("/ws") as ws:
        open_pairing(ws, "654321")
        client.post(VALIDATE, json={"code": "654321", "channelSlug": channel.slug}, headers=admin_headers)
        token = ws.receive_json()["data"]["token"]

    with client.websocket_connect(f"/ws?channelSlug={channel.slug}&token={token}") as display:
        display.send_json({"event": "join_channel", "data": channel.slug})
        assert display.receive_json()["event"] == "joined"


def test_expired_code(client, channel, admin_headers, clock):
    with client.websocket_connect("/ws") as ws:
        open_pairing(ws)
        clock.advance(300)
        response = client.post(VALIDATE, json={"code": "123456", "channelSlug": channel.slug}, headers=admin_headers)
    assert response.status_code == 410


def test_unregistered_code(client, channel, admin_headers):
    response = client.post(VALIDATE, json={"code": "000000", "channelSlug": channel.slug}, headers=admin_headers)
    assert response.status_code == 410


def test_unknown_channel(client, channel, admin_headers):
    response = client.post(VALIDATE, json={"code": "123456", "channelSlug": "nao-existe"}, headers=admin_headers)
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Channel not found"}


def test_admin_key_required(client, channel):
    body = {"code": "123456", "channelSlug": channel.slug}
    assert client.post(VALIDATE, json=body).status_code == 401
    assert client.post(VALIDATE, json=body, headers={"x-admin-key": "wrong"}).status_code == 403


def test_body_validation(client, channel, admin_headers):
    response = client.post(VALIDATE, json={"code": "12ab56", "channelSlug": channel.slug}, headers=admin_headers)
    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert any(d["loc"][-1] == "code" for d in body["details"])

    response = client.post(VALIDATE, json={"code": "123456", "channelSlug": "ab"}, headers=admin_headers)
    assert response.status_code == 422


def test_channel_lookup_failure(app, client, channel, admin_headers, monkeypatch):
    def failing_lookup(slug):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(app.state.channel_service, "find_by_slug", failing_lookup)

    response = client.post(VALIDATE, json={"code": "123456", "channelSlug": channel.slug}, headers=admin_headers)
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal error"}


def test_registry_failure(app, client, channel, admin_headers, monkeypatch):
    app.state.pairing.register("123456")

    def failing_validate(*args):
        raise RuntimeError("signing failed")

    monkeypatch.setattr(app.state.pairing, "validate", failing_validate)

    response = client.post(VALIDATE, json={"code": "123456", "channelSlug": channel.slug}, headers=admin_headers)
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal error"}
    assert app.state.pairing.is_pending("123456")
