"""
Integration tests for POST /api/v1/chamada
"""
from callpanel.services.channels import ChannelService
from callpanel.services.tenants import TenantService

INGEST = "/api/v1/chamada"


def test_sga_call_is_accepted(client, ingest_headers, sga_payload, channel):
    """SGA body is normalized, persisted and echoed back"""
    response = client.post(INGEST, json=sga_payload, headers=ingest_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["channel"] == channel.slug

    call = body["data"]["call"]
    assert call["name"] == "A001"
    assert call["destination"] == "Sala 1 1"
    assert call["isPriority"] is True
    assert call["rawSource"] == "NovoSGA"
    assert call["id"] == body["data"]["id"]
    assert "X-Request-ID" in response.headers


def test_versa_call_is_accepted(client, ingest_headers, versa_payload):
    response = client.post(INGEST, json=versa_payload, headers=ingest_headers)
    assert response.status_code == 200
    call = response.json()["data"]["call"]
    assert call["name"] == "Maria Souza"
    assert call["professional"] == "Dr. Lima"
    assert call["isPriority"] is False


def test_accepted_call_is_persisted(client, ingest_headers, sga_payload, channel):
    posted = client.post(INGEST, json=sga_payload, headers=ingest_headers).json()
    history = client.get(f"/api/v1/channels/{channel.slug}/history").json()["data"]
    assert [c["id"] for c in history] == [posted["data"]["id"]]


def test_missing_headers(client, sga_payload, channel):
    response = client.post(INGEST, json=sga_payload, headers={"x-channel-id": channel.slug})
    assert response.status_code == 400
    assert response.json()["error"] == "Bad Request"


def test_wrong_channel_key(client, sga_payload, channel):
    headers = {"x-auth-token": "not-the-key", "x-channel-id": channel.slug}
    response = client.post(INGEST, json=sga_payload, headers=headers)
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized"


def test_key_of_another_channel(client, sga_payload, channel, session_factory, tenant):
    other = ChannelService(session_factory).create_channel(tenant.id, "triagem", "Triagem")
    headers = {"x-auth-token": other.api_key, "x-channel-id": channel.slug}
    assert client.post(INGEST, json=sga_payload, headers=headers).status_code == 401


def test_inactive_tenant_is_forbidden(client, ingest_headers, sga_payload, session_factory, tenant):
    """Kill switch: a previously valid key gets 403, not 401"""
    assert client.post(INGEST, json=sga_payload, headers=ingest_headers).status_code == 200

    TenantService(session_factory).set_active(tenant.id, False)

    response = client.post(INGEST, json=sga_payload, headers=ingest_headers)
    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden", "message": "Tenant is inactive"}


def test_invalid_json_body(client, ingest_headers):
    headers = {**ingest_headers, "Content-Type": "application/json"}
    response = client.post(INGEST, content=b"{not json", headers=headers)
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_invalid_sga_payload(client, ingest_headers, sga_payload):
    del sga_payload["numeroLocal"]
    response = client.post(INGEST, json=sga_payload, headers=ingest_headers)
    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Invalid payload"
    assert [d["path"] for d in body["details"]] == ["numeroLocal"]


def test_unknown_format(client, ingest_headers):
    response = client.post(INGEST, json={"ticket": "A001"}, headers=ingest_headers)
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Unknown or unsupported payload format"}


def test_persistence_failure_does_not_broadcast(app, client, ingest_headers, sga_payload, monkeypatch):
    broadcasts = []

    def failing_insert(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr(app.state.call_service, "insert_call", failing_insert)
    monkeypatch.setattr(app.state.gateway, "broadcast_call", lambda *a: broadcasts.append(a))

    response = client.post(INGEST, json=sga_payload, headers=ingest_headers)
    assert response.status_code == 500
    assert broadcasts == []
    assert "disk full" not in response.text


def test_channel_lookup_failure(app, client, ingest_headers, sga_payload, monkeypatch):
    def failing_lookup(*args):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(app.state.channel_service, "find_by_api_key_and_slug", failing_lookup)

    response = client.post(INGEST, json=sga_payload, headers=ingest_headers)
    assert response.status_code == 500
    assert response.json() == {"error": "Internal Server Error"}
    assert "database is locked" not in response.text
