import asyncio
import logging
import secrets

from fastapi import Request

from callpanel.api.response_builders import ApiError
from callpanel.models.channel import Channel
from callpanel.models.tenant import Tenant

log = logging.getLogger("callpanel.auth")


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def require_channel(request: Request) -> Channel:
    """Ingestion auth: channel secret + slug headers, then the tenant kill switch"""
    api_key = request.headers.get("x-auth-token")
    channel_slug = request.headers.get("x-channel-id")

    if not api_key or not channel_slug:
        raise ApiError(400, "Bad Request", "Headers x-auth-token and x-channel-id are required")

    channels = request.app.state.channel_service
    try:
        channel = await asyncio.to_thread(channels.find_by_api_key_and_slug, api_key, channel_slug)
    except Exception:
        log.exception("AUTH: channel lookup failed", extra={"channel": channel_slug})
        raise ApiError(500, "Internal Server Error")

    if channel is None:
        log.warning("AUTH: invalid channel credentials", extra={"channel": channel_slug, "client_ip": _client_ip(request)})
        raise ApiError(401, "Unauthorized", "Invalid token or inactive channel")

    if not channel.is_reachable:
        log.warning("AUTH: tenant inactive, ingestion refused", extra={"channel": channel_slug, "tenant_id": channel.tenant_id})
        raise ApiError(403, "Forbidden", "Tenant is inactive")

    request.state.channel = channel
    request.state.tenant_id = channel.tenant_id
    return channel


async def require_tenant(request: Request) -> Tenant:
    """Tenant-scoped management auth via x-tenant-token"""
    token = request.headers.get("x-tenant-token")
    if not token:
        log.warning("AUTH: tenant token missing", extra={"client_ip": _client_ip(request)})
        raise ApiError(401, "Unauthorized", "Header x-tenant-token is required")

    tenants = request.app.state.tenant_service
    try:
        tenant = await asyncio.to_thread(tenants.find_by_api_token, token)
    except Exception:
        log.exception("AUTH: tenant lookup failed")
        raise ApiError(500, "Internal Server Error")

    if tenant is None:
        log.warning("AUTH: invalid or inactive tenant token", extra={"client_ip": _client_ip(request)})
        raise ApiError(401, "Unauthorized", "Invalid token or inactive tenant")

    request.state.tenant_id = tenant.id
    return tenant


def require_admin(request: Request) -> None:
    """System admin auth via x-admin-key"""
    admin_key = request.headers.get("x-admin-key")
    if not admin_key:
        log.warning("AUTH: admin key missing", extra={"client_ip": _client_ip(request)})
        raise ApiError(401, "Unauthorized", "Header x-admin-key is required")

    expected = request.app.state.admin_api_key
    if not expected or not secrets.compare_digest(admin_key.encode(), expected.encode()):
        log.warning("AUTH: invalid admin key", extra={"client_ip": _client_ip(request)})
        raise ApiError(403, "Forbidden", "Access denied")
