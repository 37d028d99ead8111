"""
Tenant-scoped channel management. Every route resolves the tenant from
x-tenant-token; channels owned by other tenants read as not found.
"""
import asyncio
import logging

from fastapi import APIRouter, Depends, Request

from ..auth.deps import require_tenant
from ..config import API_PREFIX
from ..errors import ChannelNotFound, SlugConflict
from ..models.tenant import Tenant
from ..schemas.channel import ChannelCreate, ChannelOut, ChannelUpdate
from .response_builders import build_failure_response

router = APIRouter(prefix="/tenant/channels", tags=["Channels"])
logger = logging.getLogger("callpanel.channels")


def _out(channel) -> dict:
    return ChannelOut.model_validate(channel).model_dump(mode="json", by_alias=True)


def _instructions(slug: str, api_key: str) -> dict:
    return {
        "endpoint": f"{API_PREFIX}/chamada",
        "method": "POST",
        "headers": {
            "Content-Type": "application/json",
            "x-auth-token": api_key,
            "x-channel-id": slug,
        },
        "socket": {"path": "/ws", "query": {"channelSlug": slug, "token": "<client token from pairing>"}},
    }


@router.get("")
async def list_channels(request: Request, tenant: Tenant = Depends(require_tenant)):
    channels = await asyncio.to_thread(request.app.state.channel_service.list_by_tenant, tenant.id)
    return {"success": True, "data": [_out(c) for c in channels]}


@router.post("", status_code=201)
async def create_channel(body: ChannelCreate, request: Request, tenant: Tenant = Depends(require_tenant)):
    """Create a channel and hand back its ingestion secret (shown only here and on rotation)"""
    service = request.app.state.channel_service
    try:
        channel = await asyncio.to_thread(service.create_channel, tenant.id, body.slug, body.name, body.system)
    except SlugConflict:
        return build_failure_response(409, "Slug already in use")

    return {
        "success": True,
        "data": {
            **_out(channel),
            "apiKey": channel.api_key,
            "instructions": _instructions(channel.slug, channel.api_key),
        },
    }


@router.patch("/{slug}")
async def update_channel(slug: str, body: ChannelUpdate, request: Request, tenant: Tenant = Depends(require_tenant)):
    service = request.app.state.channel_service
    try:
        channel = await asyncio.to_thread(service.update_channel, slug, tenant.id, body.name, body.system)
    except ChannelNotFound:
        return build_failure_response(404, "Channel not found")
    return {"success": True, "data": _out(channel)}


@router.delete("/{slug}")
async def delete_channel(slug: str, request: Request, tenant: Tenant = Depends(require_tenant)):
    """Soft delete: the channel stops ingesting and its history stays"""
    service = request.app.state.channel_service
    try:
        await asyncio.to_thread(service.deactivate_channel, slug, tenant.id)
    except ChannelNotFound:
        return build_failure_response(404, "Channel not found")
    return {"success": True, "message": "Channel deactivated"}


@router.post("/{slug}/rotate-key")
async def rotate_channel_key(slug: str, request: Request, tenant: Tenant = Depends(require_tenant)):
    service = request.app.state.channel_service
    try:
        channel = await asyncio.to_thread(service.rotate_channel_key, slug, tenant.id)
    except ChannelNotFound:
        return build_failure_response(404, "Channel not found")
    logger.warning("Channel secret rotated, paired displays must re-pair", extra={"channel": slug})
    return {"success": True, "data": {"slug": channel.slug, "apiKey": channel.api_key}}
