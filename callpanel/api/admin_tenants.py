import asyncio
import logging

from fastapi import APIRouter, Depends, Request

from ..auth.deps import require_admin
from ..errors import SlugConflict, TenantNotFound
from ..schemas.tenant import TenantCreate, TenantOut, TenantStatusUpdate
from .response_builders import build_failure_response

router = APIRouter(prefix="/admin/tenants", tags=["Admin"], dependencies=[Depends(require_admin)])
logger = logging.getLogger("callpanel.admin")


def _out(tenant) -> dict:
    return TenantOut.model_validate(tenant).model_dump(mode="json", by_alias=True)


@router.post("", status_code=201)
async def create_tenant(body: TenantCreate, request: Request):
    service = request.app.state.tenant_service
    webhook_url = str(body.webhookUrl) if body.webhookUrl else None
    try:
        tenant = await asyncio.to_thread(service.create_tenant, body.name, body.slug, webhook_url)
    except SlugConflict:
        return build_failure_response(409, "Slug already in use")
    return {"success": True, "data": {**_out(tenant), "apiToken": tenant.api_token}}


@router.get("")
async def list_tenants(request: Request):
    tenants = await asyncio.to_thread(request.app.state.tenant_service.list_all)
    return {"success": True, "data": [_out(t) for t in tenants]}


@router.post("/{tenant_id}/rotate-key")
async def rotate_tenant_key(tenant_id: str, request: Request):
    try:
        tenant = await asyncio.to_thread(request.app.state.tenant_service.rotate_tenant_key, tenant_id)
    except TenantNotFound:
        return build_failure_response(404, "Tenant not found")
    return {"success": True, "data": {"id": tenant.id, "apiToken": tenant.api_token}}


@router.patch("/{tenant_id}")
async def set_tenant_status(tenant_id: str, body: TenantStatusUpdate, request: Request):
    """Kill switch. Deactivating a tenant refuses ingestion on all of its channels."""
    try:
        tenant = await asyncio.to_thread(request.app.state.tenant_service.set_active, tenant_id, body.isActive)
    except TenantNotFound:
        return build_failure_response(404, "Tenant not found")
    return {"success": True, "data": _out(tenant)}
