import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from callpanel.errors import SlugConflict, TenantNotFound
from callpanel.models.tenant import Tenant

logger = logging.getLogger("callpanel.tenants")


class TenantService:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def create_tenant(self, name: str, slug: str, webhook_url: Optional[str] = None) -> Tenant:
        """Create an active tenant with a freshly generated management token"""
        with self._session_factory() as db:
            if db.execute(select(Tenant.id).where(Tenant.slug == slug)).first():
                raise SlugConflict(slug)
            tenant = Tenant(
                name=name,
                slug=slug,
                webhook_url=webhook_url,
                api_token=str(uuid.uuid4()),
                is_active=True,
            )
            db.add(tenant)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise SlugConflict(slug) from e
            db.refresh(tenant)
            logger.info("Tenant created", extra={"tenant_id": tenant.id, "slug": slug})
            return tenant

    def find_by_api_token(self, api_token: str) -> Optional[Tenant]:
        """Active tenant owning the management token"""
        with self._session_factory() as db:
            stmt = select(Tenant).where(Tenant.api_token == api_token, Tenant.is_active.is_(True))
            return db.execute(stmt).scalar_one_or_none()

    def list_all(self) -> List[Tenant]:
        with self._session_factory() as db:
            return list(db.execute(select(Tenant).order_by(Tenant.created_at.desc())).scalars())

    def rotate_tenant_key(self, tenant_id: str) -> Tenant:
        with self._session_factory() as db:
            tenant = db.get(Tenant, tenant_id)
            if tenant is None:
                raise TenantNotFound(tenant_id)
            tenant.api_token = str(uuid.uuid4())
            db.commit()
            db.refresh(tenant)
            logger.info("Tenant key rotated", extra={"tenant_id": tenant_id})
            return tenant

    def set_active(self, tenant_id: str, is_active: bool) -> Tenant:
        """Kill switch: an inactive tenant revokes ingestion for all its channels"""
        with self._session_factory() as db:
            tenant = db.get(Tenant, tenant_id)
            if tenant is None:
                raise TenantNotFound(tenant_id)
            tenant.is_active = is_active
            db.commit()
            db.refresh(tenant)
            logger.warning("Tenant active flag changed", extra={"tenant_id": tenant_id, "is_active": is_active})
            return tenant
