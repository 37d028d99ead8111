import uuid

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship

from callpanel.db import Base


class Channel(Base):
    __tablename__ = "channels"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    slug = Column(String(64), unique=True, index=True, nullable=False)
    name = Column(String(128), nullable=False)
    api_key = Column(String(64), nullable=False)  # per-channel signing secret
    system = Column(String(64), nullable=True)    # upstream product label, e.g. "NovoSGA"
    is_active = Column(Boolean, nullable=False, default=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id"), index=True, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    tenant = relationship("Tenant", back_populates="channels", lazy="joined")
    calls = relationship("Call", back_populates="channel")

    @property
    def is_reachable(self) -> bool:
        """Channel flag AND owning tenant flag."""
        if not self.is_active:
            return False
        return self.tenant is None or bool(self.tenant.is_active)
