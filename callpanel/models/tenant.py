import uuid

from sqlalchemy import Column, String, Boolean, DateTime, func
from sqlalchemy.orm import relationship

from callpanel.db import Base


class Tenant(Base):
    __tablename__ = "tenants"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(128), nullable=False)
    slug = Column(String(64), unique=True, index=True, nullable=False)
    api_token = Column(String(64), unique=True, index=True, nullable=False)  # management credential
    webhook_url = Column(String(512), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)  # kill switch
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    channels = relationship("Channel", back_populates="tenant")
