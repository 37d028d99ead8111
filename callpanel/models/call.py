import uuid

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, JSON, Index, func
from sqlalchemy.orm import relationship

from callpanel.db import Base


class Call(Base):
    __tablename__ = "calls"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    channel_id = Column(String(36), ForeignKey("channels.id"), nullable=False)
    patient_name = Column(String(256), nullable=False)
    destination = Column(String(256), nullable=False)
    professional = Column(String(256), nullable=True)
    ticket = Column(String(64), nullable=True)
    is_priority = Column(Boolean, nullable=False, default=False)
    source_system = Column(String(64), nullable=False)
    raw_payload = Column(JSON, nullable=True)
    called_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    channel = relationship("Channel", back_populates="calls")

    __table_args__ = (
        Index("ix_calls_channel_called_at", "channel_id", "called_at"),
    )
