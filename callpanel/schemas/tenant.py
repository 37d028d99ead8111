from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl

from callpanel.schemas.channel import SLUG_PATTERN


class TenantCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=128)
    slug: str = Field(..., min_length=3, max_length=64, pattern=SLUG_PATTERN)
    webhookUrl: Optional[HttpUrl] = None


class TenantStatusUpdate(BaseModel):
    isActive: bool


class TenantOut(BaseModel):
    """Listing view; never carries the management token"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    slug: str
    is_active: bool = Field(..., serialization_alias="isActive")
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")
