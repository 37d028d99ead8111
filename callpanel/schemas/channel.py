from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

SLUG_PATTERN = r"^[a-z0-9_-]+$"


class ChannelCreate(BaseModel):
    slug: str = Field(..., min_length=3, max_length=50, pattern=SLUG_PATTERN)
    name: str = Field(..., min_length=1, max_length=100)
    system: Optional[str] = Field(None, min_length=1, max_length=50)  # e.g. "NovoSGA", "VersaSaude"


class ChannelUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    system: Optional[str] = Field(None, min_length=1, max_length=50)


class ChannelOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    slug: str
    name: str
    system: Optional[str] = None
    is_active: bool = Field(..., serialization_alias="isActive")
    created_at: Optional[datetime] = Field(None, serialization_alias="createdAt")
