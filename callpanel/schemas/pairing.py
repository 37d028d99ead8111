from pydantic import BaseModel, Field


class PairingValidateRequest(BaseModel):
    code: str = Field(..., pattern=r"^\d{6}$", description="6-digit code shown on the display")
    channelSlug: str = Field(..., min_length=3, max_length=50)
