"""Photo upload schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class PhotoUpload(BaseModel):
    """Schema for caching a captured photo locally."""

    content_base64: str = Field(min_length=1)
    package_ref: str | None = None


class PhotoResponse(BaseModel):
    """Metadata of a stored photo (content is served separately)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    package_ref: str | None
    content_type: str
    captured_at: datetime
