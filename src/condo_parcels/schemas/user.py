"""Staff user Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator


class UserRole(str, Enum):
    """Front-desk staff roles."""

    DOORMAN = "doorman"
    CONTROLLER = "controller"
    SHIPPING = "shipping"
    ADMIN = "admin"


class UserResponse(BaseModel):
    """Schema for user documents returned by the API."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    email: str = ""
    # Kept as text so documents with retired roles still load.
    role: str = UserRole.DOORMAN.value
    blocked: bool = False
    created_at: datetime | None = None


class UserUpdate(BaseModel):
    """Schema for changing a user's role or blocking them."""

    role: UserRole | None = None
    blocked: bool | None = None

    @model_validator(mode="after")
    def _require_change(self) -> UserUpdate:
        if self.role is None and self.blocked is None:
            raise ValueError("role or blocked must be provided")
        return self
