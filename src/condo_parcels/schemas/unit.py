"""Unit (apartment) Pydantic schemas."""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

_NON_DIGITS = re.compile(r"\D")
PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 15


class UnitCreate(BaseModel):
    """Schema for registering an apartment unit."""

    id: str = Field(min_length=1)
    block: str = ""
    residents: list[str] = Field(default_factory=list)
    phone: str = ""

    @field_validator("residents")
    @classmethod
    def _clean_residents(cls, value: list[str]) -> list[str]:
        return [name.strip() for name in value if name.strip()]

    @field_validator("phone")
    @classmethod
    def _validate_phone(cls, value: str) -> str:
        """Accept digits with country code; formatting characters are dropped."""
        if not value.strip():
            return ""
        digits = _NON_DIGITS.sub("", value)
        if not PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS:
            raise ValueError("phone must have 10 to 15 digits including country code")
        return digits


class UnitResponse(BaseModel):
    """Schema for unit documents returned by the API."""

    model_config = ConfigDict(extra="ignore")

    id: str
    block: str = ""
    residents: list[str] = Field(default_factory=list)
    phone: str = ""
