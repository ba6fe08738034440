"""Profile Pydantic schemas for API request/response models."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ProfileBase(BaseModel):
    """Profile fields shared across schemas."""

    age: int | None = Field(default=None, ge=0, description="Age in whole years, derived from dob by the client")
    dob: date | None = Field(default=None, description="Date of birth")
    contact: str | None = Field(default=None, description="Phone number as '<dial code> <digits>'")
    address: str | None = Field(default=None, description="Street address")
    city: str | None = Field(default=None, description="City")
    state: str | None = Field(default=None, description="State, province or region")
    country: str | None = Field(default=None, description="Country")


class ProfileResponse(ProfileBase):
    """Schema for profile API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="Profile unique identifier")
    user_id: UUID = Field(description="Associated auth user ID")
    created_at: datetime = Field(description="Profile creation timestamp")
    updated_at: datetime = Field(description="Last update timestamp")
