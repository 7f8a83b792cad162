"""
Pydantic schemas for organization requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class OrganizationCreate(BaseModel):
    """Schema for creating an organization."""
    name: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(None, max_length=255)
    website: str | None = Field(None, max_length=255)


class OrganizationPublic(BaseModel):
    """Organization information returned to members."""
    id: str
    name: str
    email: str | None = None
    website: str | None = None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SwitchOrganizationResponse(BaseModel):
    """Result of changing the current organization."""
    current_organization_id: str
    message: str
