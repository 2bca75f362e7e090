"""Pydantic schemas for User API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class UserProfileResponse(BaseModel):
    """The authenticated user's directory profile."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    full_name: str
    role: str
    workspace: str
    is_active: bool
    capabilities: list[str]
    created_at: datetime
