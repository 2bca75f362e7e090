"""Pydantic schemas for Document API."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from domain.entities.document import DocumentStatus, VersionBump
from domain.entities.workspace import Workspace


class DocumentCreateRequest(BaseModel):
    """Schema for creating a draft document."""

    title: str = Field(..., min_length=1, max_length=255)
    workspace: Workspace
    description: str | None = Field(None, max_length=5000)
    assigned_to: UUID | None = None


class TransitionRequest(BaseModel):
    """Schema for a status transition."""

    target: DocumentStatus
    expected_revision: int | None = Field(None, ge=1)
    reason: str | None = Field(None, max_length=1000)


class ContentEditRequest(BaseModel):
    """Schema for a content edit."""

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    bump: VersionBump = VersionBump.PATCH
    expected_revision: int | None = Field(None, ge=1)


class DocumentResponse(BaseModel):
    """Document metadata and workflow state."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str | None = None
    workspace: str
    status: str
    created_by: UUID
    assigned_to: UUID | None = None
    version: str
    revision: int
    created_at: datetime
    updated_at: datetime
    allowed_transitions: list[str] = Field(default_factory=list)


class DocumentListResponse(BaseModel):
    """Paginated document list response."""

    data: list[DocumentResponse]
    meta: dict[str, Any] = Field(default_factory=dict)
