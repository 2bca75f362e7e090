"""User domain entity."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

from domain.entities.workspace import UserRole, Workspace


@dataclass
class User:
    """Domain entity for a directory user."""

    email: str
    full_name: str
    role: UserRole
    workspace: Workspace
    id: UUID = field(default_factory=uuid4)
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)
