"""User directory repository protocol."""

from collections.abc import Collection
from typing import Protocol
from uuid import UUID

from domain.entities.user import User
from domain.entities.workspace import UserRole, Workspace


class IUserRepository(Protocol):
    """Repository interface for User entities."""

    async def get(self, user_id: UUID) -> User | None:
        """Get a user by ID."""
        ...

    async def get_by_email(self, email: str) -> User | None:
        """Get a user by email."""
        ...

    async def create(self, user: User) -> User:
        """Create a new user."""
        ...

    async def update(self, user: User) -> User:
        """Update role, workspace, name and active flag."""
        ...

    async def find_active_ids(
        self,
        roles: Collection[UserRole] | None = None,
        workspaces: Collection[Workspace] | None = None,
        user_ids: Collection[UUID] | None = None,
    ) -> set[UUID]:
        """Get IDs of active users matching every given criterion.

        A ``None`` criterion is not applied; an empty collection matches nothing.
        """
        ...

    async def count_active(self) -> int:
        """Count active users."""
        ...
