"""Audit log repository protocol."""

from typing import Protocol
from uuid import UUID

from domain.entities.audit import AuditEntry


class IAuditRepository(Protocol):
    """Repository interface for AuditEntry entities."""

    async def create(self, entry: AuditEntry) -> AuditEntry:
        """Create a new audit entry."""
        ...

    async def get_for_entity(
        self, entity_type: str, entity_id: UUID, limit: int = 50
    ) -> list[AuditEntry]:
        """Get audit entries for a specific entity, newest first."""
        ...

    async def get_for_user(
        self, user_id: UUID, limit: int = 50, offset: int = 0
    ) -> list[AuditEntry]:
        """Get audit entries recorded for an actor, newest first."""
        ...
