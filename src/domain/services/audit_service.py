"""Audit service layer for recording and querying audit entries."""

from collections.abc import Callable
from typing import Any
from uuid import UUID

import structlog

from domain.entities.audit import AuditEntry
from domain.repositories.unit_of_work import IUnitOfWork

logger = structlog.get_logger()


class AuditService:
    """Service layer for the audit trail.

    Audit writes are best-effort: they run in their own transaction after
    the primary operation has committed, and a failure is logged instead of
    being raised.
    """

    def __init__(self, uow_factory: Callable[[], IUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    async def log_action(
        self,
        user_id: UUID | None,
        action: str,
        details: dict[str, Any] | None = None,
        *,
        entity_type: str | None = None,
        entity_id: UUID | None = None,
    ) -> bool:
        """Record an audit entry.

        Args:
            user_id: The actor, or None for system actions.
            action: The action string (use AuditActions constants).
            details: Optional structured context.
            entity_type: The type of entity affected.
            entity_id: The ID of the entity affected.

        Returns:
            True if the entry was stored, False if the write failed.
        """
        entry = AuditEntry(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
        )
        try:
            async with self._uow_factory() as uow:
                await uow.audit.create(entry)
                await uow.commit()
        except Exception:
            logger.warning(
                "audit_log_failed",
                action=action,
                entity_id=str(entity_id) if entity_id else None,
                exc_info=True,
            )
            return False
        return True

    async def get_entity_history(
        self,
        entity_type: str,
        entity_id: UUID,
        limit: int = 50,
    ) -> list[AuditEntry]:
        """Get audit entries for one entity, newest first."""
        async with self._uow_factory() as uow:
            return await uow.audit.get_for_entity(entity_type, entity_id, limit=limit)
