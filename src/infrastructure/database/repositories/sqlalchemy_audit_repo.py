"""SQLAlchemy implementation of Audit Log repository."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.audit import AuditEntry
from infrastructure.database.models import AuditLogModel


class SQLAlchemyAuditRepository:
    """SQLAlchemy implementation of IAuditRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, entry: AuditEntry) -> AuditEntry:
        """Create a new audit entry."""
        model = self._to_model(entry)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def get_for_entity(
        self,
        entity_type: str,
        entity_id: UUID,
        limit: int = 50,
    ) -> list[AuditEntry]:
        """Get audit entries for a specific entity."""
        stmt = (
            select(AuditLogModel)
            .where(
                AuditLogModel.entity_type == entity_type,
                AuditLogModel.entity_id == entity_id,
            )
            .order_by(AuditLogModel.created_at.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def get_for_user(
        self,
        user_id: UUID,
        limit: int = 50,
        offset: int = 0,
    ) -> list[AuditEntry]:
        """Get audit entries recorded for an actor."""
        stmt = (
            select(AuditLogModel)
            .where(AuditLogModel.user_id == user_id)
            .order_by(AuditLogModel.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    def _to_entity(self, model: AuditLogModel) -> AuditEntry:
        """Convert ORM model to domain entity."""
        return AuditEntry(
            id=model.id,
            user_id=model.user_id,
            action=model.action,
            entity_type=model.entity_type,
            entity_id=model.entity_id,
            details=model.details,
            created_at=model.created_at,
        )

    def _to_model(self, entity: AuditEntry) -> AuditLogModel:
        """Convert domain entity to ORM model."""
        return AuditLogModel(
            id=entity.id,
            user_id=entity.user_id,
            action=entity.action,
            entity_type=entity.entity_type,
            entity_id=entity.entity_id,
            details=entity.details,
            created_at=entity.created_at,
        )
