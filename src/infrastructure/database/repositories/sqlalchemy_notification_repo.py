"""SQLAlchemy implementation of Notification repository."""

from collections import Counter
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.notification import (
    PRIORITY_RANK,
    DeliveryMethod,
    Notification,
    NotificationDelivery,
    NotificationFilters,
    NotificationPriority,
    NotificationStatus,
    NotificationTemplate,
    NotificationType,
)
from infrastructure.database.models import (
    NotificationDeliveryModel,
    NotificationModel,
    NotificationTemplateModel,
)

_priority_rank = case(
    {priority.value: rank for priority, rank in PRIORITY_RANK.items()},
    value=NotificationModel.priority,
    else_=0,
)


def _is_due(now: datetime) -> Any:
    """Scheduled notifications stay hidden until their time comes."""
    return or_(NotificationModel.scheduled_for.is_(None), NotificationModel.scheduled_for <= now)


class SQLAlchemyNotificationRepository:
    """SQLAlchemy implementation of INotificationRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # --- Notifications ---

    async def create(self, notification: Notification) -> Notification:
        """Create a new notification."""
        model = self._to_model(notification)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def get(self, notification_id: UUID) -> Notification | None:
        """Get a notification by ID."""
        stmt = select(NotificationModel).where(NotificationModel.id == notification_id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def adjust_read_count(self, notification_id: UUID, delta: int) -> None:
        """Atomically add ``delta`` to read_count."""
        stmt = (
            update(NotificationModel)
            .where(NotificationModel.id == notification_id)
            .values(read_count=NotificationModel.read_count + delta)
            .execution_options(synchronize_session=False)
        )
        await self._session.execute(stmt)

    async def delete_expired(self, now: datetime) -> int:
        """Delete expired notifications and their deliveries. Returns count deleted."""
        expired_ids = (
            select(NotificationModel.id)
            .where(
                NotificationModel.expires_at.is_not(None),
                NotificationModel.expires_at < now,
            )
            .scalar_subquery()
        )
        await self._session.execute(
            delete(NotificationDeliveryModel)
            .where(NotificationDeliveryModel.notification_id.in_(expired_ids))
            .execution_options(synchronize_session=False)
        )
        stmt = (
            delete(NotificationModel)
            .where(
                NotificationModel.expires_at.is_not(None),
                NotificationModel.expires_at < now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount  # type: ignore[attr-defined, no-any-return]

    # --- Deliveries ---

    async def create_deliveries_batch(self, deliveries: list[NotificationDelivery]) -> int:
        """Batch-create delivery records in a single flush."""
        models = [self._delivery_to_model(d) for d in deliveries]
        self._session.add_all(models)
        await self._session.flush()
        return len(models)

    async def get_delivery(
        self, notification_id: UUID, user_id: UUID
    ) -> NotificationDelivery | None:
        """Get the delivery record for a (notification, user) pair."""
        stmt = select(NotificationDeliveryModel).where(
            NotificationDeliveryModel.notification_id == notification_id,
            NotificationDeliveryModel.user_id == user_id,
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._delivery_to_entity(model) if model else None

    async def mark_read(self, notification_id: UUID, user_id: UUID, read_at: datetime) -> int:
        """Mark a delivery as read if it is unread."""
        stmt = (
            update(NotificationDeliveryModel)
            .where(
                NotificationDeliveryModel.notification_id == notification_id,
                NotificationDeliveryModel.user_id == user_id,
                NotificationDeliveryModel.is_read.is_(False),
            )
            .values(is_read=True, read_at=read_at)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount  # type: ignore[attr-defined, no-any-return]

    async def mark_unread(self, notification_id: UUID, user_id: UUID) -> int:
        """Mark a delivery as unread if it is read."""
        stmt = (
            update(NotificationDeliveryModel)
            .where(
                NotificationDeliveryModel.notification_id == notification_id,
                NotificationDeliveryModel.user_id == user_id,
                NotificationDeliveryModel.is_read.is_(True),
            )
            .values(is_read=False, read_at=None)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount  # type: ignore[attr-defined, no-any-return]

    async def set_archived(
        self,
        notification_id: UUID,
        user_id: UUID,
        archived: bool,
        at: datetime | None,
    ) -> int:
        """Toggle the archived flag if it differs."""
        stmt = (
            update(NotificationDeliveryModel)
            .where(
                NotificationDeliveryModel.notification_id == notification_id,
                NotificationDeliveryModel.user_id == user_id,
                NotificationDeliveryModel.is_archived.is_(not archived),
            )
            .values(is_archived=archived, archived_at=at)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount  # type: ignore[attr-defined, no-any-return]

    async def mark_action_taken(self, notification_id: UUID, user_id: UUID, at: datetime) -> int:
        """Record the user's action once."""
        stmt = (
            update(NotificationDeliveryModel)
            .where(
                NotificationDeliveryModel.notification_id == notification_id,
                NotificationDeliveryModel.user_id == user_id,
                NotificationDeliveryModel.action_taken.is_(False),
            )
            .values(action_taken=True, action_taken_at=at)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount  # type: ignore[attr-defined, no-any-return]

    async def list_unread_notification_ids(
        self, user_id: UUID, filters: NotificationFilters | None = None
    ) -> list[UUID]:
        """Get notification IDs of the user's unread, due deliveries."""
        conditions = self._feed_conditions(user_id, filters or NotificationFilters())
        conditions.append(NotificationDeliveryModel.is_read.is_(False))
        stmt = (
            select(NotificationDeliveryModel.notification_id)
            .join(
                NotificationModel,
                NotificationModel.id == NotificationDeliveryModel.notification_id,
            )
            .where(*conditions)
            .order_by(NotificationModel.created_at)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars())

    async def get_user_notifications(
        self, user_id: UUID, filters: NotificationFilters
    ) -> tuple[list[tuple[Notification, NotificationDelivery]], int]:
        """Get a filtered, sorted page of the user's feed and the total count."""
        conditions = self._feed_conditions(user_id, filters)
        base = (
            select(NotificationModel, NotificationDeliveryModel)
            .join(
                NotificationDeliveryModel,
                NotificationModel.id == NotificationDeliveryModel.notification_id,
            )
            .where(*conditions)
        )

        count_stmt = select(func.count()).select_from(base.subquery())
        total = (await self._session.execute(count_stmt)).scalar_one()

        sort_column = _priority_rank if filters.sort_by == "priority" else NotificationModel.created_at
        if filters.sort_order == "asc":
            order = [sort_column.asc(), NotificationModel.created_at.asc()]
        else:
            order = [sort_column.desc(), NotificationModel.created_at.desc()]

        stmt = base.order_by(*order).offset(filters.offset).limit(filters.limit)
        result = await self._session.execute(stmt)
        rows = [
            (self._to_entity(n_model), self._delivery_to_entity(d_model))
            for n_model, d_model in result.all()
        ]
        return rows, total

    async def count_unread(self, user_id: UUID) -> int:
        """Count unread, non-archived, due deliveries for a user."""
        stmt = (
            select(func.count(NotificationDeliveryModel.id))
            .join(
                NotificationModel,
                NotificationModel.id == NotificationDeliveryModel.notification_id,
            )
            .where(
                NotificationDeliveryModel.user_id == user_id,
                NotificationDeliveryModel.is_read.is_(False),
                NotificationDeliveryModel.is_archived.is_(False),
                _is_due(datetime.utcnow()),
            )
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    # --- Templates ---

    async def get_template_by_name(self, name: str) -> NotificationTemplate | None:
        """Get a template by its unique name."""
        stmt = select(NotificationTemplateModel).where(NotificationTemplateModel.name == name)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._template_to_entity(model) if model else None

    async def create_template(self, template: NotificationTemplate) -> NotificationTemplate:
        """Create a new template."""
        model = self._template_to_model(template)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._template_to_entity(model)

    async def list_templates(self, active_only: bool = True) -> list[NotificationTemplate]:
        """List templates ordered by name."""
        stmt = select(NotificationTemplateModel)
        if active_only:
            stmt = stmt.where(NotificationTemplateModel.is_active.is_(True))
        stmt = stmt.order_by(NotificationTemplateModel.name)
        result = await self._session.execute(stmt)
        return [self._template_to_entity(m) for m in result.scalars()]

    # --- Statistics ---

    async def count_created_since(self, since: datetime) -> int:
        """Count notifications created since ``since``."""
        stmt = select(func.count(NotificationModel.id)).where(NotificationModel.created_at >= since)
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def count_deliveries_since(self, since: datetime, is_read: bool | None = None) -> int:
        """Count delivery records of notifications created since ``since``."""
        stmt = (
            select(func.count(NotificationDeliveryModel.id))
            .join(
                NotificationModel,
                NotificationModel.id == NotificationDeliveryModel.notification_id,
            )
            .where(NotificationModel.created_at >= since)
        )
        if is_read is not None:
            stmt = stmt.where(NotificationDeliveryModel.is_read.is_(is_read))
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def count_by_type_since(self, since: datetime, limit: int = 10) -> list[tuple[str, int]]:
        """Notification counts grouped by type, most frequent first."""
        count = func.count(NotificationModel.id)
        stmt = (
            select(NotificationModel.type, count)
            .where(NotificationModel.created_at >= since)
            .group_by(NotificationModel.type)
            .order_by(count.desc(), NotificationModel.type)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [(type_name, total) for type_name, total in result.all()]

    async def count_deliveries_by_method_since(self, since: datetime) -> dict[str, int]:
        """Delivery record counts keyed by delivery method."""
        stmt = (
            select(NotificationDeliveryModel.delivery_methods)
            .join(
                NotificationModel,
                NotificationModel.id == NotificationDeliveryModel.notification_id,
            )
            .where(NotificationModel.created_at >= since)
        )
        result = await self._session.execute(stmt)
        counts: Counter[str] = Counter({method.value: 0 for method in DeliveryMethod})
        for methods in result.scalars():
            counts.update(methods or [])
        return dict(counts)

    async def count_distinct_recipients_since(self, since: datetime) -> int:
        """Count users with at least one delivery since ``since``."""
        stmt = (
            select(func.count(func.distinct(NotificationDeliveryModel.user_id)))
            .join(
                NotificationModel,
                NotificationModel.id == NotificationDeliveryModel.notification_id,
            )
            .where(NotificationModel.created_at >= since)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    # --- Query helpers ---

    def _feed_conditions(self, user_id: UUID, filters: NotificationFilters) -> list[Any]:
        conditions: list[Any] = [
            NotificationDeliveryModel.user_id == user_id,
            _is_due(datetime.utcnow()),
        ]
        if filters.is_read is not None:
            conditions.append(NotificationDeliveryModel.is_read.is_(filters.is_read))
        if filters.is_archived is not None:
            conditions.append(NotificationDeliveryModel.is_archived.is_(filters.is_archived))
        if filters.type is not None:
            conditions.append(NotificationModel.type == filters.type.value)
        if filters.priority is not None:
            conditions.append(NotificationModel.priority == filters.priority.value)
        if filters.category is not None:
            conditions.append(NotificationModel.category == filters.category)
        if filters.start_date is not None:
            conditions.append(NotificationModel.created_at >= filters.start_date)
        if filters.end_date is not None:
            conditions.append(NotificationModel.created_at <= filters.end_date)
        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(
                    NotificationModel.title.ilike(pattern),
                    NotificationModel.content.ilike(pattern),
                )
            )
        return conditions

    # --- Conversion methods ---

    def _to_entity(self, model: NotificationModel) -> Notification:
        """Convert NotificationModel to domain entity."""
        return Notification(
            id=model.id,
            title=model.title,
            content=model.content,
            type=NotificationType(model.type),
            priority=NotificationPriority(model.priority),
            status=NotificationStatus(model.status),
            category=model.category,
            created_by=model.created_by,
            related_document_id=model.related_document_id,
            metadata=model.metadata_ or {},
            recipient_count=model.recipient_count,
            read_count=model.read_count,
            created_at=model.created_at,
            expires_at=model.expires_at,
            scheduled_for=model.scheduled_for,
        )

    def _to_model(self, entity: Notification) -> NotificationModel:
        """Convert Notification domain entity to ORM model."""
        return NotificationModel(
            id=entity.id,
            title=entity.title,
            content=entity.content,
            type=entity.type.value,
            priority=entity.priority.value,
            status=entity.status.value,
            category=entity.category,
            created_by=entity.created_by,
            related_document_id=entity.related_document_id,
            metadata_=entity.metadata,
            recipient_count=entity.recipient_count,
            read_count=entity.read_count,
            created_at=entity.created_at,
            expires_at=entity.expires_at,
            scheduled_for=entity.scheduled_for,
        )

    def _delivery_to_entity(self, model: NotificationDeliveryModel) -> NotificationDelivery:
        """Convert NotificationDeliveryModel to domain entity."""
        return NotificationDelivery(
            id=model.id,
            notification_id=model.notification_id,
            user_id=model.user_id,
            delivery_methods=[DeliveryMethod(m) for m in model.delivery_methods or []],
            is_read=model.is_read,
            read_at=model.read_at,
            is_archived=model.is_archived,
            archived_at=model.archived_at,
            delivered_at=model.delivered_at,
            action_taken=model.action_taken,
            action_taken_at=model.action_taken_at,
        )

    def _delivery_to_model(self, entity: NotificationDelivery) -> NotificationDeliveryModel:
        """Convert NotificationDelivery domain entity to ORM model."""
        return NotificationDeliveryModel(
            id=entity.id,
            notification_id=entity.notification_id,
            user_id=entity.user_id,
            delivery_methods=[m.value for m in entity.delivery_methods],
            is_read=entity.is_read,
            read_at=entity.read_at,
            is_archived=entity.is_archived,
            archived_at=entity.archived_at,
            delivered_at=entity.delivered_at,
            action_taken=entity.action_taken,
            action_taken_at=entity.action_taken_at,
        )

    def _template_to_entity(self, model: NotificationTemplateModel) -> NotificationTemplate:
        """Convert NotificationTemplateModel to domain entity."""
        return NotificationTemplate(
            id=model.id,
            name=model.name,
            description=model.description,
            title=model.title,
            content=model.content,
            type=NotificationType(model.type),
            priority=NotificationPriority(model.priority),
            variables=list(model.variables or []),
            is_active=model.is_active,
            created_by=model.created_by,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _template_to_model(self, entity: NotificationTemplate) -> NotificationTemplateModel:
        """Convert NotificationTemplate domain entity to ORM model."""
        return NotificationTemplateModel(
            id=entity.id,
            name=entity.name,
            description=entity.description,
            title=entity.title,
            content=entity.content,
            type=entity.type.value,
            priority=entity.priority.value,
            variables=list(entity.variables),
            is_active=entity.is_active,
            created_by=entity.created_by,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )
