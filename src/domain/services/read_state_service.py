"""Per-recipient read, archive and action state."""

import asyncio
from collections.abc import Callable
from datetime import datetime
from uuid import UUID

import structlog

from core.exceptions import (
    AppException,
    DeliveryRecordNotFoundError,
    NotificationNotFoundError,
)
from domain.entities.notification import NotificationFilters
from domain.repositories.unit_of_work import IUnitOfWork

logger = structlog.get_logger()


class ReadStateService:
    """Tracks read state of delivery records.

    Every state change is a conditional update on the delivery record, so
    repeating an operation is a no-op and concurrent toggles by the same user
    are serialized by the store. The notification's ``read_count`` aggregate
    is adjusted only when the conditional update actually changed a row.
    """

    def __init__(self, uow_factory: Callable[[], IUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    async def mark_read(self, notification_id: UUID, user_id: UUID) -> bool:
        """Mark a delivery as read.

        Returns:
            True if the record changed, False if it was already read.

        Raises:
            NotificationNotFoundError: If the notification does not exist.
            DeliveryRecordNotFoundError: If the user never received the notification.
        """
        async with self._uow_factory() as uow:
            changed = await uow.notifications.mark_read(
                notification_id, user_id, datetime.utcnow()
            )
            if changed:
                await uow.notifications.adjust_read_count(notification_id, 1)
            else:
                await self._ensure_delivery(uow, notification_id, user_id)
            await uow.commit()

        return bool(changed)

    async def mark_unread(self, notification_id: UUID, user_id: UUID) -> bool:
        """Mark a delivery as unread. Returns True if the record changed."""
        async with self._uow_factory() as uow:
            changed = await uow.notifications.mark_unread(notification_id, user_id)
            if changed:
                await uow.notifications.adjust_read_count(notification_id, -1)
            else:
                await self._ensure_delivery(uow, notification_id, user_id)
            await uow.commit()

        return bool(changed)

    async def mark_all_read(
        self,
        user_id: UUID,
        filters: NotificationFilters | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> int:
        """Mark every unread delivery of a user as read, one record at a time.

        A failure on one record is logged and skipped. Setting ``cancel_event``
        stops the run before the next record; records already marked stay marked.

        Returns:
            The number of records that changed.
        """
        async with self._uow_factory() as uow:
            notification_ids = await uow.notifications.list_unread_notification_ids(
                user_id, filters
            )

        marked = 0
        for index, notification_id in enumerate(notification_ids):
            if cancel_event is not None and cancel_event.is_set():
                logger.info(
                    "mark_all_read_cancelled",
                    user_id=str(user_id),
                    marked=marked,
                    remaining=len(notification_ids) - index,
                )
                break
            try:
                if await self.mark_read(notification_id, user_id):
                    marked += 1
            except AppException as exc:
                logger.warning(
                    "mark_all_read_item_failed",
                    user_id=str(user_id),
                    notification_id=str(notification_id),
                    error_code=exc.error_code.value,
                )

        logger.info("mark_all_read_completed", user_id=str(user_id), marked=marked)
        return marked

    async def archive(self, notification_id: UUID, user_id: UUID) -> bool:
        """Archive a delivery. Returns True if the record changed."""
        return await self._set_archived(notification_id, user_id, archived=True)

    async def restore(self, notification_id: UUID, user_id: UUID) -> bool:
        """Un-archive a delivery. Returns True if the record changed."""
        return await self._set_archived(notification_id, user_id, archived=False)

    async def mark_action_taken(self, notification_id: UUID, user_id: UUID) -> bool:
        """Record that the user acted on the notification."""
        async with self._uow_factory() as uow:
            changed = await uow.notifications.mark_action_taken(
                notification_id, user_id, datetime.utcnow()
            )
            if not changed:
                await self._ensure_delivery(uow, notification_id, user_id)
            await uow.commit()

        return bool(changed)

    async def unread_count(self, user_id: UUID) -> int:
        """Count unread, non-archived deliveries, recomputed from the records."""
        async with self._uow_factory() as uow:
            return await uow.notifications.count_unread(user_id)

    async def _set_archived(self, notification_id: UUID, user_id: UUID, archived: bool) -> bool:
        async with self._uow_factory() as uow:
            changed = await uow.notifications.set_archived(
                notification_id,
                user_id,
                archived,
                datetime.utcnow() if archived else None,
            )
            if not changed:
                await self._ensure_delivery(uow, notification_id, user_id)
            await uow.commit()

        return bool(changed)

    @staticmethod
    async def _ensure_delivery(uow: IUnitOfWork, notification_id: UUID, user_id: UUID) -> None:
        delivery = await uow.notifications.get_delivery(notification_id, user_id)
        if delivery is not None:
            return
        if await uow.notifications.get(notification_id) is None:
            raise NotificationNotFoundError(str(notification_id))
        raise DeliveryRecordNotFoundError(str(notification_id), str(user_id))
