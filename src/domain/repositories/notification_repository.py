"""Notification repository protocol."""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from domain.entities.notification import (
    Notification,
    NotificationDelivery,
    NotificationFilters,
    NotificationTemplate,
)


class INotificationRepository(Protocol):
    """Repository interface for notifications, deliveries and templates."""

    # --- Notifications ---

    async def create(self, notification: Notification) -> Notification:
        """Create a new notification."""
        ...

    async def get(self, notification_id: UUID) -> Notification | None:
        """Get a notification by ID."""
        ...

    async def adjust_read_count(self, notification_id: UUID, delta: int) -> None:
        """Add ``delta`` to the notification's read_count aggregate."""
        ...

    async def delete_expired(self, now: datetime) -> int:
        """Delete notifications whose expires_at has passed. Returns count deleted."""
        ...

    # --- Deliveries ---

    async def create_deliveries_batch(self, deliveries: list[NotificationDelivery]) -> int:
        """Insert all delivery records in one statement. Returns count inserted."""
        ...

    async def get_delivery(
        self, notification_id: UUID, user_id: UUID
    ) -> NotificationDelivery | None:
        """Get the delivery record for a (notification, user) pair."""
        ...

    async def mark_read(self, notification_id: UUID, user_id: UUID, read_at: datetime) -> int:
        """Set is_read/read_at where is_read is false. Returns affected rows (0 or 1)."""
        ...

    async def mark_unread(self, notification_id: UUID, user_id: UUID) -> int:
        """Clear is_read/read_at where is_read is true. Returns affected rows (0 or 1)."""
        ...

    async def set_archived(
        self,
        notification_id: UUID,
        user_id: UUID,
        archived: bool,
        at: datetime | None,
    ) -> int:
        """Toggle is_archived where it differs from ``archived``. Returns affected rows."""
        ...

    async def mark_action_taken(self, notification_id: UUID, user_id: UUID, at: datetime) -> int:
        """Set action_taken where not yet set. Returns affected rows."""
        ...

    async def list_unread_notification_ids(
        self, user_id: UUID, filters: NotificationFilters | None = None
    ) -> list[UUID]:
        """Get notification IDs of the user's unread, due deliveries matching the filters."""
        ...

    async def get_user_notifications(
        self, user_id: UUID, filters: NotificationFilters
    ) -> tuple[list[tuple[Notification, NotificationDelivery]], int]:
        """Get a filtered, paginated feed plus the total matching count."""
        ...

    async def count_unread(self, user_id: UUID) -> int:
        """Count unread, non-archived deliveries whose notification is due."""
        ...

    # --- Templates ---

    async def get_template_by_name(self, name: str) -> NotificationTemplate | None:
        """Get a template by its unique name."""
        ...

    async def create_template(self, template: NotificationTemplate) -> NotificationTemplate:
        """Create a new template."""
        ...

    async def list_templates(self, active_only: bool = True) -> list[NotificationTemplate]:
        """List templates ordered by name."""
        ...

    # --- Statistics ---

    async def count_created_since(self, since: datetime) -> int:
        """Count notifications created since ``since``."""
        ...

    async def count_deliveries_since(self, since: datetime, is_read: bool | None = None) -> int:
        """Count delivery records of notifications created since ``since``."""
        ...

    async def count_by_type_since(self, since: datetime, limit: int = 10) -> list[tuple[str, int]]:
        """Notification counts grouped by type, most frequent first."""
        ...

    async def count_deliveries_by_method_since(self, since: datetime) -> dict[str, int]:
        """Delivery record counts keyed by delivery method."""
        ...

    async def count_distinct_recipients_since(self, since: datetime) -> int:
        """Count users with at least one delivery since ``since``."""
        ...
