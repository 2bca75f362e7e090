"""Notification domain entities and enumerations."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID, uuid4

from domain.entities.recipients import AllUsers, RecipientSpec


class NotificationType(StrEnum):
    """Closed set of notification types."""

    DOCUMENT_UPLOADED = "document_uploaded"
    DOCUMENT_ARCHIVED = "document_archived"
    DOCUMENT_REVIEW_REQUESTED = "document_review_requested"
    DOCUMENT_APPROVED = "document_approved"
    DOCUMENT_REJECTED = "document_rejected"
    SYSTEM_MESSAGE = "system_message"
    WARNING = "warning"
    INFO = "info"
    SUCCESS = "success"
    ANNOUNCEMENT = "announcement"
    REMINDER = "reminder"
    TASK = "task"
    ALERT = "alert"


class NotificationPriority(StrEnum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


# Sort rank, lowest first.
PRIORITY_RANK: dict[NotificationPriority, int] = {
    NotificationPriority.LOW: 0,
    NotificationPriority.NORMAL: 1,
    NotificationPriority.HIGH: 2,
    NotificationPriority.URGENT: 3,
}


class NotificationStatus(StrEnum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    EXPIRED = "expired"


class DeliveryMethod(StrEnum):
    BROWSER = "browser"
    EMAIL = "email"


class DeliveryOutcome(StrEnum):
    """Per-channel result reported back to the caller."""

    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED = "skipped"
    PENDING = "pending"


class FailurePolicy(StrEnum):
    """What a bulk run does after an item fails."""

    CONTINUE = "continue"
    STOP = "stop"


class BatchStatus(StrEnum):
    COMPLETED = "completed"
    PARTIAL = "partial"
    CANCELLED = "cancelled"


@dataclass
class Notification:
    """Domain entity for a notification (one per fan-out)."""

    title: str
    content: str
    type: NotificationType
    created_by: UUID | None
    id: UUID = field(default_factory=uuid4)
    priority: NotificationPriority = NotificationPriority.NORMAL
    status: NotificationStatus = NotificationStatus.SENT
    category: str | None = None
    related_document_id: UUID | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    recipient_count: int = 0
    read_count: int = 0
    created_at: datetime = field(default_factory=datetime.utcnow)
    expires_at: datetime | None = None
    scheduled_for: datetime | None = None


@dataclass
class NotificationDelivery:
    """Domain entity for a per-recipient delivery record."""

    notification_id: UUID
    user_id: UUID
    id: UUID = field(default_factory=uuid4)
    delivery_methods: list[DeliveryMethod] = field(
        default_factory=lambda: [DeliveryMethod.BROWSER]
    )
    is_read: bool = False
    read_at: datetime | None = None
    is_archived: bool = False
    archived_at: datetime | None = None
    delivered_at: datetime | None = None
    action_taken: bool = False
    action_taken_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class NotificationView:
    """Read-only value object: a notification as seen by one recipient."""

    delivery_id: UUID
    notification_id: UUID
    title: str
    content: str
    type: NotificationType
    priority: NotificationPriority
    category: str | None
    related_document_id: UUID | None
    metadata: dict[str, Any]
    created_by: UUID | None
    created_at: datetime
    expires_at: datetime | None
    delivery_methods: list[DeliveryMethod]
    delivered_at: datetime | None
    is_read: bool
    read_at: datetime | None
    is_archived: bool
    archived_at: datetime | None
    action_taken: bool
    action_taken_at: datetime | None


@dataclass
class NotificationTemplate:
    """Reusable title/content pair with ``{variable}`` placeholders."""

    name: str
    title: str
    content: str
    created_by: UUID | None
    id: UUID = field(default_factory=uuid4)
    description: str | None = None
    type: NotificationType = NotificationType.INFO
    priority: NotificationPriority = NotificationPriority.NORMAL
    variables: list[str] = field(default_factory=list)
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class NotificationPayload:
    """Input for a single fan-out."""

    title: str
    content: str
    type: NotificationType
    created_by: UUID | None
    recipients: RecipientSpec = field(default_factory=AllUsers)
    priority: NotificationPriority = NotificationPriority.NORMAL
    category: str | None = None
    related_document_id: UUID | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    expires_at: datetime | None = None
    scheduled_for: datetime | None = None
    send_browser: bool = True
    send_email: bool = False
    send_immediately: bool = True

    def delivery_methods(self) -> list[DeliveryMethod]:
        """Browser unless disabled, email only if requested."""
        methods: list[DeliveryMethod] = []
        if self.send_browser:
            methods.append(DeliveryMethod.BROWSER)
        if self.send_email:
            methods.append(DeliveryMethod.EMAIL)
        return methods


@dataclass(frozen=True, slots=True)
class CreateResult:
    """Outcome of ``create_notification``."""

    notification_id: UUID
    status: NotificationStatus
    recipient_count: int
    delivery_status: dict[str, DeliveryOutcome]


@dataclass(frozen=True, slots=True)
class BatchOptions:
    delay_seconds: float = 0.0
    failure_policy: FailurePolicy = FailurePolicy.CONTINUE


@dataclass(frozen=True, slots=True)
class BatchItemResult:
    index: int
    success: bool
    notification_id: UUID | None = None
    recipient_count: int = 0
    error: str | None = None
    error_code: str | None = None


@dataclass
class BatchResult:
    batch_id: str
    total_count: int
    success_count: int = 0
    failure_count: int = 0
    status: BatchStatus = BatchStatus.COMPLETED
    results: list[BatchItemResult] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class NotificationFilters:
    """Feed filters for ``get_user_notifications``."""

    is_read: bool | None = None
    is_archived: bool | None = False
    type: NotificationType | None = None
    priority: NotificationPriority | None = None
    category: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    search: str | None = None
    limit: int = 50
    offset: int = 0
    sort_by: str = "created_at"
    sort_order: str = "desc"


@dataclass(frozen=True, slots=True)
class NotificationPage:
    items: list[NotificationView]
    total: int
    unread_count: int
    has_more: bool


@dataclass(frozen=True, slots=True)
class NotificationStatistics:
    """Aggregates returned by ``get_notification_statistics``."""

    period: str
    overview: dict[str, Any]
    top_types: list[dict[str, Any]]
    delivery_stats: dict[str, int]
    user_engagement: dict[str, Any]
