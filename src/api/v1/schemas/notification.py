"""Pydantic schemas for Notification API."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from domain.entities.notification import (
    FailurePolicy,
    NotificationPayload,
    NotificationPriority,
    NotificationType,
)
from domain.entities.recipients import RecipientSpec, recipient_spec_from_dict
from domain.entities.workspace import UserRole, Workspace


class RecipientsRequest(BaseModel):
    """Audience of a notification."""

    type: Literal["all", "role", "workspace", "specific"] = "all"
    roles: list[UserRole] = Field(default_factory=list)
    workspaces: list[Workspace] = Field(default_factory=list)
    user_ids: list[UUID] = Field(default_factory=list)
    exclude_users: list[UUID] = Field(default_factory=list)

    def to_spec(self) -> RecipientSpec:
        """Convert to a domain recipient spec."""
        return recipient_spec_from_dict(self.model_dump())


class NotificationCreateRequest(BaseModel):
    """Schema for creating a notification."""

    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1, max_length=2000)
    type: NotificationType = NotificationType.INFO
    priority: NotificationPriority = NotificationPriority.NORMAL
    category: str | None = Field(None, max_length=50)
    related_document_id: UUID | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    recipients: RecipientsRequest = Field(default_factory=RecipientsRequest)
    expires_at: datetime | None = None
    scheduled_for: datetime | None = None
    send_browser: bool = True
    send_email: bool = False
    send_immediately: bool = True

    def to_payload(self, created_by: UUID) -> NotificationPayload:
        """Build the domain payload for the acting user."""
        return NotificationPayload(
            title=self.title,
            content=self.content,
            type=self.type,
            created_by=created_by,
            recipients=self.recipients.to_spec(),
            priority=self.priority,
            category=self.category,
            related_document_id=self.related_document_id,
            metadata=self.metadata,
            expires_at=self.expires_at,
            scheduled_for=self.scheduled_for,
            send_browser=self.send_browser,
            send_email=self.send_email,
            send_immediately=self.send_immediately,
        )


class BulkNotificationRequest(BaseModel):
    """Schema for a sequential bulk run."""

    notifications: list[NotificationCreateRequest] = Field(..., min_length=1, max_length=100)
    delay_seconds: float | None = Field(None, ge=0, le=60)
    failure_policy: FailurePolicy = FailurePolicy.CONTINUE


class AnnouncementRequest(BaseModel):
    """Schema for a system announcement."""

    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1, max_length=2000)
    target_workspaces: list[Workspace] | None = None
    target_roles: list[UserRole] | None = None
    priority: NotificationPriority = NotificationPriority.HIGH
    expires_at: datetime | None = None
    send_email: bool = False


class ReminderRequest(BaseModel):
    """Schema for a scheduled reminder. Defaults to the caller."""

    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1, max_length=2000)
    remind_at: datetime
    user_ids: list[UUID] | None = None
    related_document_id: UUID | None = None


class TemplateCreateRequest(BaseModel):
    """Schema for creating a notification template."""

    name: str = Field(..., min_length=1, max_length=100)
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1, max_length=2000)
    description: str | None = None
    type: NotificationType = NotificationType.INFO
    priority: NotificationPriority = NotificationPriority.NORMAL


class FromTemplateRequest(BaseModel):
    """Schema for rendering and sending a template."""

    template_name: str = Field(..., min_length=1, max_length=100)
    variables: dict[str, Any] = Field(default_factory=dict)
    recipients: RecipientsRequest = Field(default_factory=RecipientsRequest)
    priority: NotificationPriority | None = None
    send_email: bool = False
    related_document_id: UUID | None = None

    def overrides(self) -> dict[str, Any]:
        """Payload fields that replace the template defaults."""
        values: dict[str, Any] = {"send_email": self.send_email}
        if self.priority is not None:
            values["priority"] = self.priority
        if self.related_document_id is not None:
            values["related_document_id"] = self.related_document_id
        return values


class CreateNotificationResponse(BaseModel):
    """Outcome of a single fan-out."""

    model_config = ConfigDict(from_attributes=True)

    notification_id: UUID
    status: str
    recipient_count: int
    delivery_status: dict[str, str]


class BatchItemResponse(BaseModel):
    """Outcome of one bulk item."""

    model_config = ConfigDict(from_attributes=True)

    index: int
    success: bool
    notification_id: UUID | None = None
    recipient_count: int = 0
    error: str | None = None
    error_code: str | None = None


class BatchResultResponse(BaseModel):
    """Outcome of a bulk run."""

    model_config = ConfigDict(from_attributes=True)

    batch_id: str
    total_count: int
    success_count: int
    failure_count: int
    status: str
    results: list[BatchItemResponse]


class NotificationResponse(BaseModel):
    """Single notification in the user's feed."""

    model_config = ConfigDict(from_attributes=True)

    delivery_id: UUID
    notification_id: UUID
    title: str
    content: str
    type: str
    priority: str
    category: str | None = None
    related_document_id: UUID | None = None
    metadata: dict[str, Any]
    created_by: UUID | None = None
    created_at: datetime
    expires_at: datetime | None = None
    delivery_methods: list[str]
    delivered_at: datetime | None = None
    is_read: bool
    read_at: datetime | None = None
    is_archived: bool
    archived_at: datetime | None = None
    action_taken: bool
    action_taken_at: datetime | None = None


class NotificationListResponse(BaseModel):
    """Paginated notification feed response."""

    data: list[NotificationResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class UnreadCountResponse(BaseModel):
    """Unread notification count response."""

    count: int


class MarkAllReadResponse(BaseModel):
    """Response for mark-all-read operation."""

    count: int  # Number of notifications marked


class StateChangeResponse(BaseModel):
    """Whether a read/archive toggle changed anything."""

    changed: bool


class StatisticsResponse(BaseModel):
    """Aggregated notification statistics."""

    model_config = ConfigDict(from_attributes=True)

    period: str
    overview: dict[str, Any]
    top_types: list[dict[str, Any]]
    delivery_stats: dict[str, int]
    user_engagement: dict[str, Any]


class TemplateResponse(BaseModel):
    """Notification template."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    title: str
    content: str
    type: str
    priority: str
    variables: list[str]
    is_active: bool
    created_at: datetime


class TemplateListResponse(BaseModel):
    """List of notification templates."""

    data: list[TemplateResponse]
