"""Audit log domain entity and action constants."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

# --- Audit Action Constants ---
# Format: {entity_type}.{action}


class AuditActions:
    """Audit action constants using dot-notation."""

    # Document actions
    DOCUMENT_CREATED = "document.created"
    DOCUMENT_STATUS_CHANGED = "document.status_changed"
    DOCUMENT_CONTENT_EDITED = "document.content_edited"

    # Notification actions
    NOTIFICATION_CREATED = "notification.created"
    NOTIFICATION_BULK_CREATED = "notification.bulk_created"
    ANNOUNCEMENT_CREATED = "notification.announcement_created"
    TEMPLATE_CREATED = "notification.template_created"

    # User actions
    USER_CREATED = "user.created"
    USER_UPDATED = "user.updated"


@dataclass
class AuditEntry:
    """Domain entity for an audit log entry."""

    user_id: UUID | None
    action: str
    id: UUID = field(default_factory=uuid4)
    entity_type: str | None = None
    entity_id: UUID | None = None
    details: dict[str, Any] | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)
