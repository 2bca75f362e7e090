"""Notification API routes."""

from dataclasses import asdict
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from api.dependencies.auth import CurrentActor
from api.dependencies.services import (
    get_notification_service,
    get_permission_service,
    get_read_state_service,
)
from api.v1.schemas.notification import (
    AnnouncementRequest,
    BatchResultResponse,
    BulkNotificationRequest,
    CreateNotificationResponse,
    FromTemplateRequest,
    MarkAllReadResponse,
    NotificationCreateRequest,
    NotificationListResponse,
    NotificationResponse,
    ReminderRequest,
    StateChangeResponse,
    StatisticsResponse,
    TemplateCreateRequest,
    TemplateListResponse,
    TemplateResponse,
    UnreadCountResponse,
)
from core.config import settings
from core.exceptions import AuthorizationError
from core.rate_limit import BULK_LIMIT, READ_LIMIT, WRITE_LIMIT, limiter
from domain.entities.notification import (
    BatchOptions,
    CreateResult,
    NotificationFilters,
    NotificationPriority,
    NotificationType,
)
from domain.services.notification_service import NotificationService
from domain.services.permission_service import Capability, PermissionService
from domain.services.read_state_service import ReadStateService

# Sender-side notification routes
notifications_router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
)

# Recipient-side notification routes
user_notifications_router = APIRouter(
    prefix="/users/me/notifications",
    tags=["notifications"],
)


def _create_response(result: CreateResult) -> CreateNotificationResponse:
    return CreateNotificationResponse(
        notification_id=result.notification_id,
        status=result.status.value,
        recipient_count=result.recipient_count,
        delivery_status={k: v.value for k, v in result.delivery_status.items()},
    )


# --- Sender-side routes ---


@notifications_router.post(
    "",
    response_model=CreateNotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a notification",
    responses={
        201: {"description": "Notification stored and delivered"},
        403: {"description": "Sender lacks the notify capability"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def create_notification(
    request: Request,
    body: NotificationCreateRequest,
    actor: CurrentActor,
    service: NotificationService = Depends(get_notification_service),
) -> CreateNotificationResponse:
    """Resolve the audience, store one delivery per recipient and deliver."""
    result = await service.create_notification(body.to_payload(actor.id))
    return _create_response(result)


@notifications_router.post(
    "/bulk",
    response_model=BatchResultResponse,
    summary="Create notifications sequentially",
    responses={
        200: {"description": "Per-item outcomes of the run"},
    },
)
@limiter.limit(BULK_LIMIT)  # type: ignore[untyped-decorator]
async def create_bulk_notifications(
    request: Request,
    body: BulkNotificationRequest,
    actor: CurrentActor,
    service: NotificationService = Depends(get_notification_service),
) -> BatchResultResponse:
    """Run each item in order; failures are reported per item."""
    result = await service.create_bulk(
        [item.to_payload(actor.id) for item in body.notifications],
        BatchOptions(
            delay_seconds=(
                body.delay_seconds
                if body.delay_seconds is not None
                else settings.bulk_default_delay_seconds
            ),
            failure_policy=body.failure_policy,
        ),
    )
    return BatchResultResponse.model_validate(asdict(result))


@notifications_router.post(
    "/announcements",
    response_model=CreateNotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Broadcast a system announcement",
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def create_announcement(
    request: Request,
    body: AnnouncementRequest,
    actor: CurrentActor,
    service: NotificationService = Depends(get_notification_service),
) -> CreateNotificationResponse:
    """Announce to everyone, or to the given workspaces and/or roles."""
    result = await service.create_system_announcement(
        actor.id,
        body.title,
        body.content,
        target_workspaces=body.target_workspaces,
        target_roles=body.target_roles,
        priority=body.priority,
        expires_at=body.expires_at,
        send_email=body.send_email,
    )
    return _create_response(result)


@notifications_router.post(
    "/reminders",
    response_model=CreateNotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule a reminder",
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def create_reminder(
    request: Request,
    body: ReminderRequest,
    actor: CurrentActor,
    service: NotificationService = Depends(get_notification_service),
) -> CreateNotificationResponse:
    """Schedule a reminder for the caller or for other users."""
    result = await service.create_reminder(
        actor.id,
        body.user_ids or [actor.id],
        body.title,
        body.content,
        body.remind_at,
        related_document_id=body.related_document_id,
    )
    return _create_response(result)


@notifications_router.post(
    "/templates",
    response_model=TemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a notification template",
    responses={409: {"description": "Template name already taken"}},
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def create_template(
    request: Request,
    body: TemplateCreateRequest,
    actor: CurrentActor,
    service: NotificationService = Depends(get_notification_service),
) -> TemplateResponse:
    """Create a template; its variables are read from the placeholders."""
    template = await service.create_template(
        actor.id,
        body.name,
        body.title,
        body.content,
        type=body.type,
        priority=body.priority,
        description=body.description,
    )
    return TemplateResponse.model_validate(template)


@notifications_router.get(
    "/templates",
    response_model=TemplateListResponse,
    summary="List active notification templates",
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def list_templates(
    request: Request,
    actor: CurrentActor,
    service: NotificationService = Depends(get_notification_service),
) -> TemplateListResponse:
    """List active templates ordered by name."""
    templates = await service.list_templates()
    return TemplateListResponse(data=[TemplateResponse.model_validate(t) for t in templates])


@notifications_router.post(
    "/from-template",
    response_model=CreateNotificationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a rendered template",
    responses={404: {"description": "Template not found or inactive"}},
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def create_from_template(
    request: Request,
    body: FromTemplateRequest,
    actor: CurrentActor,
    service: NotificationService = Depends(get_notification_service),
) -> CreateNotificationResponse:
    """Render a template with the given variables and fan it out."""
    result = await service.create_from_template(
        body.template_name,
        body.variables,
        body.recipients.to_spec(),
        actor.id,
        **body.overrides(),
    )
    return _create_response(result)


@notifications_router.get(
    "/statistics",
    response_model=StatisticsResponse,
    summary="Notification statistics",
    responses={403: {"description": "Requires the view_audit capability"}},
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def get_statistics(
    request: Request,
    actor: CurrentActor,
    period: str = Query("30d", pattern="^(7d|30d|90d|1y)$"),
    service: NotificationService = Depends(get_notification_service),
    permissions: PermissionService = Depends(get_permission_service),
) -> StatisticsResponse:
    """Aggregate counts for the given period."""
    if not permissions.has_capability(actor, Capability.VIEW_AUDIT):
        raise AuthorizationError("Viewing statistics requires the view_audit capability")
    stats = await service.get_notification_statistics(period)
    return StatisticsResponse.model_validate(asdict(stats))


# --- Recipient-side routes ---


@user_notifications_router.get(
    "",
    response_model=NotificationListResponse,
    summary="List my notifications",
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def list_my_notifications(
    request: Request,
    actor: CurrentActor,
    is_read: bool | None = Query(None, description="Filter by read status"),
    is_archived: bool | None = Query(False, description="Filter by archived status"),
    type: NotificationType | None = Query(None, description="Filter by type"),
    priority: NotificationPriority | None = Query(None, description="Filter by priority"),
    category: str | None = Query(None, max_length=50),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    search: str | None = Query(None, max_length=100, description="Search title and content"),
    limit: int = Query(50, ge=1, le=100, description="Page size"),
    offset: int = Query(0, ge=0),
    sort_by: str = Query("created_at", pattern="^(created_at|priority)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationListResponse:
    """Filtered, paginated feed with the unread total."""
    filters = NotificationFilters(
        is_read=is_read,
        is_archived=is_archived,
        type=type,
        priority=priority,
        category=category,
        start_date=start_date,
        end_date=end_date,
        search=search,
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    page = await service.get_user_notifications(actor.id, filters)
    return NotificationListResponse(
        data=[NotificationResponse.model_validate(item) for item in page.items],
        meta={
            "total": page.total,
            "unread_count": page.unread_count,
            "has_more": page.has_more,
            "limit": limit,
            "offset": offset,
        },
    )


@user_notifications_router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
    summary="Get unread notification count",
)
@limiter.limit("60/minute")  # type: ignore[untyped-decorator]
async def get_unread_count(
    request: Request,
    actor: CurrentActor,
    service: ReadStateService = Depends(get_read_state_service),
) -> UnreadCountResponse:
    """Count unread, non-archived notifications."""
    return UnreadCountResponse(count=await service.unread_count(actor.id))


@user_notifications_router.post(
    "/mark-all-read",
    response_model=MarkAllReadResponse,
    summary="Mark all notifications as read",
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def mark_all_read(
    request: Request,
    actor: CurrentActor,
    service: ReadStateService = Depends(get_read_state_service),
) -> MarkAllReadResponse:
    """Mark every unread notification as read, record by record."""
    return MarkAllReadResponse(count=await service.mark_all_read(actor.id))


@user_notifications_router.patch(
    "/{notification_id}/read",
    response_model=StateChangeResponse,
    summary="Mark notification as read",
    responses={404: {"description": "Notification was not delivered to this user"}},
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def mark_read(
    request: Request,
    notification_id: UUID,
    actor: CurrentActor,
    service: ReadStateService = Depends(get_read_state_service),
) -> StateChangeResponse:
    """Idempotent: marking a read notification again changes nothing."""
    return StateChangeResponse(changed=await service.mark_read(notification_id, actor.id))


@user_notifications_router.patch(
    "/{notification_id}/unread",
    response_model=StateChangeResponse,
    summary="Mark notification as unread",
    responses={404: {"description": "Notification was not delivered to this user"}},
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def mark_unread(
    request: Request,
    notification_id: UUID,
    actor: CurrentActor,
    service: ReadStateService = Depends(get_read_state_service),
) -> StateChangeResponse:
    """Mark a notification as unread."""
    return StateChangeResponse(changed=await service.mark_unread(notification_id, actor.id))


@user_notifications_router.patch(
    "/{notification_id}/archive",
    response_model=StateChangeResponse,
    summary="Archive a notification",
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def archive(
    request: Request,
    notification_id: UUID,
    actor: CurrentActor,
    service: ReadStateService = Depends(get_read_state_service),
) -> StateChangeResponse:
    """Hide a notification from the default feed."""
    return StateChangeResponse(changed=await service.archive(notification_id, actor.id))


@user_notifications_router.patch(
    "/{notification_id}/restore",
    response_model=StateChangeResponse,
    summary="Restore an archived notification",
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def restore(
    request: Request,
    notification_id: UUID,
    actor: CurrentActor,
    service: ReadStateService = Depends(get_read_state_service),
) -> StateChangeResponse:
    """Bring an archived notification back into the feed."""
    return StateChangeResponse(changed=await service.restore(notification_id, actor.id))


@user_notifications_router.patch(
    "/{notification_id}/action",
    response_model=StateChangeResponse,
    summary="Record that the notification was acted on",
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def mark_action_taken(
    request: Request,
    notification_id: UUID,
    actor: CurrentActor,
    service: ReadStateService = Depends(get_read_state_service),
) -> StateChangeResponse:
    """Set the action-taken flag once."""
    return StateChangeResponse(
        changed=await service.mark_action_taken(notification_id, actor.id)
    )
