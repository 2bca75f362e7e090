"""Notification service layer: fan-out, bulk runs, templates and feeds."""

import asyncio
import string
from collections.abc import Callable, Mapping, Sequence
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

import structlog
from sqlalchemy.exc import IntegrityError

from core.exceptions import (
    AppException,
    AuthorizationError,
    DeliveryError,
    DirectoryUnavailableError,
    DocumentNotFoundError,
    DuplicateTemplateError,
    TemplateNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from domain.entities.audit import AuditActions
from domain.entities.notification import (
    BatchItemResult,
    BatchOptions,
    BatchResult,
    BatchStatus,
    CreateResult,
    DeliveryMethod,
    DeliveryOutcome,
    FailurePolicy,
    Notification,
    NotificationDelivery,
    NotificationFilters,
    NotificationPage,
    NotificationPayload,
    NotificationPriority,
    NotificationStatistics,
    NotificationStatus,
    NotificationTemplate,
    NotificationType,
    NotificationView,
)
from domain.entities.recipients import (
    AllUsers,
    ByRole,
    ByWorkspace,
    RecipientSpec,
    SpecificUsers,
)
from domain.entities.workspace import UserRole, Workspace
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.audit_service import AuditService
from domain.services.delivery import DeliveryRequest, IDeliveryChannel
from domain.services.permission_service import Capability, PermissionService
from domain.services.recipient_resolver import RecipientResolver

logger = structlog.get_logger()

NOTIFICATION_EXPIRY_DAYS = 30
BULK_MAX_ITEMS = 100
TITLE_MAX_LENGTH = 255
CONTENT_MAX_LENGTH = 2000
FEED_MAX_LIMIT = 100

STATISTICS_PERIODS: dict[str, int] = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}
DEFAULT_STATISTICS_PERIOD = "30d"

SORT_FIELDS = frozenset({"created_at", "priority"})
SORT_ORDERS = frozenset({"asc", "desc"})


def template_variables(*texts: str) -> list[str]:
    """Named ``{placeholder}`` fields used in the given texts, in first-seen order."""
    seen: list[str] = []
    formatter = string.Formatter()
    for text in texts:
        try:
            fields = [name for _, name, _, _ in formatter.parse(text) if name]
        except ValueError as exc:
            raise ValidationError(f"Malformed template placeholder: {exc}") from exc
        for name in fields:
            if name not in seen:
                seen.append(name)
    return seen


def _validate_text(payload: NotificationPayload) -> None:
    if not payload.title or not payload.title.strip():
        raise ValidationError("Notification title is required", details={"field": "title"})
    if len(payload.title) > TITLE_MAX_LENGTH:
        raise ValidationError(
            f"Notification title exceeds {TITLE_MAX_LENGTH} characters",
            details={"field": "title"},
        )
    if not payload.content or not payload.content.strip():
        raise ValidationError("Notification content is required", details={"field": "content"})
    if len(payload.content) > CONTENT_MAX_LENGTH:
        raise ValidationError(
            f"Notification content exceeds {CONTENT_MAX_LENGTH} characters",
            details={"field": "content"},
        )


class NotificationService:
    """Service layer for notification creation and management.

    One fan-out stores a single notification plus one delivery record per
    resolved recipient in the same transaction, then hands the stored
    notification to the configured delivery channels. Channel failures are
    reported in ``CreateResult.delivery_status`` and never raised.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        resolver: RecipientResolver,
        permissions: PermissionService,
        channels: Sequence[IDeliveryChannel] = (),
        audit_service: AuditService | None = None,
        expiry_days: int = NOTIFICATION_EXPIRY_DAYS,
        bulk_max_items: int = BULK_MAX_ITEMS,
    ) -> None:
        self._uow_factory = uow_factory
        self._resolver = resolver
        self._permissions = permissions
        self._channels = list(channels)
        self._audit = audit_service
        self._expiry_days = expiry_days
        self._bulk_max_items = bulk_max_items

    # --- In-transaction notification creation ---

    async def notify_in_uow(
        self,
        uow: IUnitOfWork,
        *,
        type: NotificationType,
        title: str,
        content: str,
        recipients: RecipientSpec,
        created_by: UUID | None,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        related_document_id: UUID | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Notification | None:
        """Create a notification within an existing UoW transaction.

        This method is designed to be called from other services (the
        document workflow) inside their own transaction. The caller manages
        the commit, so the notification lands atomically with the caller's
        write. No sender capability check is made.

        Returns:
            The created Notification, or None if no recipients resolved.
        """
        payload = NotificationPayload(
            title=title,
            content=content,
            type=type,
            created_by=created_by,
            recipients=recipients,
            priority=priority,
            related_document_id=related_document_id,
            metadata=metadata or {},
        )
        _validate_text(payload)

        user_ids = await self._resolver.resolve_in_uow(uow, payload.recipients)
        if not user_ids:
            logger.debug("notification_skipped_no_recipients", type=type.value)
            return None

        return await self._store(uow, payload, user_ids)

    # --- Fan-out ---

    async def create_notification(self, payload: NotificationPayload) -> CreateResult:
        """Resolve recipients, store the notification and its deliveries, then deliver.

        Raises:
            ValidationError: If the payload is malformed.
            UserNotFoundError: If ``created_by`` is not a known user.
            DocumentNotFoundError: If ``related_document_id`` is not a known document.
            AuthorizationError: If the sender lacks the notify capability.
        """
        return await self._create(payload, require_notify=True)

    async def _create(self, payload: NotificationPayload, require_notify: bool) -> CreateResult:
        _validate_text(payload)

        async with self._uow_factory() as uow:
            if payload.created_by is not None:
                sender = await uow.users.get(payload.created_by)
                if sender is None:
                    raise UserNotFoundError(str(payload.created_by))
                if require_notify and not self._permissions.has_capability(
                    sender, Capability.NOTIFY
                ):
                    raise AuthorizationError(
                        "Sending notifications requires the notify capability",
                        details={"user_id": str(sender.id)},
                    )

            if payload.related_document_id is not None:
                if await uow.documents.get(payload.related_document_id) is None:
                    raise DocumentNotFoundError(str(payload.related_document_id))

            user_ids = await self._resolver.resolve_in_uow(uow, payload.recipients)
            try:
                notification = await self._store(uow, payload, user_ids)
                await uow.commit()
            except IntegrityError as exc:
                raise ValidationError(
                    "Notification references a record that does not exist"
                ) from exc

        delivery_status = await self._dispatch(notification, payload, frozenset(user_ids))

        logger.info(
            "notification_created",
            notification_id=str(notification.id),
            type=notification.type.value,
            recipient_count=notification.recipient_count,
            delivery_status={k: v.value for k, v in delivery_status.items()},
        )

        if self._audit:
            await self._audit.log_action(
                payload.created_by,
                AuditActions.NOTIFICATION_CREATED,
                {
                    "type": notification.type.value,
                    "recipient_count": notification.recipient_count,
                },
                entity_type="notification",
                entity_id=notification.id,
            )

        return CreateResult(
            notification_id=notification.id,
            status=notification.status,
            recipient_count=notification.recipient_count,
            delivery_status=delivery_status,
        )

    async def _store(
        self,
        uow: IUnitOfWork,
        payload: NotificationPayload,
        user_ids: set[UUID],
    ) -> Notification:
        now = datetime.utcnow()
        scheduled = payload.scheduled_for is not None and payload.scheduled_for > now
        methods = payload.delivery_methods()

        notification = Notification(
            title=payload.title.strip(),
            content=payload.content.strip(),
            type=payload.type,
            created_by=payload.created_by,
            priority=payload.priority,
            status=NotificationStatus.SCHEDULED if scheduled else NotificationStatus.SENT,
            category=payload.category,
            related_document_id=payload.related_document_id,
            metadata=dict(payload.metadata),
            recipient_count=len(user_ids),
            created_at=now,
            expires_at=payload.expires_at or now + timedelta(days=self._expiry_days),
            scheduled_for=payload.scheduled_for,
        )
        created = await uow.notifications.create(notification)

        # Fan-out on write: one record per recipient, one batch insert.
        deliveries = [
            NotificationDelivery(
                notification_id=created.id,
                user_id=uid,
                delivery_methods=list(methods),
                delivered_at=None if scheduled else now,
            )
            for uid in sorted(user_ids)
        ]
        if deliveries:
            await uow.notifications.create_deliveries_batch(deliveries)

        return created

    async def _dispatch(
        self,
        notification: Notification,
        payload: NotificationPayload,
        user_ids: frozenset[UUID],
    ) -> dict[str, DeliveryOutcome]:
        selected = set(payload.delivery_methods())
        channels = {channel.method: channel for channel in self._channels}
        deferred = notification.status is NotificationStatus.SCHEDULED or not payload.send_immediately

        status: dict[str, DeliveryOutcome] = {}
        for method in DeliveryMethod:
            if method not in selected or not user_ids:
                status[method.value] = DeliveryOutcome.SKIPPED
                continue
            if deferred:
                status[method.value] = DeliveryOutcome.PENDING
                continue

            channel = channels.get(method)
            if channel is None:
                logger.warning("delivery_channel_not_configured", channel=method.value)
                status[method.value] = DeliveryOutcome.SKIPPED
                continue

            try:
                status[method.value] = await channel.deliver(
                    DeliveryRequest(notification=notification, recipient_ids=user_ids)
                )
            except Exception as exc:
                error = DeliveryError(method.value, str(notification.id), str(exc))
                logger.warning(
                    "delivery_failed",
                    channel=method.value,
                    notification_id=str(notification.id),
                    error=error.message,
                )
                status[method.value] = DeliveryOutcome.FAILED

        return status

    # --- Bulk ---

    async def create_bulk(
        self,
        payloads: Sequence[NotificationPayload],
        options: BatchOptions | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> BatchResult:
        """Create notifications one after another.

        Items run sequentially with ``options.delay_seconds`` between them.
        An item failure is recorded in the result; with the stop policy the
        run ends after the first failure. Setting ``cancel_event`` ends the
        run before the next item. Items already created are never rolled back.

        Raises:
            ValidationError: If the batch is empty or too large.
            DirectoryUnavailableError: If the user directory cannot be queried.
        """
        options = options or BatchOptions()
        if not payloads:
            raise ValidationError("Bulk request contains no notifications")
        if len(payloads) > self._bulk_max_items:
            raise ValidationError(
                f"Bulk request exceeds {self._bulk_max_items} notifications",
                details={"count": len(payloads), "max": self._bulk_max_items},
            )

        result = BatchResult(batch_id=f"batch_{uuid4().hex[:12]}", total_count=len(payloads))

        for index, payload in enumerate(payloads):
            if self._cancelled(cancel_event):
                result.status = BatchStatus.CANCELLED
                break
            if index > 0 and options.delay_seconds > 0:
                await asyncio.sleep(options.delay_seconds)
                if self._cancelled(cancel_event):
                    result.status = BatchStatus.CANCELLED
                    break

            item = await self._create_item(index, payload)
            result.results.append(item)
            if item.success:
                result.success_count += 1
                continue

            result.failure_count += 1
            if options.failure_policy is FailurePolicy.STOP:
                break

        if result.failure_count:
            result.status = BatchStatus.PARTIAL

        logger.info(
            "notification_bulk_completed",
            batch_id=result.batch_id,
            total=result.total_count,
            succeeded=result.success_count,
            failed=result.failure_count,
            status=result.status.value,
        )

        if self._audit:
            await self._audit.log_action(
                payloads[0].created_by,
                AuditActions.NOTIFICATION_BULK_CREATED,
                {
                    "batch_id": result.batch_id,
                    "total": result.total_count,
                    "succeeded": result.success_count,
                    "failed": result.failure_count,
                    "status": result.status.value,
                },
            )

        return result

    async def _create_item(self, index: int, payload: NotificationPayload) -> BatchItemResult:
        try:
            created = await self.create_notification(payload)
        except DirectoryUnavailableError:
            raise
        except AppException as exc:
            logger.warning(
                "notification_bulk_item_failed",
                index=index,
                error_code=exc.error_code.value,
                error=exc.message,
            )
            return BatchItemResult(
                index=index,
                success=False,
                error=exc.message,
                error_code=exc.error_code.value,
            )
        return BatchItemResult(
            index=index,
            success=True,
            notification_id=created.notification_id,
            recipient_count=created.recipient_count,
        )

    @staticmethod
    def _cancelled(cancel_event: asyncio.Event | None) -> bool:
        return cancel_event is not None and cancel_event.is_set()

    # --- Announcements and reminders ---

    async def create_system_announcement(
        self,
        actor_id: UUID,
        title: str,
        content: str,
        target_workspaces: Sequence[Workspace] | None = None,
        target_roles: Sequence[UserRole] | None = None,
        priority: NotificationPriority = NotificationPriority.HIGH,
        expires_at: datetime | None = None,
        send_email: bool = False,
    ) -> CreateResult:
        """Broadcast an announcement.

        With no targets everyone is addressed. When both workspaces and roles
        are given, only users matching a workspace AND a role receive it.
        """
        workspaces = frozenset(target_workspaces or ())
        roles = frozenset(target_roles or ())

        recipients: RecipientSpec
        if workspaces and roles:
            in_workspaces = await self._resolver.resolve(ByWorkspace(workspaces=workspaces))
            in_roles = await self._resolver.resolve(ByRole(roles=roles))
            recipients = SpecificUsers(user_ids=frozenset(in_workspaces & in_roles))
        elif workspaces:
            recipients = ByWorkspace(workspaces=workspaces)
        elif roles:
            recipients = ByRole(roles=roles)
        else:
            recipients = AllUsers()

        result = await self.create_notification(
            NotificationPayload(
                title=title,
                content=content,
                type=NotificationType.ANNOUNCEMENT,
                created_by=actor_id,
                recipients=recipients,
                priority=priority,
                category="announcement",
                metadata={
                    "target_workspaces": sorted(w.value for w in workspaces),
                    "target_roles": sorted(r.value for r in roles),
                },
                expires_at=expires_at,
                send_email=send_email,
            )
        )

        if self._audit:
            await self._audit.log_action(
                actor_id,
                AuditActions.ANNOUNCEMENT_CREATED,
                {"recipient_count": result.recipient_count},
                entity_type="notification",
                entity_id=result.notification_id,
            )
        return result

    async def create_reminder(
        self,
        actor_id: UUID,
        user_ids: Sequence[UUID],
        title: str,
        content: str,
        remind_at: datetime,
        related_document_id: UUID | None = None,
    ) -> CreateResult:
        """Schedule a reminder for the given users.

        A reminder addressed only to the actor needs no notify capability.
        """
        if remind_at <= datetime.utcnow():
            raise ValidationError(
                "Reminder time must be in the future", details={"field": "remind_at"}
            )
        targets = frozenset(user_ids)
        if not targets:
            raise ValidationError("Reminder needs at least one user", details={"field": "user_ids"})

        payload = NotificationPayload(
            title=title,
            content=content,
            type=NotificationType.REMINDER,
            created_by=actor_id,
            recipients=SpecificUsers(user_ids=targets),
            category="reminder",
            related_document_id=related_document_id,
            scheduled_for=remind_at,
        )
        return await self._create(payload, require_notify=targets != {actor_id})

    # --- Templates ---

    async def create_template(
        self,
        actor_id: UUID,
        name: str,
        title: str,
        content: str,
        type: NotificationType = NotificationType.INFO,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        description: str | None = None,
    ) -> NotificationTemplate:
        """Create a named template. Variables are taken from its placeholders."""
        name = name.strip()
        if not name:
            raise ValidationError("Template name is required", details={"field": "name"})
        variables = template_variables(title, content)

        async with self._uow_factory() as uow:
            actor = await uow.users.get(actor_id)
            if not self._permissions.has_capability(actor, Capability.NOTIFY):
                raise AuthorizationError("Managing templates requires the notify capability")

            if await uow.notifications.get_template_by_name(name):
                raise DuplicateTemplateError(name)

            try:
                template = await uow.notifications.create_template(
                    NotificationTemplate(
                        name=name,
                        title=title,
                        content=content,
                        created_by=actor_id,
                        description=description,
                        type=type,
                        priority=priority,
                        variables=variables,
                    )
                )
                await uow.commit()
            except IntegrityError as exc:
                raise DuplicateTemplateError(name) from exc

        if self._audit:
            await self._audit.log_action(
                actor_id,
                AuditActions.TEMPLATE_CREATED,
                {"name": name, "variables": variables},
                entity_type="notification_template",
                entity_id=template.id,
            )
        return template

    async def list_templates(self, active_only: bool = True) -> list[NotificationTemplate]:
        """List templates ordered by name."""
        async with self._uow_factory() as uow:
            return await uow.notifications.list_templates(active_only=active_only)

    async def create_from_template(
        self,
        template_name: str,
        variables: Mapping[str, Any],
        recipients: RecipientSpec,
        created_by: UUID,
        **overrides: Any,
    ) -> CreateResult:
        """Render a template and fan it out.

        ``overrides`` may set any other payload field (priority, send_email,
        expires_at, related_document_id, scheduled_for, category).
        """
        async with self._uow_factory() as uow:
            template = await uow.notifications.get_template_by_name(template_name)
        if template is None or not template.is_active:
            raise TemplateNotFoundError(template_name)

        missing = [v for v in template.variables if v not in variables]
        if missing:
            raise ValidationError(
                "Missing template variables",
                details={"template": template_name, "missing": missing},
            )

        try:
            title = template.title.format_map(variables)
            content = template.content.format_map(variables)
        except (KeyError, IndexError, ValueError) as exc:
            raise ValidationError(
                f"Template could not be rendered: {exc}",
                details={"template": template_name},
            ) from exc

        payload = NotificationPayload(
            title=title,
            content=content,
            type=template.type,
            created_by=created_by,
            recipients=recipients,
            priority=template.priority,
            metadata={"template": template.name, "variables": dict(variables)},
        )
        try:
            payload = replace(payload, **overrides)
        except TypeError as exc:
            raise ValidationError(f"Unsupported template override: {exc}") from exc
        return await self.create_notification(payload)

    # --- Read methods (use own UoW context) ---

    async def get_user_notifications(
        self,
        user_id: UUID,
        filters: NotificationFilters | None = None,
    ) -> NotificationPage:
        """Get a filtered, paginated notification feed with the unread total."""
        filters = self._normalize_filters(filters or NotificationFilters())

        async with self._uow_factory() as uow:
            rows, total = await uow.notifications.get_user_notifications(user_id, filters)
            unread_count = await uow.notifications.count_unread(user_id)

        items = [
            NotificationView(
                delivery_id=delivery.id,
                notification_id=notif.id,
                title=notif.title,
                content=notif.content,
                type=notif.type,
                priority=notif.priority,
                category=notif.category,
                related_document_id=notif.related_document_id,
                metadata=notif.metadata or {},
                created_by=notif.created_by,
                created_at=notif.created_at,
                expires_at=notif.expires_at,
                delivery_methods=delivery.delivery_methods,
                delivered_at=delivery.delivered_at,
                is_read=delivery.is_read,
                read_at=delivery.read_at,
                is_archived=delivery.is_archived,
                archived_at=delivery.archived_at,
                action_taken=delivery.action_taken,
                action_taken_at=delivery.action_taken_at,
            )
            for notif, delivery in rows
        ]

        return NotificationPage(
            items=items,
            total=total,
            unread_count=unread_count,
            has_more=filters.offset + len(items) < total,
        )

    @staticmethod
    def _normalize_filters(filters: NotificationFilters) -> NotificationFilters:
        if filters.sort_by not in SORT_FIELDS:
            raise ValidationError(
                f"Cannot sort by '{filters.sort_by}'", details={"allowed": sorted(SORT_FIELDS)}
            )
        if filters.sort_order not in SORT_ORDERS:
            raise ValidationError(
                f"Invalid sort order '{filters.sort_order}'",
                details={"allowed": sorted(SORT_ORDERS)},
            )
        if (
            filters.start_date is not None
            and filters.end_date is not None
            and filters.start_date > filters.end_date
        ):
            raise ValidationError("start_date must not be after end_date")

        return replace(
            filters,
            limit=max(1, min(filters.limit, FEED_MAX_LIMIT)),
            offset=max(0, filters.offset),
            search=filters.search.strip() if filters.search and filters.search.strip() else None,
        )

    async def get_notification_statistics(
        self, period: str = DEFAULT_STATISTICS_PERIOD
    ) -> NotificationStatistics:
        """Aggregate counts over the last 7d, 30d, 90d or 1y (default 30d)."""
        if period not in STATISTICS_PERIODS:
            period = DEFAULT_STATISTICS_PERIOD
        days = STATISTICS_PERIODS[period]
        since = datetime.utcnow() - timedelta(days=days)

        async with self._uow_factory() as uow:
            total = await uow.notifications.count_created_since(since)
            deliveries = await uow.notifications.count_deliveries_since(since)
            read = await uow.notifications.count_deliveries_since(since, is_read=True)
            by_type = await uow.notifications.count_by_type_since(since)
            by_method = await uow.notifications.count_deliveries_by_method_since(since)
            reached = await uow.notifications.count_distinct_recipients_since(since)
            active_users = await uow.users.count_active()

        read_rate = round(read / deliveries * 100, 2) if deliveries else 0.0

        return NotificationStatistics(
            period=period,
            overview={
                "total_notifications": total,
                "total_recipients": deliveries,
                "total_read": read,
                "average_read_rate": read_rate,
                "average_per_day": round(total / days, 2),
            },
            top_types=[
                {
                    "type": type_name,
                    "count": count,
                    "percentage": round(count / total * 100, 2) if total else 0.0,
                }
                for type_name, count in by_type
            ],
            delivery_stats={"total": deliveries, **by_method},
            user_engagement={
                "active_users": active_users,
                "users_reached": reached,
                "engagement_rate": round(reached / active_users * 100, 2) if active_users else 0.0,
                "read_rate": read_rate,
            },
        )

    async def purge_expired(self) -> int:
        """Delete expired notifications with their delivery records."""
        async with self._uow_factory() as uow:
            deleted = await uow.notifications.delete_expired(datetime.utcnow())
            await uow.commit()

        if deleted:
            logger.info("notifications_purged", count=deleted)
        return deleted
