"""Service factories for FastAPI dependency injection."""

from functools import lru_cache
from typing import Callable

from core.config import settings
from domain.services.audit_service import AuditService
from domain.services.document_workflow import DocumentWorkflowService
from domain.services.notification_service import NotificationService
from domain.services.permission_service import PermissionService
from domain.services.read_state_service import ReadStateService
from domain.services.recipient_resolver import RecipientResolver
from domain.services.user_service import UserService
from infrastructure.database.session import async_session_factory
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork
from infrastructure.delivery.browser import BrowserChannel
from infrastructure.delivery.email_relay import EmailRelayChannel


def get_uow_factory() -> Callable[[], SQLAlchemyUnitOfWork]:
    """Factory for creating Unit of Work instances."""

    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(async_session_factory)

    return factory


@lru_cache
def get_permission_service() -> PermissionService:
    """Get Permission service instance."""
    return PermissionService()


@lru_cache
def get_audit_service() -> AuditService:
    """Get Audit service instance."""
    return AuditService(get_uow_factory())


@lru_cache
def get_recipient_resolver() -> RecipientResolver:
    """Get Recipient resolver instance."""
    return RecipientResolver(get_uow_factory())


@lru_cache
def get_user_service() -> UserService:
    """Get User service instance."""
    return UserService(
        get_uow_factory(),
        permissions=get_permission_service(),
        audit_service=get_audit_service(),
    )


@lru_cache
def get_notification_service() -> NotificationService:
    """Get Notification service instance."""
    return NotificationService(
        get_uow_factory(),
        resolver=get_recipient_resolver(),
        permissions=get_permission_service(),
        channels=[
            BrowserChannel(),
            EmailRelayChannel(
                settings.email_relay_url,
                timeout_s=settings.email_relay_timeout_seconds,
            ),
        ],
        audit_service=get_audit_service(),
        expiry_days=settings.notification_expiry_days,
        bulk_max_items=settings.bulk_max_items,
    )


@lru_cache
def get_read_state_service() -> ReadStateService:
    """Get Read state service instance."""
    return ReadStateService(get_uow_factory())


@lru_cache
def get_document_workflow_service() -> DocumentWorkflowService:
    """Get Document workflow service instance."""
    return DocumentWorkflowService(
        get_uow_factory(),
        permissions=get_permission_service(),
        resolver=get_recipient_resolver(),
        notification_service=get_notification_service(),
        audit_service=get_audit_service(),
    )
