"""User directory service layer."""

from collections.abc import Callable
from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError

from core.exceptions import (
    AuthorizationError,
    ErrorCode,
    UserNotFoundError,
    ValidationError,
)
from domain.entities.audit import AuditActions
from domain.entities.user import User
from domain.entities.workspace import UserRole, Workspace
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.audit_service import AuditService
from domain.services.permission_service import Capability, PermissionService

logger = structlog.get_logger()


class UserService:
    """Service layer for directory users.

    Creating and updating users requires the manage_users capability, except
    when ``actor_id`` is None (seeding and administrative scripts).
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        permissions: PermissionService,
        audit_service: AuditService | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._permissions = permissions
        self._audit = audit_service

    async def get_user(self, user_id: UUID) -> User:
        """Get a user by ID."""
        async with self._uow_factory() as uow:
            user = await uow.users.get(user_id)
            if not user:
                raise UserNotFoundError(str(user_id))
            return user

    async def create_user(
        self,
        actor_id: UUID | None,
        email: str,
        full_name: str,
        role: UserRole,
        workspace: Workspace,
        user_id: UUID | None = None,
    ) -> User:
        """Create a directory user with a valid role/workspace combination."""
        email = email.strip().lower()
        if not email or "@" not in email:
            raise ValidationError("A valid email is required", details={"field": "email"})
        if not full_name.strip():
            raise ValidationError("Full name is required", details={"field": "full_name"})
        self._check_role_workspace(role, workspace)

        user = User(email=email, full_name=full_name.strip(), role=role, workspace=workspace)
        if user_id is not None:
            user.id = user_id

        async with self._uow_factory() as uow:
            await self._authorize(uow, actor_id)
            if await uow.users.get_by_email(email):
                raise ValidationError(
                    f"Email already registered: {email}", details={"field": "email"}
                )
            try:
                created = await uow.users.create(user)
                await uow.commit()
            except IntegrityError as exc:
                raise ValidationError(
                    f"Email already registered: {email}", details={"field": "email"}
                ) from exc

        logger.info("user_created", user_id=str(created.id), role=role.value)
        if self._audit:
            await self._audit.log_action(
                actor_id,
                AuditActions.USER_CREATED,
                {"role": role.value, "workspace": workspace.value},
                entity_type="user",
                entity_id=created.id,
            )
        return created

    async def update_user(
        self,
        actor_id: UUID | None,
        user_id: UUID,
        full_name: str | None = None,
        role: UserRole | None = None,
        workspace: Workspace | None = None,
        is_active: bool | None = None,
    ) -> User:
        """Update a user's name, role, workspace or active flag."""
        async with self._uow_factory() as uow:
            await self._authorize(uow, actor_id)
            user = await uow.users.get(user_id)
            if not user:
                raise UserNotFoundError(str(user_id))

            changes: dict[str, dict[str, object]] = {}
            if full_name is not None and full_name.strip() != user.full_name:
                changes["full_name"] = {"old": user.full_name, "new": full_name.strip()}
                user.full_name = full_name.strip()
            if role is not None and role != user.role:
                changes["role"] = {"old": user.role.value, "new": role.value}
                user.role = role
            if workspace is not None and workspace != user.workspace:
                changes["workspace"] = {"old": user.workspace.value, "new": workspace.value}
                user.workspace = workspace
            if is_active is not None and is_active != user.is_active:
                changes["is_active"] = {"old": user.is_active, "new": is_active}
                user.is_active = is_active

            if not changes:
                return user

            self._check_role_workspace(user.role, user.workspace)
            user.updated_at = datetime.utcnow()
            updated = await uow.users.update(user)
            await uow.commit()

        logger.info("user_updated", user_id=str(user_id), fields=sorted(changes))
        if self._audit:
            await self._audit.log_action(
                actor_id,
                AuditActions.USER_UPDATED,
                {"changes": changes},
                entity_type="user",
                entity_id=user_id,
            )
        return updated

    async def _authorize(self, uow: IUnitOfWork, actor_id: UUID | None) -> None:
        if actor_id is None:
            return
        actor = await uow.users.get(actor_id)
        if not self._permissions.has_capability(actor, Capability.MANAGE_USERS):
            raise AuthorizationError("Managing users requires the manage_users capability")

    def _check_role_workspace(self, role: UserRole, workspace: Workspace) -> None:
        reason = self._permissions.role_workspace_violation(role, workspace)
        if reason:
            raise ValidationError(
                reason,
                error_code=ErrorCode.INVALID_ROLE_WORKSPACE,
                details={"role": role.value, "workspace": workspace.value},
            )
