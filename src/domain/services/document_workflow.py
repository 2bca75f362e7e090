"""Document lifecycle: creation, content edits and status transitions."""

from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from enum import StrEnum
from uuid import UUID

import structlog

from core.exceptions import (
    AuthorizationError,
    ConflictError,
    DocumentNotEditableError,
    DocumentNotFoundError,
    InvalidTransitionError,
    UserNotFoundError,
    ValidationError,
)
from domain.entities.audit import AuditActions
from domain.entities.document import (
    Document,
    DocumentFilters,
    DocumentPage,
    DocumentStatus,
    VersionBump,
    allowed_transitions,
    bump_version,
    is_allowed_transition,
)
from domain.entities.notification import NotificationPriority, NotificationType
from domain.entities.recipients import ByRole, ByWorkspace, SpecificUsers
from domain.entities.user import User
from domain.entities.workspace import GLOBAL_ROLES, Workspace
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.audit_service import AuditService
from domain.services.notification_service import NotificationService
from domain.services.permission_service import Capability, PermissionService, roles_with
from domain.services.recipient_resolver import RecipientResolver

logger = structlog.get_logger()

TITLE_MAX_LENGTH = 255
LIST_MAX_LIMIT = 100
LIST_SORT_FIELDS = frozenset({"created_at", "updated_at", "title"})


def edge_permission(current: DocumentStatus, target: DocumentStatus) -> Capability:
    """Capability required to move a document along one edge."""
    if target in (DocumentStatus.APPROVED, DocumentStatus.REJECTED):
        return Capability.APPROVE
    if target is DocumentStatus.ARCHIVED:
        return Capability.ARCHIVE
    return Capability.WRITE


class Audience(StrEnum):
    REVIEWERS = "reviewers"
    CREATOR = "creator"


@dataclass(frozen=True, slots=True)
class WorkflowTrigger:
    """Notification sent when a document enters a status."""

    type: NotificationType
    audience: Audience
    title: str
    content: str
    priority: NotificationPriority = NotificationPriority.NORMAL


TRIGGERS: dict[DocumentStatus, WorkflowTrigger] = {
    DocumentStatus.PENDING_REVIEW: WorkflowTrigger(
        type=NotificationType.DOCUMENT_REVIEW_REQUESTED,
        audience=Audience.REVIEWERS,
        title="Document awaiting review",
        content="'{title}' was submitted for review by {actor}.",
        priority=NotificationPriority.HIGH,
    ),
    DocumentStatus.APPROVED: WorkflowTrigger(
        type=NotificationType.DOCUMENT_APPROVED,
        audience=Audience.CREATOR,
        title="Document approved",
        content="'{title}' was approved by {actor}.",
    ),
    DocumentStatus.REJECTED: WorkflowTrigger(
        type=NotificationType.DOCUMENT_REJECTED,
        audience=Audience.CREATOR,
        title="Document rejected",
        content="'{title}' was rejected by {actor}.",
        priority=NotificationPriority.HIGH,
    ),
}


class DocumentWorkflowService:
    """Service layer for the document state machine.

    A transition is checked in this order: the document exists, the caller's
    revision is current, the edge is in the transition table, and the actor
    holds the edge's capability. The status write is a conditional update on
    the revision, and any trigger notification is written in the same
    transaction. The audit entry is best-effort and written afterwards.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        permissions: PermissionService,
        resolver: RecipientResolver,
        notification_service: NotificationService,
        audit_service: AuditService | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._permissions = permissions
        self._resolver = resolver
        self._notification = notification_service
        self._audit = audit_service

    async def create_document(
        self,
        actor_id: UUID,
        title: str,
        workspace: Workspace,
        description: str | None = None,
        assigned_to: UUID | None = None,
    ) -> Document:
        """Create a draft document in a workspace."""
        title = title.strip()
        if not title:
            raise ValidationError("Document title is required", details={"field": "title"})
        if len(title) > TITLE_MAX_LENGTH:
            raise ValidationError(
                f"Document title exceeds {TITLE_MAX_LENGTH} characters",
                details={"field": "title"},
            )

        async with self._uow_factory() as uow:
            actor = await self._get_actor(uow, actor_id)
            if not (
                self._permissions.has_capability(actor, Capability.CREATE)
                and self._permissions.can_access_workspace(actor, workspace)
            ):
                raise AuthorizationError(
                    f"Not allowed to create documents in '{workspace.value}'",
                    details={"workspace": workspace.value},
                )

            document = await uow.documents.create(
                Document(
                    title=title,
                    workspace=workspace,
                    created_by=actor_id,
                    description=description,
                    assigned_to=assigned_to,
                )
            )
            await uow.commit()

        logger.info(
            "document_created",
            document_id=str(document.id),
            workspace=workspace.value,
            actor_id=str(actor_id),
        )
        if self._audit:
            await self._audit.log_action(
                actor_id,
                AuditActions.DOCUMENT_CREATED,
                {"title": title, "workspace": workspace.value},
                entity_type="document",
                entity_id=document.id,
            )
        return document

    async def get_document(self, document_id: UUID, actor_id: UUID) -> Document:
        """Get a document the actor may read."""
        async with self._uow_factory() as uow:
            document = await uow.documents.get(document_id)
            if not document:
                raise DocumentNotFoundError(str(document_id))
            actor = await self._get_actor(uow, actor_id)

        if not self._permissions.has_capability(actor, Capability.READ, document):
            raise AuthorizationError("Not allowed to read this document")
        return document

    async def list_documents(
        self, actor_id: UUID, filters: DocumentFilters | None = None
    ) -> DocumentPage:
        """List documents in the workspaces the actor may read.

        Administrators and other global roles see every workspace; everyone
        else sees their own. Asking for a workspace outside that scope is an
        authorization error rather than an empty page.
        """
        filters = self._normalize_filters(filters or DocumentFilters())

        async with self._uow_factory() as uow:
            actor = await self._get_actor(uow, actor_id)
            if not self._permissions.has_capability(actor, Capability.READ):
                raise AuthorizationError("Not allowed to list documents")

            visible = [ws for ws in Workspace if self._permissions.can_access_workspace(actor, ws)]
            if filters.workspace is not None and filters.workspace not in visible:
                raise AuthorizationError(
                    f"No access to workspace '{filters.workspace.value}'",
                    details={"workspace": filters.workspace.value},
                )

            items, total = await uow.documents.list_in_workspaces(visible, filters)

        return DocumentPage(
            items=items,
            total=total,
            has_more=filters.offset + len(items) < total,
        )

    @staticmethod
    def _normalize_filters(filters: DocumentFilters) -> DocumentFilters:
        if filters.sort_by not in LIST_SORT_FIELDS:
            raise ValidationError(
                f"Cannot sort by '{filters.sort_by}'",
                details={"allowed": sorted(LIST_SORT_FIELDS)},
            )
        if filters.sort_order not in ("asc", "desc"):
            raise ValidationError(
                f"Invalid sort order '{filters.sort_order}'",
                details={"allowed": ["asc", "desc"]},
            )
        if (
            filters.start_date is not None
            and filters.end_date is not None
            and filters.start_date > filters.end_date
        ):
            raise ValidationError("start_date must not be after end_date")

        return replace(
            filters,
            limit=max(1, min(filters.limit, LIST_MAX_LIMIT)),
            offset=max(0, filters.offset),
            search=filters.search.strip() if filters.search and filters.search.strip() else None,
        )

    def allowed_targets(self, document: Document, actor: User) -> list[DocumentStatus]:
        """Statuses this actor could move the document to right now."""
        return sorted(
            (
                target
                for target in allowed_transitions(document.status)
                if self._permissions.has_capability(
                    actor, edge_permission(document.status, target), document
                )
            ),
            key=lambda s: s.value,
        )

    async def transition(
        self,
        document_id: UUID,
        target: DocumentStatus,
        actor_id: UUID,
        expected_revision: int | None = None,
        reason: str | None = None,
    ) -> Document:
        """Move a document to ``target``.

        Args:
            document_id: The document to move.
            target: The status to move it to.
            actor_id: The user performing the transition.
            expected_revision: The revision the caller last read, if known.
            reason: Optional free text, passed to the creator on rejection.

        Raises:
            DocumentNotFoundError: If the document does not exist.
            ConflictError: If the document changed since the caller read it.
            InvalidTransitionError: If ``target`` is not reachable in one step.
            AuthorizationError: If the actor lacks the edge's capability.
        """
        async with self._uow_factory() as uow:
            document = await uow.documents.get(document_id)
            if not document:
                raise DocumentNotFoundError(str(document_id))
            actor = await self._get_actor(uow, actor_id)

            if expected_revision is not None and expected_revision != document.revision:
                raise ConflictError(str(document_id), expected_revision, document.revision)

            current = document.status
            if not is_allowed_transition(current, target):
                raise InvalidTransitionError(
                    current.value,
                    target.value,
                    sorted(s.value for s in allowed_transitions(current)),
                )

            required = edge_permission(current, target)
            if not self._permissions.has_capability(actor, required, document):
                raise AuthorizationError(
                    f"Moving a document to '{target.value}' requires '{required.value}'",
                    details={"required": required.value},
                )

            read_revision = document.revision
            document.status = target
            document.revision = read_revision + 1
            document.updated_at = datetime.utcnow()
            if not await uow.documents.update_if_revision(document, read_revision):
                raise ConflictError(str(document_id), read_revision)

            await self._fire_trigger(uow, document, actor, reason)
            await uow.commit()

        logger.info(
            "document_transitioned",
            document_id=str(document_id),
            from_status=current.value,
            to_status=target.value,
            actor_id=str(actor_id),
        )
        if self._audit:
            await self._audit.log_action(
                actor_id,
                AuditActions.DOCUMENT_STATUS_CHANGED,
                {"from": current.value, "to": target.value, "reason": reason},
                entity_type="document",
                entity_id=document_id,
            )
        return document

    async def edit_content(
        self,
        document_id: UUID,
        actor_id: UUID,
        title: str | None = None,
        description: str | None = None,
        bump: VersionBump = VersionBump.PATCH,
        expected_revision: int | None = None,
    ) -> Document:
        """Edit a document's content and bump its version.

        Only allowed while the document is editable. Editing a rejected
        document sends it back to draft.
        """
        async with self._uow_factory() as uow:
            document = await uow.documents.get(document_id)
            if not document:
                raise DocumentNotFoundError(str(document_id))
            actor = await self._get_actor(uow, actor_id)

            if expected_revision is not None and expected_revision != document.revision:
                raise ConflictError(str(document_id), expected_revision, document.revision)
            if not document.is_editable:
                raise DocumentNotEditableError(document.status.value)
            if not self._permissions.has_capability(actor, Capability.WRITE, document):
                raise AuthorizationError("Not allowed to edit this document")

            if title is not None:
                title = title.strip()
                if not title or len(title) > TITLE_MAX_LENGTH:
                    raise ValidationError("Invalid document title", details={"field": "title"})
                document.title = title
            if description is not None:
                document.description = description

            previous_version = document.version
            read_revision = document.revision
            document.version = bump_version(previous_version, bump)
            document.status = DocumentStatus.DRAFT
            document.revision = read_revision + 1
            document.updated_at = datetime.utcnow()
            if not await uow.documents.update_if_revision(document, read_revision):
                raise ConflictError(str(document_id), read_revision)
            await uow.commit()

        logger.info(
            "document_content_edited",
            document_id=str(document_id),
            version=document.version,
            actor_id=str(actor_id),
        )
        if self._audit:
            await self._audit.log_action(
                actor_id,
                AuditActions.DOCUMENT_CONTENT_EDITED,
                {"from_version": previous_version, "to_version": document.version},
                entity_type="document",
                entity_id=document_id,
            )
        return document

    async def _get_actor(self, uow: IUnitOfWork, actor_id: UUID) -> User:
        actor = await uow.users.get(actor_id)
        if not actor:
            raise UserNotFoundError(str(actor_id))
        return actor

    async def _fire_trigger(
        self,
        uow: IUnitOfWork,
        document: Document,
        actor: User,
        reason: str | None,
    ) -> None:
        trigger = TRIGGERS.get(document.status)
        if trigger is None:
            return

        if trigger.audience is Audience.REVIEWERS:
            user_ids = await self._reviewers(uow, document.workspace)
        else:
            user_ids = {document.created_by}

        metadata: dict[str, str] = {
            "document_title": document.title,
            "status": document.status.value,
            "actor_name": actor.full_name,
        }
        if reason:
            metadata["reason"] = reason

        content = trigger.content.format(title=document.title, actor=actor.full_name)
        if reason:
            content = f"{content} Reason: {reason}"

        await self._notification.notify_in_uow(
            uow,
            type=trigger.type,
            title=trigger.title,
            content=content,
            recipients=SpecificUsers(
                user_ids=frozenset(user_ids), exclude_users=frozenset({actor.id})
            ),
            created_by=actor.id,
            priority=trigger.priority,
            related_document_id=document.id,
            metadata=metadata,
        )

    async def _reviewers(self, uow: IUnitOfWork, workspace: Workspace) -> set[UUID]:
        """Approvers confined to the workspace plus global approvers."""
        approvers = roles_with(Capability.APPROVE)
        confined = frozenset(approvers - GLOBAL_ROLES)
        global_ = frozenset(approvers & GLOBAL_ROLES)

        in_workspace = await self._resolver.resolve_in_uow(
            uow, ByWorkspace(workspaces=frozenset({workspace}))
        )
        local = in_workspace & await self._resolver.resolve_in_uow(uow, ByRole(roles=confined))
        return local | await self._resolver.resolve_in_uow(uow, ByRole(roles=global_))
