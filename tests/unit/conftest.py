"""Shared fixtures for unit tests."""

import asyncio
from collections.abc import Collection
from dataclasses import replace
from datetime import datetime
from typing import Any
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest

from domain.entities.audit import AuditEntry
from domain.entities.document import Document, DocumentFilters
from domain.entities.notification import (
    Notification,
    NotificationDelivery,
    NotificationFilters,
    NotificationTemplate,
)
from domain.entities.user import User
from domain.entities.workspace import HOME_WORKSPACE, UserRole, Workspace


class FakeUnitOfWork:
    """Fake Unit of Work with all 4 repository mocks for unit testing."""

    def __init__(self) -> None:
        self.users = AsyncMock()
        self.documents = AsyncMock()
        self.notifications = AsyncMock()
        self.audit = AsyncMock()
        self.committed = False
        self.rolled_back = False

    async def commit(self) -> None:
        self.committed = True

    async def rollback(self) -> None:
        self.rolled_back = True

    async def __aenter__(self) -> "FakeUnitOfWork":
        return self

    async def __aexit__(self, *args: Any) -> None:
        pass


# --- Stateful in-memory store ---
#
# Every repository method yields to the event loop before touching state,
# so concurrent callers interleave at the same points they would against a
# real database. Conditional updates check and write without yielding in
# between, which is what the database guarantees for a single UPDATE.


class InMemoryStore:
    def __init__(self) -> None:
        self.users: dict[UUID, User] = {}
        self.documents: dict[UUID, Document] = {}
        self.notifications: dict[UUID, Notification] = {}
        self.deliveries: dict[tuple[UUID, UUID], NotificationDelivery] = {}
        self.templates: dict[str, NotificationTemplate] = {}
        self.audit: list[AuditEntry] = []

    def add_user(
        self,
        role: UserRole = UserRole.CF_MEMBER,
        workspace: Workspace | None = None,
        is_active: bool = True,
        full_name: str = "Test User",
    ) -> User:
        user = User(
            email=f"{uuid4().hex[:8]}@example.com",
            full_name=full_name,
            role=role,
            workspace=workspace or HOME_WORKSPACE.get(role, Workspace.PRESIDENCIA),
            is_active=is_active,
        )
        self.users[user.id] = user
        return user

    def add_document(self, document: Document) -> Document:
        self.documents[document.id] = document
        return replace(document)

    def live_read_count(self, notification_id: UUID) -> int:
        return sum(
            1
            for (nid, _), d in self.deliveries.items()
            if nid == notification_id and d.is_read
        )


class InMemoryUserRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def get(self, user_id: UUID) -> User | None:
        await asyncio.sleep(0)
        user = self._store.users.get(user_id)
        return replace(user) if user else None

    async def get_by_email(self, email: str) -> User | None:
        await asyncio.sleep(0)
        return next((replace(u) for u in self._store.users.values() if u.email == email), None)

    async def create(self, user: User) -> User:
        await asyncio.sleep(0)
        self._store.users[user.id] = replace(user)
        return replace(user)

    async def update(self, user: User) -> User:
        await asyncio.sleep(0)
        self._store.users[user.id] = replace(user)
        return replace(user)

    async def find_active_ids(
        self,
        roles: Collection[UserRole] | None = None,
        workspaces: Collection[Workspace] | None = None,
        user_ids: Collection[UUID] | None = None,
    ) -> set[UUID]:
        await asyncio.sleep(0)
        return {
            u.id
            for u in self._store.users.values()
            if u.is_active
            and (roles is None or u.role in roles)
            and (workspaces is None or u.workspace in workspaces)
            and (user_ids is None or u.id in user_ids)
        }

    async def count_active(self) -> int:
        await asyncio.sleep(0)
        return sum(1 for u in self._store.users.values() if u.is_active)


class InMemoryDocumentRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def get(self, document_id: UUID) -> Document | None:
        await asyncio.sleep(0)
        document = self._store.documents.get(document_id)
        return replace(document) if document else None

    async def create(self, document: Document) -> Document:
        await asyncio.sleep(0)
        self._store.documents[document.id] = replace(document)
        return replace(document)

    async def update_if_revision(self, document: Document, expected_revision: int) -> bool:
        await asyncio.sleep(0)
        stored = self._store.documents.get(document.id)
        if stored is None or stored.revision != expected_revision:
            return False
        self._store.documents[document.id] = replace(document)
        return True

    async def list_in_workspaces(
        self, workspaces: Collection[Workspace], filters: DocumentFilters
    ) -> tuple[list[Document], int]:
        await asyncio.sleep(0)
        search = filters.search.lower() if filters.search else None
        matches = [
            replace(d)
            for d in self._store.documents.values()
            if d.workspace in workspaces
            and (filters.workspace is None or d.workspace == filters.workspace)
            and (filters.status is None or d.status == filters.status)
            and (filters.created_by is None or d.created_by == filters.created_by)
            and (filters.start_date is None or d.created_at >= filters.start_date)
            and (filters.end_date is None or d.created_at <= filters.end_date)
            and (
                search is None
                or search in d.title.lower()
                or search in (d.description or "").lower()
            )
        ]
        matches.sort(
            key=lambda d: getattr(d, filters.sort_by),
            reverse=filters.sort_order == "desc",
        )
        page = matches[filters.offset : filters.offset + filters.limit]
        return page, len(matches)


class InMemoryNotificationRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def create(self, notification: Notification) -> Notification:
        await asyncio.sleep(0)
        self._store.notifications[notification.id] = notification
        return notification

    async def get(self, notification_id: UUID) -> Notification | None:
        await asyncio.sleep(0)
        return self._store.notifications.get(notification_id)

    async def adjust_read_count(self, notification_id: UUID, delta: int) -> None:
        await asyncio.sleep(0)
        self._store.notifications[notification_id].read_count += delta

    async def create_deliveries_batch(self, deliveries: list[NotificationDelivery]) -> int:
        await asyncio.sleep(0)
        for d in deliveries:
            self._store.deliveries[(d.notification_id, d.user_id)] = d
        return len(deliveries)

    async def get_delivery(
        self, notification_id: UUID, user_id: UUID
    ) -> NotificationDelivery | None:
        await asyncio.sleep(0)
        return self._store.deliveries.get((notification_id, user_id))

    async def mark_read(self, notification_id: UUID, user_id: UUID, read_at: datetime) -> int:
        await asyncio.sleep(0)
        d = self._store.deliveries.get((notification_id, user_id))
        if d is None or d.is_read:
            return 0
        d.is_read, d.read_at = True, read_at
        return 1

    async def mark_unread(self, notification_id: UUID, user_id: UUID) -> int:
        await asyncio.sleep(0)
        d = self._store.deliveries.get((notification_id, user_id))
        if d is None or not d.is_read:
            return 0
        d.is_read, d.read_at = False, None
        return 1

    async def set_archived(
        self, notification_id: UUID, user_id: UUID, archived: bool, at: datetime | None
    ) -> int:
        await asyncio.sleep(0)
        d = self._store.deliveries.get((notification_id, user_id))
        if d is None or d.is_archived == archived:
            return 0
        d.is_archived, d.archived_at = archived, at
        return 1

    async def mark_action_taken(self, notification_id: UUID, user_id: UUID, at: datetime) -> int:
        await asyncio.sleep(0)
        d = self._store.deliveries.get((notification_id, user_id))
        if d is None or d.action_taken:
            return 0
        d.action_taken, d.action_taken_at = True, at
        return 1

    def _due(self, notification_id: UUID) -> bool:
        n = self._store.notifications[notification_id]
        return n.scheduled_for is None or n.scheduled_for <= datetime.utcnow()

    async def list_unread_notification_ids(
        self, user_id: UUID, filters: NotificationFilters | None = None
    ) -> list[UUID]:
        await asyncio.sleep(0)
        return [
            nid
            for (nid, uid), d in self._store.deliveries.items()
            if uid == user_id and not d.is_read and not d.is_archived and self._due(nid)
        ]

    async def count_unread(self, user_id: UUID) -> int:
        await asyncio.sleep(0)
        return sum(
            1
            for (nid, uid), d in self._store.deliveries.items()
            if uid == user_id and not d.is_read and not d.is_archived and self._due(nid)
        )

    async def get_template_by_name(self, name: str) -> NotificationTemplate | None:
        await asyncio.sleep(0)
        return self._store.templates.get(name)

    async def create_template(self, template: NotificationTemplate) -> NotificationTemplate:
        await asyncio.sleep(0)
        self._store.templates[template.name] = template
        return template

    async def list_templates(self, active_only: bool = True) -> list[NotificationTemplate]:
        await asyncio.sleep(0)
        return sorted(
            (t for t in self._store.templates.values() if t.is_active or not active_only),
            key=lambda t: t.name,
        )


class InMemoryAuditRepository:
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    async def create(self, entry: AuditEntry) -> AuditEntry:
        await asyncio.sleep(0)
        self._store.audit.append(entry)
        return entry

    async def get_for_entity(
        self, entity_type: str, entity_id: UUID, limit: int = 50
    ) -> list[AuditEntry]:
        await asyncio.sleep(0)
        entries = [
            e
            for e in self._store.audit
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return list(reversed(entries))[:limit]


class InMemoryUnitOfWork:
    """Unit of work over an InMemoryStore. Writes apply immediately."""

    def __init__(self, store: InMemoryStore) -> None:
        self.users = InMemoryUserRepository(store)
        self.documents = InMemoryDocumentRepository(store)
        self.notifications = InMemoryNotificationRepository(store)
        self.audit = InMemoryAuditRepository(store)
        self.commits = 0

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        pass

    async def __aenter__(self) -> "InMemoryUnitOfWork":
        return self

    async def __aexit__(self, *args: Any) -> None:
        pass


@pytest.fixture
def uow() -> FakeUnitOfWork:
    """Create a fresh FakeUnitOfWork."""
    return FakeUnitOfWork()


@pytest.fixture
def store() -> InMemoryStore:
    """Create an empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def memory_uow_factory(store: InMemoryStore) -> Any:
    """UoW factory over the in-memory store."""
    return lambda: InMemoryUnitOfWork(store)


@pytest.fixture
def user_id() -> UUID:
    """A random user ID."""
    return uuid4()


@pytest.fixture
def actor_id() -> UUID:
    """A random actor ID (distinct from user_id)."""
    return uuid4()
