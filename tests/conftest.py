"""Pytest configuration and fixtures."""

import os
import sys
from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

# Disable rate limiting in tests
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.pool import StaticPool

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from domain.entities.user import User
from domain.entities.workspace import UserRole, Workspace
from domain.services.audit_service import AuditService
from domain.services.delivery import IDeliveryChannel
from domain.services.document_workflow import DocumentWorkflowService
from domain.services.notification_service import NotificationService
from domain.services.permission_service import PermissionService
from domain.services.read_state_service import ReadStateService
from domain.services.recipient_resolver import RecipientResolver
from domain.services.user_service import UserService
from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.auth.provider import TokenUser
from infrastructure.database.models import Base
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork
from infrastructure.delivery.browser import BrowserChannel


# Compile JSONB as JSON for SQLite (used in tests)
@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_: Any, compiler: Any, **kw: Any) -> str:
    return "JSON"


# Test database URL (SQLite in memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_JWT_SECRET = "test-secret-key"


@dataclass
class Services:
    """Every service wired against one unit-of-work factory."""

    permissions: PermissionService
    audit: AuditService
    resolver: RecipientResolver
    users: UserService
    notifications: NotificationService
    read_state: ReadStateService
    workflow: DocumentWorkflowService


def build_services(
    uow_factory: Callable[[], Any],
    channels: Sequence[IDeliveryChannel] = (),
) -> Services:
    """Wire services the same way api.dependencies.services does."""
    permissions = PermissionService()
    audit = AuditService(uow_factory)
    resolver = RecipientResolver(uow_factory)
    notifications = NotificationService(
        uow_factory,
        resolver=resolver,
        permissions=permissions,
        channels=channels,
        audit_service=audit,
    )
    return Services(
        permissions=permissions,
        audit=audit,
        resolver=resolver,
        users=UserService(uow_factory, permissions=permissions, audit_service=audit),
        notifications=notifications,
        read_state=ReadStateService(uow_factory),
        workflow=DocumentWorkflowService(
            uow_factory,
            permissions=permissions,
            resolver=resolver,
            notification_service=notifications,
            audit_service=audit,
        ),
    )


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create session factory."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for repository tests."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def uow_factory(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[], SQLAlchemyUnitOfWork]:
    """UoW factory bound to the test database."""

    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(session_factory)

    return factory


@pytest.fixture
def services(uow_factory: Callable[[], SQLAlchemyUnitOfWork]) -> Services:
    """Services backed by the test database, with in-app delivery only."""
    return build_services(uow_factory, channels=[BrowserChannel()])


@pytest.fixture
def seed_user(services: Services) -> Callable[..., Awaitable[User]]:
    """Create directory users without an acting administrator."""
    counter = {"n": 0}

    async def _seed(
        role: UserRole = UserRole.CF_MEMBER,
        workspace: Workspace | None = None,
        is_active: bool = True,
        full_name: str | None = None,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        if workspace is None:
            workspace = {
                UserRole.ADMINISTRADOR: Workspace.PRESIDENCIA,
                UserRole.PRESIDENTE: Workspace.PRESIDENCIA,
                UserRole.VICEPRESIDENTE: Workspace.PRESIDENCIA,
                UserRole.SECRETARIO_CAM: Workspace.CAM,
                UserRole.SECRETARIO_AMPP: Workspace.AMPP,
                UserRole.SECRETARIO_CF: Workspace.COMISIONES_CF,
                UserRole.INTENDENTE: Workspace.INTENDENCIA,
                UserRole.CF_MEMBER: Workspace.COMISIONES_CF,
            }[role]
        user = await services.users.create_user(
            None,
            email=f"{role.value}{n}@example.com",
            full_name=full_name or f"{role.value.title()} {n}",
            role=role,
            workspace=workspace,
        )
        if not is_active:
            user = await services.users.update_user(None, user.id, is_active=False)
        return user

    return _seed


@pytest.fixture
def auth_provider() -> JWTAuthProvider:
    """Create auth provider for testing."""
    return JWTAuthProvider(
        secret_key=TEST_JWT_SECRET,
        algorithm="HS256",
        expire_minutes=30,
    )


@pytest.fixture
def auth_headers_for(auth_provider: JWTAuthProvider) -> Callable[[User], dict[str, str]]:
    """Build bearer headers for a directory user."""

    def _headers(user: User) -> dict[str, str]:
        token = auth_provider.create_token(
            TokenUser(id=user.id, email=user.email, full_name=user.full_name)
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client (no auth, no database overrides)."""
    from main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
async def api_client(
    services: Services,
    session_factory: async_sessionmaker[AsyncSession],
    auth_provider: JWTAuthProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test client whose services use the in-memory database.

    Authentication is real: requests need a bearer token for a seeded user
    (see ``auth_headers_for``).
    """
    from api.dependencies.auth import get_auth_provider
    from api.dependencies.services import (
        get_document_workflow_service,
        get_notification_service,
        get_permission_service,
        get_read_state_service,
        get_user_service,
    )
    from infrastructure.database.session import get_async_session
    from main import create_app

    app = create_app()

    async def override_get_async_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_auth_provider] = lambda: auth_provider
    app.dependency_overrides[get_permission_service] = lambda: services.permissions
    app.dependency_overrides[get_user_service] = lambda: services.users
    app.dependency_overrides[get_notification_service] = lambda: services.notifications
    app.dependency_overrides[get_read_state_service] = lambda: services.read_state
    app.dependency_overrides[get_document_workflow_service] = lambda: services.workflow
    app.dependency_overrides[get_async_session] = override_get_async_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
