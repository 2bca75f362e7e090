"""SQLAlchemy implementation of User repository."""

from collections.abc import Collection
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.user import User
from domain.entities.workspace import UserRole, Workspace
from infrastructure.database.models import UserModel


class SQLAlchemyUserRepository:
    """SQLAlchemy implementation of IUserRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: UUID) -> User | None:
        """Get a user by ID."""
        stmt = select(UserModel).where(UserModel.id == user_id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_by_email(self, email: str) -> User | None:
        """Get a user by email."""
        stmt = select(UserModel).where(UserModel.email == email)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def create(self, user: User) -> User:
        """Create a new user."""
        model = self._to_model(user)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def update(self, user: User) -> User:
        """Update an existing user."""
        stmt = select(UserModel).where(UserModel.id == user.id)
        result = await self._session.execute(stmt)
        model = result.scalar_one()

        model.full_name = user.full_name
        model.role = user.role.value
        model.workspace = user.workspace.value
        model.is_active = user.is_active
        model.updated_at = user.updated_at

        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def find_active_ids(
        self,
        roles: Collection[UserRole] | None = None,
        workspaces: Collection[Workspace] | None = None,
        user_ids: Collection[UUID] | None = None,
    ) -> set[UUID]:
        """Get IDs of active users matching every given criterion."""
        if any(c is not None and not c for c in (roles, workspaces, user_ids)):
            return set()

        stmt = select(UserModel.id).where(UserModel.is_active.is_(True))
        if roles is not None:
            stmt = stmt.where(UserModel.role.in_([r.value for r in roles]))
        if workspaces is not None:
            stmt = stmt.where(UserModel.workspace.in_([w.value for w in workspaces]))
        if user_ids is not None:
            stmt = stmt.where(UserModel.id.in_(list(user_ids)))

        result = await self._session.execute(stmt)
        return set(result.scalars())

    async def count_active(self) -> int:
        """Count active users."""
        stmt = select(func.count(UserModel.id)).where(UserModel.is_active.is_(True))
        result = await self._session.execute(stmt)
        return result.scalar_one()

    def _to_entity(self, model: UserModel) -> User:
        """Convert ORM model to domain entity."""
        return User(
            id=model.id,
            email=model.email,
            full_name=model.full_name,
            role=UserRole(model.role),
            workspace=Workspace(model.workspace),
            is_active=model.is_active,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: User) -> UserModel:
        """Convert domain entity to ORM model."""
        return UserModel(
            id=entity.id,
            email=entity.email,
            full_name=entity.full_name,
            role=entity.role.value,
            workspace=entity.workspace.value,
            is_active=entity.is_active,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )
