"""Recipient resolution: recipient spec -> set of active user IDs."""

from collections.abc import Callable
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError

from core.exceptions import DirectoryUnavailableError
from domain.entities.recipients import (
    AllUsers,
    ByRole,
    ByWorkspace,
    RecipientSpec,
    SpecificUsers,
)
from domain.repositories.unit_of_work import IUnitOfWork

logger = structlog.get_logger()


class RecipientResolver:
    """Turns a declarative recipient spec into concrete user IDs.

    Only active users are ever returned. Exclusions are applied after the
    criteria, and an empty criteria collection resolves to no users.
    """

    def __init__(self, uow_factory: Callable[[], IUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    async def resolve(self, spec: RecipientSpec) -> set[UUID]:
        """Resolve a spec in its own read-only transaction."""
        async with self._uow_factory() as uow:
            return await self.resolve_in_uow(uow, spec)

    async def resolve_in_uow(self, uow: IUnitOfWork, spec: RecipientSpec) -> set[UUID]:
        """Resolve a spec within an existing UoW transaction.

        Raises:
            DirectoryUnavailableError: If the user directory query fails.
        """
        try:
            user_ids = await self._query(uow, spec)
        except SQLAlchemyError as exc:
            logger.error("recipient_resolution_failed", spec_type=type(spec).__name__)
            raise DirectoryUnavailableError() from exc

        user_ids -= spec.exclude_users

        logger.debug(
            "recipients_resolved",
            spec_type=type(spec).__name__,
            count=len(user_ids),
        )
        return user_ids

    async def _query(self, uow: IUnitOfWork, spec: RecipientSpec) -> set[UUID]:
        if isinstance(spec, AllUsers):
            return await uow.users.find_active_ids()

        if isinstance(spec, ByRole):
            if not spec.roles:
                return set()
            return await uow.users.find_active_ids(roles=spec.roles)

        if isinstance(spec, ByWorkspace):
            if not spec.workspaces:
                return set()
            return await uow.users.find_active_ids(workspaces=spec.workspaces)

        if isinstance(spec, SpecificUsers):
            if not spec.user_ids:
                return set()
            return await uow.users.find_active_ids(user_ids=spec.user_ids)

        raise TypeError(f"Unsupported recipient spec: {spec!r}")
