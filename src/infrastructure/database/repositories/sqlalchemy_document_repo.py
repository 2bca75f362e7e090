"""SQLAlchemy implementation of Document repository."""

from collections.abc import Collection
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.document import Document, DocumentFilters, DocumentStatus
from domain.entities.workspace import Workspace
from infrastructure.database.models import DocumentModel

_SORT_COLUMNS: dict[str, Any] = {
    "created_at": DocumentModel.created_at,
    "updated_at": DocumentModel.updated_at,
    "title": DocumentModel.title,
}


class SQLAlchemyDocumentRepository:
    """SQLAlchemy implementation of IDocumentRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, document_id: UUID) -> Document | None:
        """Get a document by ID."""
        stmt = select(DocumentModel).where(DocumentModel.id == document_id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def create(self, document: Document) -> Document:
        """Create a new document."""
        model = self._to_model(document)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def update_if_revision(self, document: Document, expected_revision: int) -> bool:
        """Conditional write keyed on the stored revision."""
        stmt = (
            update(DocumentModel)
            .where(
                DocumentModel.id == document.id,
                DocumentModel.revision == expected_revision,
            )
            .values(
                title=document.title,
                description=document.description,
                status=document.status.value,
                assigned_to=document.assigned_to,
                version=document.version,
                revision=document.revision,
                updated_at=document.updated_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def list_in_workspaces(
        self, workspaces: Collection[Workspace], filters: DocumentFilters
    ) -> tuple[list[Document], int]:
        """Get a filtered, sorted page of documents and the total count."""
        conditions: list[Any] = [DocumentModel.workspace.in_([w.value for w in workspaces])]
        if filters.workspace is not None:
            conditions.append(DocumentModel.workspace == filters.workspace.value)
        if filters.status is not None:
            conditions.append(DocumentModel.status == filters.status.value)
        if filters.created_by is not None:
            conditions.append(DocumentModel.created_by == filters.created_by)
        if filters.start_date is not None:
            conditions.append(DocumentModel.created_at >= filters.start_date)
        if filters.end_date is not None:
            conditions.append(DocumentModel.created_at <= filters.end_date)
        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(
                    DocumentModel.title.ilike(pattern),
                    DocumentModel.description.ilike(pattern),
                )
            )

        count_stmt = select(func.count(DocumentModel.id)).where(*conditions)
        total = (await self._session.execute(count_stmt)).scalar_one()

        sort_column = _SORT_COLUMNS.get(filters.sort_by, DocumentModel.created_at)
        if filters.sort_order == "asc":
            order = [sort_column.asc(), DocumentModel.id.asc()]
        else:
            order = [sort_column.desc(), DocumentModel.id.desc()]

        stmt = (
            select(DocumentModel)
            .where(*conditions)
            .order_by(*order)
            .offset(filters.offset)
            .limit(filters.limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()], total

    def _to_entity(self, model: DocumentModel) -> Document:
        """Convert ORM model to domain entity."""
        return Document(
            id=model.id,
            title=model.title,
            description=model.description,
            workspace=Workspace(model.workspace),
            status=DocumentStatus(model.status),
            created_by=model.created_by,
            assigned_to=model.assigned_to,
            version=model.version,
            revision=model.revision,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: Document) -> DocumentModel:
        """Convert domain entity to ORM model."""
        return DocumentModel(
            id=entity.id,
            title=entity.title,
            description=entity.description,
            workspace=entity.workspace.value,
            status=entity.status.value,
            created_by=entity.created_by,
            assigned_to=entity.assigned_to,
            version=entity.version,
            revision=entity.revision,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )
