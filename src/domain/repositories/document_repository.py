"""Document repository protocol."""

from collections.abc import Collection
from typing import Protocol
from uuid import UUID

from domain.entities.document import Document, DocumentFilters
from domain.entities.workspace import Workspace


class IDocumentRepository(Protocol):
    """Repository interface for Document entities."""

    async def get(self, document_id: UUID) -> Document | None:
        """Get a document by ID."""
        ...

    async def create(self, document: Document) -> Document:
        """Create a new document."""
        ...

    async def update_if_revision(self, document: Document, expected_revision: int) -> bool:
        """Write the document only if its stored revision equals ``expected_revision``.

        The stored revision becomes ``document.revision``. Returns False when
        no row matched (concurrent modification or deletion).
        """
        ...

    async def list_in_workspaces(
        self, workspaces: Collection[Workspace], filters: DocumentFilters
    ) -> tuple[list[Document], int]:
        """Get a filtered, sorted page of documents in ``workspaces`` and the total count."""
        ...
