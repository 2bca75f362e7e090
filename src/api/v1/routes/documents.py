"""Document workflow API routes."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from api.dependencies.auth import CurrentActor
from api.dependencies.services import get_document_workflow_service
from api.v1.schemas.document import (
    ContentEditRequest,
    DocumentCreateRequest,
    DocumentListResponse,
    DocumentResponse,
    TransitionRequest,
)
from core.rate_limit import READ_LIMIT, WRITE_LIMIT, limiter
from domain.entities.document import Document, DocumentFilters, DocumentStatus
from domain.entities.user import User
from domain.entities.workspace import Workspace
from domain.services.document_workflow import DocumentWorkflowService

router = APIRouter(prefix="/documents", tags=["documents"])


def _to_response(
    document: Document, actor: User, service: DocumentWorkflowService
) -> DocumentResponse:
    response = DocumentResponse.model_validate(document)
    response.allowed_transitions = [
        target.value for target in service.allowed_targets(document, actor)
    ]
    return response


@router.post(
    "",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a draft document",
    responses={
        201: {"description": "Document created in draft"},
        403: {"description": "Actor cannot create documents in this workspace"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def create_document(
    request: Request,
    body: DocumentCreateRequest,
    actor: CurrentActor,
    service: DocumentWorkflowService = Depends(get_document_workflow_service),
) -> DocumentResponse:
    """Create a document at version 1.0.0 in draft status."""
    document = await service.create_document(
        actor.id,
        title=body.title,
        workspace=body.workspace,
        description=body.description,
        assigned_to=body.assigned_to,
    )
    return _to_response(document, actor, service)


@router.get(
    "",
    response_model=DocumentListResponse,
    summary="List documents",
    responses={403: {"description": "Actor cannot access the requested workspace"}},
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def list_documents(
    request: Request,
    actor: CurrentActor,
    workspace: Workspace | None = Query(None, description="Filter by workspace"),
    document_status: DocumentStatus | None = Query(None, alias="status"),
    created_by: UUID | None = Query(None, description="Filter by creator"),
    search: str | None = Query(None, max_length=100, description="Search title and description"),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    limit: int = Query(20, ge=1, le=100, description="Page size"),
    offset: int = Query(0, ge=0),
    sort_by: str = Query("created_at", pattern="^(created_at|updated_at|title)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    service: DocumentWorkflowService = Depends(get_document_workflow_service),
) -> DocumentListResponse:
    """Documents in the workspaces the caller may read."""
    filters = DocumentFilters(
        workspace=workspace,
        status=document_status,
        created_by=created_by,
        search=search,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    page = await service.list_documents(actor.id, filters)
    return DocumentListResponse(
        data=[_to_response(document, actor, service) for document in page.items],
        meta={
            "total": page.total,
            "has_more": page.has_more,
            "limit": limit,
            "offset": offset,
        },
    )


@router.get(
    "/{document_id}",
    response_model=DocumentResponse,
    summary="Get a document",
    responses={404: {"description": "Document not found"}},
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def get_document(
    request: Request,
    document_id: UUID,
    actor: CurrentActor,
    service: DocumentWorkflowService = Depends(get_document_workflow_service),
) -> DocumentResponse:
    """Get a document with the transitions available to the caller."""
    document = await service.get_document(document_id, actor.id)
    return _to_response(document, actor, service)


@router.post(
    "/{document_id}/transitions",
    response_model=DocumentResponse,
    summary="Change document status",
    responses={
        403: {"description": "Actor lacks the capability for this edge"},
        409: {"description": "Stale revision or target not reachable from the current status"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def transition_document(
    request: Request,
    document_id: UUID,
    body: TransitionRequest,
    actor: CurrentActor,
    service: DocumentWorkflowService = Depends(get_document_workflow_service),
) -> DocumentResponse:
    """Move the document one step through its lifecycle."""
    document = await service.transition(
        document_id,
        body.target,
        actor.id,
        expected_revision=body.expected_revision,
        reason=body.reason,
    )
    return _to_response(document, actor, service)


@router.patch(
    "/{document_id}/content",
    response_model=DocumentResponse,
    summary="Edit document content",
    responses={
        400: {"description": "Document is not editable in its current status"},
        409: {"description": "Document changed since it was read"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def edit_document_content(
    request: Request,
    document_id: UUID,
    body: ContentEditRequest,
    actor: CurrentActor,
    service: DocumentWorkflowService = Depends(get_document_workflow_service),
) -> DocumentResponse:
    """Edit title or description and bump the version."""
    document = await service.edit_content(
        document_id,
        actor.id,
        title=body.title,
        description=body.description,
        bump=body.bump,
        expected_revision=body.expected_revision,
    )
    return _to_response(document, actor, service)
