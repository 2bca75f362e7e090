"""User profile API routes."""

from fastapi import APIRouter, Depends, Request

from api.dependencies.auth import CurrentActor
from api.dependencies.services import get_permission_service
from api.v1.schemas.user import UserProfileResponse
from core.rate_limit import READ_LIMIT, limiter
from domain.services.permission_service import PermissionService

router = APIRouter(prefix="/users", tags=["users"])


@router.get(
    "/me",
    response_model=UserProfileResponse,
    summary="Get my profile",
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def get_me(
    request: Request,
    actor: CurrentActor,
    permissions: PermissionService = Depends(get_permission_service),
) -> UserProfileResponse:
    """Directory profile of the caller and the capabilities it grants."""
    return UserProfileResponse(
        id=actor.id,
        email=actor.email,
        full_name=actor.full_name,
        role=actor.role.value,
        workspace=actor.workspace.value,
        is_active=actor.is_active,
        capabilities=sorted(c.value for c in permissions.capabilities_for(actor)),
        created_at=actor.created_at,
    )
