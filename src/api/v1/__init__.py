"""API v1 router configuration."""

from fastapi import APIRouter

from api.v1.routes.documents import router as documents_router
from api.v1.routes.notifications import notifications_router, user_notifications_router
from api.v1.routes.users import router as users_router

router = APIRouter()
router.include_router(users_router)
router.include_router(user_notifications_router)
router.include_router(notifications_router)
router.include_router(documents_router)
