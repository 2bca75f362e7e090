"""Main FastAPI application entry point."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.exception_handlers import setup_exception_handlers
from api.middleware.request_context import RequestContextMiddleware
from api.routes.health import API_VERSION
from api.routes.health import router as health_router
from api.v1 import router as v1_router
from api.dependencies.services import get_notification_service
from core.config import settings
from core.logging import setup_logging
from core.rate_limit import limiter, rate_limit_exceeded_handler

logger = structlog.get_logger()

# Initialize structured logging
setup_logging()

PURGE_INTERVAL_SECONDS = 86400


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager for startup/shutdown tasks."""

    async def notification_purge_loop() -> None:
        """Delete expired notifications and their deliveries once a day."""
        while True:
            await asyncio.sleep(PURGE_INTERVAL_SECONDS)
            try:
                deleted = await get_notification_service().purge_expired()
                if deleted > 0:
                    logger.info("notification_purge_completed", deleted_count=deleted)
            except Exception:
                logger.exception("notification_purge_failed")

    purge_task = asyncio.create_task(notification_purge_loop())
    yield
    purge_task.cancel()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        title=settings.app_name,
        description=(
            "## Municipal Document Management\n\n"
            "Documents move through a review and approval workflow; every step "
            "can notify the people involved.\n\n"
            "### Features\n"
            "- **Documents**: Draft, review, approve, publish and archive\n"
            "- **Notifications**: Fan-out by role, workspace or user list, "
            "with per-user read state\n"
            "- **Bulk runs**: Sequential sends with per-item results\n\n"
            "### Authentication\n"
            "All endpoints (except `/health`) require a valid JWT token "
            "in the Authorization header:\n"
            "```\nAuthorization: Bearer <your_token>\n```\n\n"
            "### Rate Limits\n"
            "- GET endpoints: 30 requests/minute\n"
            "- POST/PATCH: 10 requests/minute\n"
            "- Bulk notifications: 2 requests/minute"
        ),
        version=API_VERSION,
        debug=settings.debug,
        openapi_tags=[
            {
                "name": "health",
                "description": "Health check endpoints",
            },
            {
                "name": "users",
                "description": "Directory profile of the caller",
            },
            {
                "name": "documents",
                "description": "Document lifecycle operations",
            },
            {
                "name": "notifications",
                "description": "Notification fan-out and read state",
            },
        ],
    )

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(RequestContextMiddleware)

    # GZip compression for responses > 1KB
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Setup exception handlers
    setup_exception_handlers(app)

    # Include routers
    app.include_router(health_router)
    app.include_router(v1_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=not settings.is_production,
    )
