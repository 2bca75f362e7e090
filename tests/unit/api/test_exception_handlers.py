"""Unit tests for exception handlers."""

import json
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException

from api.exception_handlers import setup_exception_handlers
from core.exceptions import (
    DirectoryUnavailableError,
    DocumentNotFoundError,
    InvalidTransitionError,
)


def _create_test_app() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


async def _get(app: FastAPI, path: str):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        return await c.get(path)


class TestExceptionHandlers:
    @pytest.mark.asyncio
    async def test_app_exception_returns_error_code_and_message(self) -> None:
        app = _create_test_app()

        @app.get("/raise-app")
        async def _() -> None:
            raise DocumentNotFoundError("some-id")

        response = await _get(app, "/raise-app")

        assert response.status_code == 404
        body = response.json()
        assert body["error_code"] == "DOCUMENT_NOT_FOUND"
        assert "some-id" in body["message"]
        assert body["details"]["document_id"] == "some-id"

    @pytest.mark.asyncio
    async def test_invalid_transition_is_conflict(self) -> None:
        app = _create_test_app()

        @app.get("/raise-transition")
        async def _() -> None:
            raise InvalidTransitionError("draft", "published", ["pending_review"])

        response = await _get(app, "/raise-transition")

        assert response.status_code == 409
        assert response.json()["details"] == {
            "current": "draft",
            "target": "published",
            "allowed": ["pending_review"],
        }

    @pytest.mark.asyncio
    async def test_directory_failure_is_service_unavailable(self) -> None:
        app = _create_test_app()

        @app.get("/raise-directory")
        async def _() -> None:
            raise DirectoryUnavailableError()

        response = await _get(app, "/raise-directory")

        assert response.status_code == 503
        assert response.json()["error_code"] == "DIRECTORY_UNAVAILABLE"

    @pytest.mark.asyncio
    async def test_http_exception_returns_standard_format(self) -> None:
        app = _create_test_app()

        @app.get("/raise-http")
        async def _() -> None:
            raise HTTPException(status_code=403, detail="Forbidden")

        response = await _get(app, "/raise-http")

        assert response.status_code == 403
        body = response.json()
        assert body["error_code"] == "HTTP_ERROR"
        assert body["message"] == "Forbidden"

    @pytest.mark.asyncio
    async def test_validation_error_returns_field_details(self) -> None:
        app = _create_test_app()

        class Body(BaseModel):
            title: str = Field(..., min_length=1)

        @app.post("/validate")
        async def _(body: Body) -> dict[str, bool]:
            return {"ok": True}

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as c:
            response = await c.post("/validate", json={"title": ""})

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["details"][0]["field"] == "body.title"

    @pytest.mark.asyncio
    async def test_unhandled_exception_returns_500(self) -> None:
        app = _create_test_app()

        mock_request = MagicMock()
        mock_request.state.request_id = "test-req-id"

        handler = app.exception_handlers.get(Exception)
        assert handler is not None, "Global exception handler not registered"

        response = await handler(mock_request, RuntimeError("Something went wrong"))  # type: ignore[misc]

        assert response.status_code == 500
        body = json.loads(response.body)
        assert body["error_code"] == "INTERNAL_ERROR"
        assert body["details"]["request_id"] == "test-req-id"
