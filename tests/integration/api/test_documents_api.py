"""Integration tests for Documents API."""

from uuid import uuid4

import pytest
from httpx import AsyncClient

from domain.entities.workspace import UserRole, Workspace

BASE = "/api/v1"


@pytest.fixture
async def cam(seed_user):
    """CAM secretary (approver), a CAM-confined author, and a president."""
    return {
        "secretary": await seed_user(UserRole.SECRETARIO_CAM),
        "president": await seed_user(UserRole.PRESIDENTE),
        "member": await seed_user(UserRole.CF_MEMBER),
    }


async def _create(api_client: AsyncClient, headers: dict[str, str], **overrides) -> dict:
    body = {"title": "Budget 2027", "workspace": "cam"}
    body.update(overrides)
    response = await api_client.post(f"{BASE}/documents", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestCreateDocument:
    @pytest.mark.asyncio
    async def test_creates_draft(self, api_client: AsyncClient, auth_headers_for, cam) -> None:
        data = await _create(api_client, auth_headers_for(cam["secretary"]))

        assert data["status"] == "draft"
        assert data["version"] == "1.0.0"
        assert data["revision"] == 1
        assert data["allowed_transitions"] == ["pending_review"]

    @pytest.mark.asyncio
    async def test_confined_role_cannot_create_in_other_workspace(
        self, api_client: AsyncClient, auth_headers_for, cam
    ) -> None:
        response = await api_client.post(
            f"{BASE}/documents",
            json={"title": "Minutes", "workspace": Workspace.AMPP.value},
            headers=auth_headers_for(cam["secretary"]),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_document_returns_404(
        self, api_client: AsyncClient, auth_headers_for, cam
    ) -> None:
        response = await api_client.get(
            f"{BASE}/documents/{uuid4()}", headers=auth_headers_for(cam["secretary"])
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "DOCUMENT_NOT_FOUND"


class TestTransitions:
    @pytest.mark.asyncio
    async def test_submit_notifies_reviewers(
        self, api_client: AsyncClient, auth_headers_for, cam
    ) -> None:
        doc = await _create(api_client, auth_headers_for(cam["secretary"]))

        response = await api_client.post(
            f"{BASE}/documents/{doc['id']}/transitions",
            json={"target": "pending_review", "expected_revision": 1},
            headers=auth_headers_for(cam["secretary"]),
        )
        feed = await api_client.get(
            f"{BASE}/users/me/notifications", headers=auth_headers_for(cam["president"])
        )

        assert response.status_code == 200
        assert response.json()["status"] == "pending_review"
        assert response.json()["revision"] == 2
        items = feed.json()["data"]
        assert len(items) == 1
        assert items[0]["type"] == "document_review_requested"
        assert items[0]["related_document_id"] == doc["id"]

    @pytest.mark.asyncio
    async def test_stale_revision_conflicts(
        self, api_client: AsyncClient, auth_headers_for, cam
    ) -> None:
        headers = auth_headers_for(cam["secretary"])
        doc = await _create(api_client, headers)
        await api_client.post(
            f"{BASE}/documents/{doc['id']}/transitions",
            json={"target": "pending_review"},
            headers=headers,
        )

        response = await api_client.post(
            f"{BASE}/documents/{doc['id']}/transitions",
            json={"target": "under_review", "expected_revision": 1},
            headers=headers,
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "VERSION_CONFLICT"

    @pytest.mark.asyncio
    async def test_skipping_a_step_is_an_invalid_transition(
        self, api_client: AsyncClient, auth_headers_for, cam
    ) -> None:
        headers = auth_headers_for(cam["secretary"])
        doc = await _create(api_client, headers)

        response = await api_client.post(
            f"{BASE}/documents/{doc['id']}/transitions",
            json={"target": "published"},
            headers=headers,
        )

        assert response.status_code == 409
        body = response.json()
        assert body["error_code"] == "INVALID_TRANSITION"
        assert body["details"]["allowed"] == ["pending_review"]


class TestContentEdits:
    @pytest.mark.asyncio
    async def test_edit_bumps_version(
        self, api_client: AsyncClient, auth_headers_for, cam
    ) -> None:
        headers = auth_headers_for(cam["secretary"])
        doc = await _create(api_client, headers)

        response = await api_client.patch(
            f"{BASE}/documents/{doc['id']}/content",
            json={"title": "Budget 2027 (rev)", "bump": "minor", "expected_revision": 1},
            headers=headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Budget 2027 (rev)"
        assert data["version"] == "1.1.0"
        assert data["revision"] == 2

    @pytest.mark.asyncio
    async def test_edit_outside_editable_status_is_rejected(
        self, api_client: AsyncClient, auth_headers_for, cam
    ) -> None:
        headers = auth_headers_for(cam["secretary"])
        doc = await _create(api_client, headers)
        await api_client.post(
            f"{BASE}/documents/{doc['id']}/transitions",
            json={"target": "pending_review"},
            headers=headers,
        )

        response = await api_client.patch(
            f"{BASE}/documents/{doc['id']}/content",
            json={"description": "late change"},
            headers=headers,
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "DOCUMENT_NOT_EDITABLE"


class TestListDocuments:
    @pytest.fixture
    async def documents(self, api_client: AsyncClient, auth_headers_for, cam) -> None:
        await _create(api_client, auth_headers_for(cam["secretary"]), title="Budget 2027")
        await _create(api_client, auth_headers_for(cam["secretary"]), title="Session minutes")
        await _create(
            api_client,
            auth_headers_for(cam["member"]),
            title="Commission report",
            workspace="comisiones_cf",
        )

    @pytest.mark.asyncio
    async def test_scoped_to_readable_workspaces(
        self, api_client: AsyncClient, auth_headers_for, cam, documents
    ) -> None:
        secretary = await api_client.get(
            f"{BASE}/documents", headers=auth_headers_for(cam["secretary"])
        )
        member = await api_client.get(f"{BASE}/documents", headers=auth_headers_for(cam["member"]))
        president = await api_client.get(
            f"{BASE}/documents", headers=auth_headers_for(cam["president"])
        )

        assert secretary.status_code == 200
        assert {d["title"] for d in secretary.json()["data"]} == {"Budget 2027", "Session minutes"}
        assert [d["title"] for d in member.json()["data"]] == ["Commission report"]
        assert president.json()["meta"]["total"] == 3

    @pytest.mark.asyncio
    async def test_filters_and_paging(
        self, api_client: AsyncClient, auth_headers_for, cam, documents
    ) -> None:
        response = await api_client.get(
            f"{BASE}/documents",
            params={"status": "draft", "search": "minutes", "limit": 1},
            headers=auth_headers_for(cam["president"]),
        )

        body = response.json()
        assert [d["title"] for d in body["data"]] == ["Session minutes"]
        assert body["data"][0]["allowed_transitions"] == ["pending_review"]
        assert body["meta"]["has_more"] is False

    @pytest.mark.asyncio
    async def test_foreign_workspace_is_forbidden(
        self, api_client: AsyncClient, auth_headers_for, cam
    ) -> None:
        response = await api_client.get(
            f"{BASE}/documents",
            params={"workspace": "ampp"},
            headers=auth_headers_for(cam["secretary"]),
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "FORBIDDEN"
