"""Unit tests for PermissionService."""

from uuid import uuid4

import pytest

from domain.entities.document import Document, DocumentStatus
from domain.entities.user import User
from domain.entities.workspace import HOME_WORKSPACE, UserRole, Workspace
from domain.services.permission_service import (
    ROLE_CAPABILITIES,
    Capability,
    PermissionService,
    roles_with,
)


def make_user(role: UserRole, workspace: Workspace | None = None, is_active: bool = True) -> User:
    return User(
        email=f"{role.value}@example.com",
        full_name=role.value,
        role=role,
        workspace=workspace or HOME_WORKSPACE.get(role, Workspace.PRESIDENCIA),
        is_active=is_active,
    )


def make_document(
    workspace: Workspace = Workspace.COMISIONES_CF,
    status: DocumentStatus = DocumentStatus.DRAFT,
    created_by=None,
) -> Document:
    return Document(
        title="Report",
        workspace=workspace,
        created_by=created_by or uuid4(),
        status=status,
    )


@pytest.fixture
def permissions() -> PermissionService:
    return PermissionService()


class TestHasCapability:
    def test_none_actor_is_denied(self, permissions: PermissionService) -> None:
        assert not permissions.has_capability(None, Capability.READ)

    def test_inactive_actor_is_denied_everything(self, permissions: PermissionService) -> None:
        admin = make_user(UserRole.ADMINISTRADOR, is_active=False)

        for capability in Capability:
            assert not permissions.has_capability(admin, capability)

    def test_admin_holds_everything_everywhere(self, permissions: PermissionService) -> None:
        admin = make_user(UserRole.ADMINISTRADOR)
        doc = make_document(workspace=Workspace.AMPP, status=DocumentStatus.PUBLISHED)

        for capability in Capability:
            assert permissions.has_capability(admin, capability, doc)

    def test_role_capabilities_grant_without_resource(
        self, permissions: PermissionService
    ) -> None:
        for role, capabilities in ROLE_CAPABILITIES.items():
            actor = make_user(role)
            for capability in Capability:
                assert permissions.has_capability(actor, capability) == (
                    capability in capabilities
                ), (role, capability)

    def test_confined_role_is_denied_outside_home_workspace(
        self, permissions: PermissionService
    ) -> None:
        secretary = make_user(UserRole.SECRETARIO_CAM)
        doc = make_document(workspace=Workspace.AMPP)

        assert not permissions.has_capability(secretary, Capability.READ, doc)

    def test_global_role_crosses_workspaces(self, permissions: PermissionService) -> None:
        president = make_user(UserRole.PRESIDENTE)
        doc = make_document(workspace=Workspace.AMPP, status=DocumentStatus.PENDING_APPROVAL)

        assert permissions.has_capability(president, Capability.APPROVE, doc)

    def test_creator_may_write_own_draft(self, permissions: PermissionService) -> None:
        member = make_user(UserRole.CF_MEMBER)
        doc = make_document(created_by=member.id)

        assert permissions.has_capability(member, Capability.WRITE, doc)
        assert permissions.has_capability(member, Capability.DELETE, doc)

    def test_creator_loses_write_once_submitted(self, permissions: PermissionService) -> None:
        member = make_user(UserRole.CF_MEMBER)
        doc = make_document(created_by=member.id, status=DocumentStatus.PENDING_REVIEW)

        assert not permissions.has_capability(member, Capability.WRITE, doc)

    def test_ownership_never_grants_approve(self, permissions: PermissionService) -> None:
        member = make_user(UserRole.CF_MEMBER)
        doc = make_document(created_by=member.id)

        assert not permissions.has_capability(member, Capability.APPROVE, doc)

    def test_non_creator_member_cannot_write(self, permissions: PermissionService) -> None:
        member = make_user(UserRole.CF_MEMBER)
        doc = make_document()

        assert not permissions.has_capability(member, Capability.WRITE, doc)


class TestCapabilitiesFor:
    def test_admin_has_all(self, permissions: PermissionService) -> None:
        assert permissions.capabilities_for(make_user(UserRole.ADMINISTRADOR)) == set(Capability)

    def test_inactive_has_none(self, permissions: PermissionService) -> None:
        assert permissions.capabilities_for(make_user(UserRole.PRESIDENTE, is_active=False)) == set()

    def test_member(self, permissions: PermissionService) -> None:
        assert permissions.capabilities_for(make_user(UserRole.CF_MEMBER)) == {
            Capability.READ,
            Capability.CREATE,
            Capability.DOWNLOAD,
        }


class TestRoleWorkspace:
    def test_home_workspace_is_valid(self) -> None:
        assert PermissionService.role_workspace_violation(UserRole.SECRETARIO_CAM, Workspace.CAM) is None

    def test_other_workspace_is_invalid(self) -> None:
        reason = PermissionService.role_workspace_violation(UserRole.SECRETARIO_CAM, Workspace.AMPP)

        assert reason is not None
        assert "cam" in reason

    def test_admin_may_live_anywhere(self) -> None:
        assert (
            PermissionService.role_workspace_violation(UserRole.ADMINISTRADOR, Workspace.AMPP)
            is None
        )


class TestHelpers:
    def test_roles_with_approve(self) -> None:
        assert roles_with(Capability.APPROVE) == {
            UserRole.PRESIDENTE,
            UserRole.VICEPRESIDENTE,
            UserRole.SECRETARIO_CAM,
            UserRole.SECRETARIO_AMPP,
            UserRole.SECRETARIO_CF,
        }

    def test_permission_matrix_lists_every_role(self, permissions: PermissionService) -> None:
        matrix = permissions.permission_matrix()

        assert set(matrix["roles"]) == {r.value for r in UserRole}
        assert matrix["roles"]["administrador"]["home_workspace"] is None
        assert matrix["roles"]["presidente"]["global"] is True
        assert "approve" not in matrix["roles"]["cf_member"]["capabilities"]
