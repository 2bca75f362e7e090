"""Role, workspace and ownership based authorization."""

from enum import StrEnum
from typing import Any

from domain.entities.document import Document
from domain.entities.user import User
from domain.entities.workspace import (
    HOME_WORKSPACE,
    UserRole,
    Workspace,
    is_global_role,
)


class Capability(StrEnum):
    """Actions an actor may be allowed to perform."""

    READ = "read"
    CREATE = "create"
    WRITE = "write"
    APPROVE = "approve"
    ARCHIVE = "archive"
    DELETE = "delete"
    DOWNLOAD = "download"
    MANAGE_USERS = "manage_users"
    VIEW_AUDIT = "view_audit"
    SYSTEM_SETTINGS = "system_settings"
    NOTIFY = "notify"


# Administrators are not listed: they hold every capability.
ROLE_CAPABILITIES: dict[UserRole, frozenset[Capability]] = {
    UserRole.PRESIDENTE: frozenset(
        {
            Capability.READ,
            Capability.CREATE,
            Capability.WRITE,
            Capability.APPROVE,
            Capability.ARCHIVE,
            Capability.DOWNLOAD,
            Capability.VIEW_AUDIT,
            Capability.NOTIFY,
        }
    ),
    UserRole.VICEPRESIDENTE: frozenset(
        {
            Capability.READ,
            Capability.CREATE,
            Capability.WRITE,
            Capability.APPROVE,
            Capability.ARCHIVE,
            Capability.DOWNLOAD,
            Capability.VIEW_AUDIT,
            Capability.NOTIFY,
        }
    ),
    UserRole.SECRETARIO_CAM: frozenset(
        {
            Capability.READ,
            Capability.CREATE,
            Capability.WRITE,
            Capability.APPROVE,
            Capability.ARCHIVE,
            Capability.DOWNLOAD,
        }
    ),
    UserRole.SECRETARIO_AMPP: frozenset(
        {
            Capability.READ,
            Capability.CREATE,
            Capability.WRITE,
            Capability.APPROVE,
            Capability.ARCHIVE,
            Capability.DOWNLOAD,
        }
    ),
    UserRole.SECRETARIO_CF: frozenset(
        {
            Capability.READ,
            Capability.CREATE,
            Capability.WRITE,
            Capability.APPROVE,
            Capability.ARCHIVE,
            Capability.DOWNLOAD,
        }
    ),
    UserRole.INTENDENTE: frozenset(
        {Capability.READ, Capability.CREATE, Capability.WRITE, Capability.DOWNLOAD}
    ),
    UserRole.CF_MEMBER: frozenset({Capability.READ, Capability.CREATE, Capability.DOWNLOAD}),
}

# Actions a document's creator may take on it while it is editable.
OWNER_ACTIONS: frozenset[Capability] = frozenset(
    {
        Capability.READ,
        Capability.WRITE,
        Capability.ARCHIVE,
        Capability.DELETE,
        Capability.DOWNLOAD,
    }
)


def roles_with(capability: Capability) -> frozenset[UserRole]:
    """Roles whose static capability set contains ``capability``."""
    return frozenset(role for role, caps in ROLE_CAPABILITIES.items() if capability in caps)


class PermissionService:
    """Evaluates whether an actor may perform an action on a resource.

    Rules, in order:

    1. Inactive actors can do nothing.
    2. Administrators can do everything, everywhere.
    3. Non-global roles are confined to their own workspace.
    4. The role's static capability set grants the action.
    5. Otherwise the document's creator may still act on it while it is in an
       editable status, except for approval, which ownership never grants.

    ``has_capability`` never raises; callers turn ``False`` into an
    ``AuthorizationError``.
    """

    def capabilities_for(self, actor: User) -> frozenset[Capability]:
        """Role-level capabilities of an actor (no ownership, no workspace rule)."""
        if not actor.is_active:
            return frozenset()
        if actor.role is UserRole.ADMINISTRADOR:
            return frozenset(Capability)
        return ROLE_CAPABILITIES.get(actor.role, frozenset())

    def can_access_workspace(self, actor: User, workspace: Workspace) -> bool:
        """Check the workspace confinement rule."""
        if not actor.is_active:
            return False
        return is_global_role(actor.role) or actor.workspace == workspace

    def has_capability(
        self,
        actor: User | None,
        action: Capability,
        resource: Document | None = None,
    ) -> bool:
        """Check whether ``actor`` may perform ``action`` (on ``resource`` if given)."""
        if actor is None or not actor.is_active:
            return False

        if actor.role is UserRole.ADMINISTRADOR:
            return True

        if resource is not None and not self.can_access_workspace(actor, resource.workspace):
            return False

        if action in self.capabilities_for(actor):
            return True

        if action is Capability.APPROVE or action not in OWNER_ACTIONS:
            return False

        return (
            resource is not None
            and resource.created_by == actor.id
            and resource.is_editable
        )

    @staticmethod
    def role_workspace_violation(role: UserRole, workspace: Workspace) -> str | None:
        """Return why a role may not live in a workspace, or None if it may."""
        home = HOME_WORKSPACE.get(role)
        if home is None or home == workspace:
            return None
        return f"Role '{role.value}' must be assigned to the '{home.value}' workspace"

    def permission_matrix(self) -> dict[str, Any]:
        """Static capability table for every role, as plain data."""
        roles: dict[str, Any] = {}
        for role in UserRole:
            if role is UserRole.ADMINISTRADOR:
                caps = sorted(c.value for c in Capability)
            else:
                caps = sorted(c.value for c in ROLE_CAPABILITIES.get(role, frozenset()))
            roles[role.value] = {
                "global": is_global_role(role),
                "home_workspace": HOME_WORKSPACE[role].value if role in HOME_WORKSPACE else None,
                "capabilities": caps,
            }
        return {
            "workspaces": [w.value for w in Workspace],
            "roles": roles,
        }
