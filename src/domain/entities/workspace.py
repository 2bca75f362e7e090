"""Workspace and role domain enums."""

from enum import StrEnum


class Workspace(StrEnum):
    """Organizational partitions scoping document visibility."""

    PRESIDENCIA = "presidencia"
    INTENDENCIA = "intendencia"
    CAM = "cam"
    AMPP = "ampp"
    COMISIONES_CF = "comisiones_cf"


class UserRole(StrEnum):
    """Closed set of user roles."""

    ADMINISTRADOR = "administrador"
    PRESIDENTE = "presidente"
    VICEPRESIDENTE = "vicepresidente"
    SECRETARIO_CAM = "secretario_cam"
    SECRETARIO_AMPP = "secretario_ampp"
    SECRETARIO_CF = "secretario_cf"
    INTENDENTE = "intendente"
    CF_MEMBER = "cf_member"


# Roles that are not confined to their own workspace.
GLOBAL_ROLES: frozenset[UserRole] = frozenset(
    {UserRole.ADMINISTRADOR, UserRole.PRESIDENTE, UserRole.VICEPRESIDENTE}
)

# Every non-administrator role has exactly one home workspace.
HOME_WORKSPACE: dict[UserRole, Workspace] = {
    UserRole.PRESIDENTE: Workspace.PRESIDENCIA,
    UserRole.VICEPRESIDENTE: Workspace.PRESIDENCIA,
    UserRole.SECRETARIO_CAM: Workspace.CAM,
    UserRole.SECRETARIO_AMPP: Workspace.AMPP,
    UserRole.SECRETARIO_CF: Workspace.COMISIONES_CF,
    UserRole.INTENDENTE: Workspace.INTENDENCIA,
    UserRole.CF_MEMBER: Workspace.COMISIONES_CF,
}


def is_global_role(role: UserRole) -> bool:
    """Check if a role may act across workspaces."""
    return role in GLOBAL_ROLES
