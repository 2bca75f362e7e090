"""Recipient specification variants.

A recipient spec is a declarative description of a notification's audience.
Each variant carries its own criteria plus an exclusion list that is applied
after resolution.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeAlias
from uuid import UUID

from core.exceptions import ErrorCode, ValidationError
from domain.entities.workspace import UserRole, Workspace


@dataclass(frozen=True, slots=True)
class AllUsers:
    """Every active user."""

    exclude_users: frozenset[UUID] = field(default_factory=frozenset)


@dataclass(frozen=True, slots=True)
class ByRole:
    """Active users holding any of the given roles."""

    roles: frozenset[UserRole] = field(default_factory=frozenset)
    exclude_users: frozenset[UUID] = field(default_factory=frozenset)


@dataclass(frozen=True, slots=True)
class ByWorkspace:
    """Active users belonging to any of the given workspaces."""

    workspaces: frozenset[Workspace] = field(default_factory=frozenset)
    exclude_users: frozenset[UUID] = field(default_factory=frozenset)


@dataclass(frozen=True, slots=True)
class SpecificUsers:
    """An explicit list of users (inactive ones are dropped on resolution)."""

    user_ids: frozenset[UUID] = field(default_factory=frozenset)
    exclude_users: frozenset[UUID] = field(default_factory=frozenset)


RecipientSpec: TypeAlias = AllUsers | ByRole | ByWorkspace | SpecificUsers


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _as_list(value: Any, field_name: str) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        raise ValidationError(
            f"Recipient field '{field_name}' must be a list",
            error_code=ErrorCode.INVALID_RECIPIENTS,
            details={"field": field_name},
        )
    return list(value)


def _to_uuid(value: Any) -> UUID:
    return value if isinstance(value, UUID) else UUID(str(value))


def _parse_members(values: list[Any], parser: Any, field_name: str) -> frozenset[Any]:
    try:
        return frozenset(parser(v) for v in values)
    except (ValueError, TypeError) as exc:
        raise ValidationError(
            f"Invalid value in recipient field '{field_name}'",
            error_code=ErrorCode.INVALID_RECIPIENTS,
            details={"field": field_name, "error": str(exc)},
        ) from exc


def recipient_spec_from_dict(data: Mapping[str, Any]) -> RecipientSpec:
    """Parse the untyped boundary form of a recipient spec.

    Accepts camelCase (``excludeUsers``, ``userIds``) and snake_case keys.
    An unknown ``type`` or enum value raises ``ValidationError``; a missing
    criteria list yields a variant that resolves to no users.
    """
    spec_type = data.get("type")
    exclude = _parse_members(
        _as_list(_first(data, "excludeUsers", "exclude_users"), "exclude_users"),
        _to_uuid,
        "exclude_users",
    )

    if spec_type == "all":
        return AllUsers(exclude_users=exclude)
    if spec_type == "role":
        roles = _as_list(_first(data, "roles"), "roles")
        return ByRole(roles=_parse_members(roles, UserRole, "roles"), exclude_users=exclude)
    if spec_type == "workspace":
        workspaces = _as_list(_first(data, "workspaces"), "workspaces")
        return ByWorkspace(
            workspaces=_parse_members(workspaces, Workspace, "workspaces"),
            exclude_users=exclude,
        )
    if spec_type == "specific":
        user_ids = _as_list(_first(data, "userIds", "user_ids", "users"), "user_ids")
        return SpecificUsers(
            user_ids=_parse_members(user_ids, _to_uuid, "user_ids"),
            exclude_users=exclude,
        )

    raise ValidationError(
        f"Unknown recipient type: {spec_type!r}",
        error_code=ErrorCode.INVALID_RECIPIENTS,
        details={"type": spec_type},
    )
