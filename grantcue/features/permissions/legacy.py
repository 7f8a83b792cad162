"""
Legacy permission adapter.

Call sites written against the coarse, pre-RBAC permission model pass one of
five legacy names. Each expands to one or more fine-grained permissions; a
legacy permission is satisfied when the user holds ANY of them.

Raw names are classified into a tagged ``PermissionRef`` once, at the edge,
so evaluation never has to guess which vocabulary a string belongs to.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Union

from grantcue.features.permissions.catalog import PermissionName


class LegacyPermission(str, Enum):
    VIEW = "view"
    EDIT_ORG = "edit_org"
    MANAGE_TEAM = "manage_team"
    MANAGE_BILLING = "manage_billing"
    DELETE_ORG = "delete_org"


LEGACY_PERMISSION_MAP: dict[LegacyPermission, tuple[PermissionName, ...]] = {
    LegacyPermission.VIEW: (
        PermissionName.GRANTS_VIEW,
        PermissionName.TASKS_VIEW,
        PermissionName.ORG_VIEW_SETTINGS,
    ),
    LegacyPermission.EDIT_ORG: (
        PermissionName.ORG_EDIT_SETTINGS,
        PermissionName.ORG_EDIT_PROFILE,
    ),
    LegacyPermission.MANAGE_TEAM: (
        PermissionName.TEAM_INVITE,
        PermissionName.TEAM_REMOVE,
        PermissionName.TEAM_EDIT_ROLES,
    ),
    LegacyPermission.MANAGE_BILLING: (PermissionName.BILLING_MANAGE,),
    LegacyPermission.DELETE_ORG: (PermissionName.ORG_DELETE,),
}

_LEGACY_VALUES = {legacy.value: legacy for legacy in LegacyPermission}


def map_legacy_permission(name: Union[str, LegacyPermission]) -> list[str]:
    """
    Map a legacy permission onto fine-grained permission names.

    Unrecognized names map to an empty list, which no permission set can
    satisfy.
    """
    key = name.value if isinstance(name, LegacyPermission) else name
    legacy = _LEGACY_VALUES.get(key)
    if legacy is None:
        return []
    return [permission.value for permission in LEGACY_PERMISSION_MAP[legacy]]


def is_legacy_permission(name: str) -> bool:
    return name in _LEGACY_VALUES


@dataclass(frozen=True)
class FinePermission:
    """A fine-grained ``resource:action`` permission, checked by exact name."""
    name: str


@dataclass(frozen=True)
class LegacyPermissionRef:
    """A coarse legacy permission, checked through its expansion."""
    legacy: LegacyPermission


PermissionRef = Union[FinePermission, LegacyPermissionRef]
PermissionLike = Union[PermissionRef, PermissionName, LegacyPermission, str]


def permission_ref(value: PermissionLike) -> PermissionRef:
    """Classify a raw permission name (or enum member) into a PermissionRef."""
    if isinstance(value, (FinePermission, LegacyPermissionRef)):
        return value
    if isinstance(value, LegacyPermission):
        return LegacyPermissionRef(value)
    if isinstance(value, PermissionName):
        return FinePermission(value.value)
    legacy = _LEGACY_VALUES.get(value)
    if legacy is not None:
        return LegacyPermissionRef(legacy)
    return FinePermission(value)


def expand(ref: PermissionRef) -> list[str]:
    """Fine-grained names that satisfy ``ref`` (any one of them suffices)."""
    if isinstance(ref, LegacyPermissionRef):
        return map_legacy_permission(ref.legacy)
    return [ref.name]

