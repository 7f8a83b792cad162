"""
Tests for the legacy permission adapter.
"""
import pytest

from grantcue.features.permissions.catalog import PermissionName
from grantcue.features.permissions.legacy import (
    LEGACY_PERMISSION_MAP,
    FinePermission,
    LegacyPermission,
    LegacyPermissionRef,
    expand,
    is_legacy_permission,
    map_legacy_permission,
    permission_ref,
)


class TestMapLegacyPermission:

    @pytest.mark.parametrize(
        "legacy, expected",
        [
            ("view", ["grants:view", "tasks:view", "org:view_settings"]),
            ("edit_org", ["org:edit_settings", "org:edit_profile"]),
            ("manage_team", ["team:invite", "team:remove", "team:edit_roles"]),
            ("manage_billing", ["billing:manage"]),
            ("delete_org", ["org:delete"]),
        ],
    )
    def test_fixed_table(self, legacy: str, expected: list[str]):
        assert map_legacy_permission(legacy) == expected

    def test_accepts_enum_members(self):
        assert map_legacy_permission(LegacyPermission.DELETE_ORG) == ["org:delete"]

    @pytest.mark.parametrize("name", ["admin", "manage_grants", "grants:view", ""])
    def test_unknown_names_map_to_nothing(self, name: str):
        assert map_legacy_permission(name) == []

    def test_every_target_is_in_the_catalog(self):
        for targets in LEGACY_PERMISSION_MAP.values():
            assert all(isinstance(target, PermissionName) for target in targets)

    def test_is_legacy_permission(self):
        assert is_legacy_permission("manage_team")
        assert not is_legacy_permission("team:invite")


class TestPermissionRef:
    """Classification of raw names into tagged references."""

    def test_legacy_string(self):
        assert permission_ref("view") == LegacyPermissionRef(LegacyPermission.VIEW)

    def test_fine_string(self):
        assert permission_ref("grants:view") == FinePermission("grants:view")

    def test_enum_members(self):
        assert permission_ref(PermissionName.BILLING_MANAGE) == FinePermission("billing:manage")
        assert permission_ref(LegacyPermission.EDIT_ORG) == LegacyPermissionRef(
            LegacyPermission.EDIT_ORG
        )

    def test_refs_pass_through(self):
        ref = FinePermission("crm:view")
        assert permission_ref(ref) is ref

    def test_unknown_string_is_fine_grained(self):
        assert permission_ref("nonsense") == FinePermission("nonsense")

    def test_expand(self):
        assert expand(FinePermission("grants:edit")) == ["grants:edit"]
        assert expand(LegacyPermissionRef(LegacyPermission.MANAGE_BILLING)) == ["billing:manage"]
