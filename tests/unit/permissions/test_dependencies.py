"""
Tests for the require_permission / require_any_permission dependency factories.
"""
import pytest

from grantcue.features.permissions.catalog import PermissionName
from grantcue.features.permissions.context import PermissionContext, SessionIdentity
from grantcue.features.permissions.dependencies import (
    require_any_permission,
    require_permission,
)
from grantcue.features.permissions.exceptions import PermissionDeniedError
from grantcue.features.permissions.resolver import (
    PermissionInfo,
    ResolvedPermissions,
)


class FixedResolver:
    def __init__(self, *names: str):
        self.resolved = ResolvedPermissions(
            permissions=tuple(PermissionInfo(id=n, name=n, category=n.split(":")[0]) for n in names)
        )

    async def resolve(self, user_id, org_id):
        return self.resolved


async def context_with(*names: str, identity=SessionIdentity("u1", "o1")) -> PermissionContext:
    return await PermissionContext.for_identity(FixedResolver(*names), identity)


class TestRequirePermission:

    async def test_all_present(self):
        context = await context_with("grants:view", "grants:edit")
        dependency = require_permission(PermissionName.GRANTS_VIEW, "grants:edit")

        assert await dependency(context) is context

    async def test_one_missing_denies(self):
        context = await context_with("grants:view")
        dependency = require_permission("grants:view", PermissionName.GRANTS_DELETE)

        with pytest.raises(PermissionDeniedError) as exc_info:
            await dependency(context)

        assert exc_info.value.status_code == 403
        assert "grants:delete" in exc_info.value.detail

    async def test_legacy_names(self):
        context = await context_with("org:edit_profile")

        assert await require_permission("edit_org")(context) is context
        with pytest.raises(PermissionDeniedError) as exc_info:
            await require_permission("delete_org")(context)
        assert "delete_org" in exc_info.value.detail

    async def test_no_organization_denies_admin(self):
        context = await context_with(identity=SessionIdentity("u1", None, is_platform_admin=True))

        with pytest.raises(PermissionDeniedError):
            await require_permission("grants:view")(context)


class TestRequireAnyPermission:

    async def test_one_present_suffices(self):
        context = await context_with("billing:view")
        dependency = require_any_permission("billing:manage", "billing:view")

        assert await dependency(context) is context

    async def test_none_present_denies(self):
        context = await context_with("grants:view")

        with pytest.raises(PermissionDeniedError) as exc_info:
            await require_any_permission("billing:manage", "billing:view")(context)

        assert "requires one of billing:manage, billing:view" in exc_info.value.detail

    async def test_platform_admin(self):
        context = await context_with(identity=SessionIdentity("u1", "o1", is_platform_admin=True))

        assert await require_any_permission("admin:platform_access")(context) is context
