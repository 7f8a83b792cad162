"""
Tests for PermissionContext: checks, state machine and identity changes.

Resolvers are replaced by in-memory stand-ins so each test controls exactly
what the store returns and when.
"""
import asyncio
from unittest.mock import Mock

import pytest

from grantcue.features.permissions.context import (
    ContextState,
    PermissionContext,
    SessionIdentity,
)
from grantcue.features.permissions.resolver import (
    EMPTY_RESOLUTION,
    PermissionInfo,
    PermissionResolver,
    ResolvedPermissions,
    RoleInfo,
)


def resolution(permissions=(), roles=()) -> ResolvedPermissions:
    return ResolvedPermissions(
        permissions=tuple(
            PermissionInfo(id=f"p-{name}", name=name, category=name.split(":")[0])
            for name in permissions
        ),
        roles=tuple(
            RoleInfo(id=f"r-{name}", name=name, display_name=name.title()) for name in roles
        ),
    )


class StubResolver:
    """Answers from a fixed table keyed by (user_id, org_id)."""

    def __init__(self, results=None, stored=None):
        self.results = results or {}
        self.stored = stored or {}
        self.calls = []

    async def resolve(self, user_id, org_id):
        self.calls.append((user_id, org_id))
        return self.results.get((user_id, org_id), EMPTY_RESOLUTION)

    async def user_has_permission(self, user_id, org_id, permission_names):
        self.calls.append((user_id, org_id))
        return bool(set(permission_names) & self.stored.get((user_id, org_id), set()))


class ControlledResolver:
    """Each resolution stays in flight until the test completes it."""

    def __init__(self):
        self.pending = []

    async def resolve(self, user_id, org_id):
        future = asyncio.get_running_loop().create_future()
        self.pending.append(((user_id, org_id), future))
        return await future

    def complete(self, index: int, result: ResolvedPermissions) -> None:
        self.pending[index][1].set_result(result)


USER = SessionIdentity(user_id="u1", org_id="o1")
ADMIN = SessionIdentity(user_id="u1", org_id="o1", is_platform_admin=True)


async def loaded_context(permissions=(), roles=(), identity=USER) -> PermissionContext:
    resolver = StubResolver({(identity.user_id, identity.org_id): resolution(permissions, roles)})
    return await PermissionContext.for_identity(resolver, identity)


class TestPlatformAdmin:

    @pytest.mark.parametrize("permission", ["grants:edit", "admin:platform_access", "manage_team", "made:up"])
    async def test_every_permission_granted(self, permission):
        context = await loaded_context(identity=ADMIN)

        assert context.has_permission(permission)
        assert context.has_any_permission([permission])
        assert context.has_all_permissions([permission, "billing:manage"])

    async def test_granted_while_loading(self):
        context = PermissionContext(ControlledResolver(), ADMIN)

        assert context.state is ContextState.LOADING
        assert context.has_permission("org:delete")

    async def test_strong_check_skips_the_store(self):
        resolver = StubResolver()
        context = PermissionContext(resolver, ADMIN)

        assert await context.check_permission("billing:manage")
        assert resolver.calls == []

    async def test_no_role_override(self):
        context = await loaded_context(identity=ADMIN)

        assert not context.has_role("org_admin")

    async def test_no_organization_denies_admin(self):
        context = await loaded_context(
            identity=SessionIdentity(user_id="u1", org_id=None, is_platform_admin=True)
        )

        assert context.state is ContextState.NO_CONTEXT
        assert not context.has_permission("grants:view")


class TestUnionSemantics:

    async def test_union_across_roles(self):
        context = await loaded_context(
            permissions=["grants:view", "grants:edit", "tasks:view"],
            roles=["contributor", "task_manager"],
        )

        assert context.has_permission("grants:view")
        assert context.has_permission("grants:edit")
        assert context.has_permission("tasks:view")
        assert not context.has_permission("billing:manage")

    async def test_unknown_permission_is_denied(self):
        context = await loaded_context(permissions=["grants:view"])

        assert not context.has_permission("grants:fly")


class TestLegacyExpansion:

    async def test_any_mapped_permission_satisfies(self):
        context = await loaded_context(permissions=["tasks:view"])

        assert context.has_permission("view")

    async def test_none_mapped_denies(self):
        context = await loaded_context(permissions=["billing:view"])

        assert not context.has_permission("view")
        assert not context.has_permission("manage_billing")

    async def test_unknown_legacy_like_name_is_denied(self):
        context = await loaded_context(permissions=["grants:view"])

        assert not context.has_permission("manage_everything")

    async def test_mixed_vocabulary(self):
        context = await loaded_context(permissions=["team:invite", "grants:view"])

        assert context.has_all_permissions(["manage_team", "grants:view"])


class TestAnyAll:

    async def test_any_versus_all(self):
        context = await loaded_context(permissions=["x:a", "y:b"])

        assert context.has_any_permission(["x:a", "y:b", "z:c"])
        assert not context.has_all_permissions(["x:a", "y:b", "z:c"])
        assert context.has_any_permission(["x:a", "y:b"])
        assert context.has_all_permissions(["x:a", "y:b"])

    async def test_empty_lists(self):
        context = await loaded_context(permissions=["x:a"])

        assert not context.has_any_permission([])
        assert context.has_all_permissions([])


class TestNoContext:

    @pytest.mark.parametrize(
        "identity",
        [
            SessionIdentity(),
            SessionIdentity(user_id="u1"),
            SessionIdentity(org_id="o1"),
        ],
    )
    async def test_every_check_false_without_fetch(self, identity):
        resolver = StubResolver()
        context = await PermissionContext.for_identity(resolver, identity)

        assert context.state is ContextState.NO_CONTEXT
        assert not context.has_permission("grants:view")
        assert not context.has_any_permission(["grants:view", "view"])
        assert not context.has_all_permissions(["grants:view"])
        assert not context.has_all_permissions([])
        assert not await context.check_permission("grants:view")
        assert resolver.calls == []

    def test_from_missing_user(self):
        assert SessionIdentity.from_user(None) == SessionIdentity()

    def test_from_user_defaults_to_current_organization(self):
        user = Mock(id="u1", current_organization_id="o9", is_platform_admin=False)

        assert SessionIdentity.from_user(user) == SessionIdentity("u1", "o9", False)
        assert SessionIdentity.from_user(user, org_id="o2").org_id == "o2"


class TestFailClosed:

    async def test_failed_resolution_denies(self):
        resolver = PermissionResolver(Mock(side_effect=RuntimeError("backend down")))

        context = await PermissionContext.for_identity(resolver, USER)

        assert context.state is ContextState.LOADED
        assert not context.has_permission("grants:edit")
        assert context.permissions == ()
        assert context.roles == ()

    async def test_failed_strong_check_denies(self):
        resolver = PermissionResolver(Mock(side_effect=RuntimeError("backend down")))
        context = PermissionContext(resolver, USER)

        assert not await context.check_permission("grants:edit")


class TestIdentityChanges:

    async def test_stale_resolution_is_discarded(self):
        resolver = ControlledResolver()
        context = PermissionContext(resolver, SessionIdentity("u1", "o1"))

        first = asyncio.create_task(context.load())
        await asyncio.sleep(0)

        context.set_identity(SessionIdentity("u1", "o2"))
        second = asyncio.create_task(context.load())
        await asyncio.sleep(0)

        resolver.complete(1, resolution(["billing:manage"], ["billing_admin"]))
        await second
        assert context.state is ContextState.LOADED
        assert context.permission_names == {"billing:manage"}

        resolver.complete(0, resolution(["grants:edit"], ["contributor"]))
        await first
        assert context.identity.org_id == "o2"
        assert context.permission_names == {"billing:manage"}
        assert context.has_role("billing_admin")
        assert not context.has_role("contributor")

    async def test_switching_back_still_discards_old_request(self):
        """o1 -> o2 -> o1: the first o1 request is older than the current one."""
        resolver = ControlledResolver()
        context = PermissionContext(resolver, SessionIdentity("u1", "o1"))

        first = asyncio.create_task(context.load())
        await asyncio.sleep(0)
        context.set_identity(SessionIdentity("u1", "o2"))
        context.set_identity(SessionIdentity("u1", "o1"))
        latest = asyncio.create_task(context.load())
        await asyncio.sleep(0)

        resolver.complete(0, resolution(["grants:delete"]))
        await first
        assert context.state is ContextState.LOADING
        assert not context.has_permission("grants:delete")

        resolver.complete(1, resolution(["grants:view"]))
        await latest
        assert context.permission_names == {"grants:view"}

    async def test_set_identity_clears_snapshot(self):
        context = await loaded_context(permissions=["grants:view"], roles=["contributor"])

        context.set_identity(SessionIdentity("u1", "o2"))

        assert context.state is ContextState.LOADING
        assert context.loading
        assert not context.has_permission("grants:view")
        assert context.roles == ()

    async def test_same_identity_keeps_snapshot(self):
        context = await loaded_context(permissions=["grants:view"])

        context.set_identity(SessionIdentity("u1", "o1"))

        assert context.state is ContextState.LOADED
        assert context.has_permission("grants:view")

    async def test_leaving_organization_enters_no_context(self):
        context = await loaded_context(permissions=["grants:view"])

        context.set_identity(SessionIdentity("u1", None))

        assert context.state is ContextState.NO_CONTEXT
        assert not context.has_permission("grants:view")

    async def test_invalidate_reloads_same_identity(self):
        resolver = StubResolver({("u1", "o1"): resolution(["grants:view"])})
        context = await PermissionContext.for_identity(resolver, USER)

        resolver.results[("u1", "o1")] = resolution(["grants:view", "grants:edit"])
        assert not context.has_permission("grants:edit")

        context.invalidate()
        assert context.state is ContextState.LOADING
        await context.load()

        assert context.has_permission("grants:edit")
        assert resolver.calls == [("u1", "o1"), ("u1", "o1")]


class TestStrongCheck:

    async def test_reads_the_store_not_the_snapshot(self):
        resolver = StubResolver(
            results={("u1", "o1"): resolution(["grants:view"])},
            stored={("u1", "o1"): {"grants:view", "grants:edit"}},
        )
        context = await PermissionContext.for_identity(resolver, USER)

        assert not context.has_permission("grants:edit")
        assert await context.check_permission("grants:edit")
        assert not context.has_permission("grants:edit")

    async def test_legacy_names_expand(self):
        resolver = StubResolver(stored={("u1", "o1"): {"team:remove"}})
        context = PermissionContext(resolver, USER)

        assert await context.check_permission("manage_team")
        assert not await context.check_permission("delete_org")


class TestRoles:

    @pytest.mark.parametrize(
        "roles",
        [["contributor", "org_admin"], ["org_admin", "contributor"]],
    )
    async def test_primary_role_prefers_org_admin(self, roles):
        context = await loaded_context(roles=roles)

        assert context.get_primary_role().name == "org_admin"
        assert context.primary_role.name == "org_admin"

    async def test_primary_role_falls_back_to_first(self):
        context = await loaded_context(roles=["contributor", "task_manager"])

        assert context.get_primary_role().name == "contributor"

    async def test_no_roles(self):
        context = await loaded_context()

        assert context.get_primary_role() is None

    async def test_has_role_is_exact(self):
        context = await loaded_context(roles=["grant_viewer"])

        assert context.has_role("grant_viewer")
        assert not context.has_role("grant_creator")
        assert not context.has_role("Grant_Viewer")
