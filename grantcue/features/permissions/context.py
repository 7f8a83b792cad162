"""
Permission query façade.

A ``PermissionContext`` is bound to one ``SessionIdentity`` (user, current
organization, platform-admin flag). It loads the effective permission set
once per identity and answers synchronous checks from that snapshot; only
``check_permission`` goes back to the database.

States:
    NO_CONTEXT  no user or no organization; every check is False, nothing is fetched
    LOADING     identity set, resolution not started or in flight
    LOADED      snapshot available (possibly empty after a failed resolution)

Each load is tagged with the identity and generation it was issued for. A
load that completes after the identity changed is discarded, so a slow
resolution for a previous organization can never overwrite the current one.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional

from grantcue.features.permissions.catalog import PRIMARY_ROLE_NAME
from grantcue.features.permissions.legacy import PermissionLike, expand, permission_ref
from grantcue.features.permissions.resolver import (
    EMPTY_RESOLUTION,
    PermissionInfo,
    PermissionResolver,
    ResolvedPermissions,
    RoleInfo,
)
from grantcue.utils import get_logger


log = get_logger(__name__)


class ContextState(str, Enum):
    LOADING = "loading"
    LOADED = "loaded"
    NO_CONTEXT = "no_context"


@dataclass(frozen=True)
class SessionIdentity:
    """Who is asking, and in which organization."""
    user_id: Optional[str] = None
    org_id: Optional[str] = None
    is_platform_admin: bool = False

    @property
    def has_context(self) -> bool:
        return bool(self.user_id) and bool(self.org_id)

    @classmethod
    def from_user(cls, user: Any, org_id: Optional[str] = None) -> "SessionIdentity":
        """Build an identity from a User row, defaulting to its current organization."""
        if user is None:
            return cls()
        return cls(
            user_id=user.id,
            org_id=org_id if org_id is not None else user.current_organization_id,
            is_platform_admin=bool(user.is_platform_admin),
        )


class PermissionContext:
    """
    Permission checks for one identity.

    Usage:
        context = PermissionContext(resolver, SessionIdentity.from_user(user))
        await context.load()
        if context.has_permission("billing:manage"):
            ...
        if context.has_permission("manage_team"):  # legacy names still work
            ...
    """

    def __init__(self, resolver: PermissionResolver, identity: Optional[SessionIdentity] = None):
        self._resolver = resolver
        self._identity = identity or SessionIdentity()
        self._generation = 0
        self._apply(EMPTY_RESOLUTION)
        self._state = self._initial_state()

    @classmethod
    async def for_identity(
        cls, resolver: PermissionResolver, identity: SessionIdentity
    ) -> "PermissionContext":
        """Create a context and load it."""
        context = cls(resolver, identity)
        await context.load()
        return context

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def identity(self) -> SessionIdentity:
        return self._identity

    @property
    def state(self) -> ContextState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state is ContextState.LOADING

    def set_identity(self, identity: SessionIdentity) -> None:
        """Switch to another identity; the cached snapshot is dropped."""
        if identity == self._identity:
            return
        log.debug(
            "Identity changed from user=%s org=%s to user=%s org=%s",
            self._identity.user_id, self._identity.org_id, identity.user_id, identity.org_id,
        )
        self._identity = identity
        self._reset()

    def invalidate(self) -> None:
        """Drop the snapshot so the next load re-resolves the same identity."""
        self._reset()

    async def load(self) -> ContextState:
        """
        Resolve permissions for the identity current at call time.

        The result is applied only if the identity (and generation) is still
        current when resolution completes.
        """
        identity = self._identity
        generation = self._generation

        if not identity.has_context:
            self._apply(EMPTY_RESOLUTION)
            self._state = ContextState.NO_CONTEXT
            return self._state

        self._state = ContextState.LOADING
        resolved = await self._resolver.resolve(identity.user_id, identity.org_id)

        if generation != self._generation or identity != self._identity:
            log.debug(
                "Discarding stale permission resolution for user=%s org=%s",
                identity.user_id, identity.org_id,
            )
            return self._state

        self._apply(resolved)
        self._state = ContextState.LOADED
        return self._state

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def has_permission(self, permission: PermissionLike) -> bool:
        """
        Check a fine-grained or legacy permission against the loaded snapshot.

        Legacy names are satisfied by ANY of their mapped permissions.
        Platform administrators pass every check once an organization is set.
        """
        if not self._identity.has_context:
            return False
        if self._identity.is_platform_admin:
            return True
        return any(name in self._permission_names for name in expand(permission_ref(permission)))

    def has_any_permission(self, permissions: Iterable[PermissionLike]) -> bool:
        if not self._identity.has_context:
            return False
        if self._identity.is_platform_admin:
            return True
        return any(self.has_permission(p) for p in permissions)

    def has_all_permissions(self, permissions: Iterable[PermissionLike]) -> bool:
        if not self._identity.has_context:
            return False
        if self._identity.is_platform_admin:
            return True
        return all(self.has_permission(p) for p in permissions)

    def has_role(self, role_name: str) -> bool:
        """Exact role-name match; platform administrators get no override here."""
        return role_name in self._role_names

    async def check_permission(self, permission: PermissionLike) -> bool:
        """Check against the database instead of the snapshot."""
        identity = self._identity
        if not identity.has_context:
            return False
        if identity.is_platform_admin:
            return True
        return await self._resolver.user_has_permission(
            identity.user_id, identity.org_id, expand(permission_ref(permission))
        )

    # ------------------------------------------------------------------
    # Snapshot accessors
    # ------------------------------------------------------------------

    @property
    def permissions(self) -> tuple[PermissionInfo, ...]:
        return self._resolved.permissions

    @property
    def permission_names(self) -> frozenset[str]:
        return self._permission_names

    @property
    def roles(self) -> tuple[RoleInfo, ...]:
        return self._resolved.roles

    @property
    def primary_role(self) -> Optional[RoleInfo]:
        return self.get_primary_role()

    def get_primary_role(self) -> Optional[RoleInfo]:
        """org_admin if held, otherwise the first role, otherwise None."""
        roles = self._resolved.roles
        if not roles:
            return None
        for role in roles:
            if role.name == PRIMARY_ROLE_NAME:
                return role
        return roles[0]

    # ------------------------------------------------------------------

    def _initial_state(self) -> ContextState:
        return ContextState.LOADING if self._identity.has_context else ContextState.NO_CONTEXT

    def _reset(self) -> None:
        self._generation += 1
        self._apply(EMPTY_RESOLUTION)
        self._state = self._initial_state()

    def _apply(self, resolved: ResolvedPermissions) -> None:
        self._resolved = resolved
        self._permission_names = resolved.permission_names
        self._role_names = resolved.role_names
