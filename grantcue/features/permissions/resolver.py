"""
Role/permission resolution against the database.

``PermissionResolver.resolve`` loads a user's roles and the deduplicated
union of their permissions within one organization in a single query.
Every failure (driver error, backend error, timeout) degrades to an empty
result: a resolution that could not complete never grants anything.
"""
import asyncio
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from grantcue.core import config
from grantcue.features.permissions.models import (
    Permission,
    Role,
    UserRoleAssignment,
    role_permissions,
)
from grantcue.utils import get_logger


log = get_logger(__name__)


@dataclass(frozen=True)
class PermissionInfo:
    id: str
    name: str
    category: str
    description: Optional[str] = None


@dataclass(frozen=True)
class RoleInfo:
    id: str
    name: str
    display_name: str
    description: Optional[str] = None
    is_system_role: bool = False
    organization_id: Optional[str] = None


@dataclass(frozen=True)
class ResolvedPermissions:
    """A user's roles and effective permissions within one organization."""
    permissions: tuple[PermissionInfo, ...] = ()
    roles: tuple[RoleInfo, ...] = ()

    @property
    def permission_names(self) -> frozenset[str]:
        return frozenset(p.name for p in self.permissions)

    @property
    def role_names(self) -> frozenset[str]:
        return frozenset(r.name for r in self.roles)


EMPTY_RESOLUTION = ResolvedPermissions()


class PermissionResolver:
    """
    Loads effective permissions and roles for ``(user_id, org_id)``.

    Each call opens its own session from ``session_factory`` so the read
    reflects committed state only. The resolver never writes.

    Usage:
        resolver = PermissionResolver(AsyncSessionLocal)
        resolved = await resolver.resolve(user.id, org.id)
        if "grants:edit" in resolved.permission_names:
            ...
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout: Optional[float] = None,
    ):
        self._session_factory = session_factory
        self._timeout = config.PERMISSION_RESOLVE_TIMEOUT if timeout is None else timeout

    async def resolve(self, user_id: Optional[str], org_id: Optional[str]) -> ResolvedPermissions:
        """
        Resolve roles and the union of their permissions.

        Returns an empty result without touching the database when either
        identifier is missing, and an empty result (logged) on any failure.
        """
        if not user_id or not org_id:
            return EMPTY_RESOLUTION

        try:
            return await asyncio.wait_for(self._fetch(user_id, org_id), timeout=self._timeout)
        except asyncio.TimeoutError:
            log.error(
                "Permission resolution timed out after %ss for user=%s org=%s",
                self._timeout, user_id, org_id,
            )
        except Exception:
            log.exception("Error loading permissions for user=%s org=%s", user_id, org_id)
        return EMPTY_RESOLUTION

    async def user_has_permission(
        self,
        user_id: Optional[str],
        org_id: Optional[str],
        permission_names: Iterable[str],
    ) -> bool:
        """
        Check directly against the database whether the user holds ANY of
        ``permission_names`` in the organization.

        Used where a just-changed assignment must be observed immediately.
        """
        names = list(permission_names)
        if not user_id or not org_id or not names:
            return False

        try:
            return await asyncio.wait_for(
                self._exists(user_id, org_id, names), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            log.error(
                "Permission check timed out after %ss for user=%s org=%s",
                self._timeout, user_id, org_id,
            )
        except Exception:
            log.exception(
                "Error checking permission %s for user=%s org=%s", names, user_id, org_id
            )
        return False

    async def _fetch(self, user_id: str, org_id: str) -> ResolvedPermissions:
        # Columns rather than entities: loading Role would trigger its
        # selectin relationship and a second round trip.
        stmt = (
            select(
                Role.id,
                Role.name,
                Role.display_name,
                Role.description,
                Role.is_system_role,
                Role.organization_id,
                Permission.id.label("permission_id"),
                Permission.name.label("permission_name"),
                Permission.category.label("permission_category"),
                Permission.description.label("permission_description"),
            )
            .join(UserRoleAssignment, UserRoleAssignment.role_id == Role.id)
            .outerjoin(role_permissions, role_permissions.c.role_id == Role.id)
            .outerjoin(Permission, Permission.id == role_permissions.c.permission_id)
            .where(
                UserRoleAssignment.user_id == user_id,
                UserRoleAssignment.organization_id == org_id,
            )
        )

        async with self._session_factory() as session:
            result = await session.execute(stmt)
            rows = result.all()

        roles: dict[str, RoleInfo] = {}
        permissions: dict[str, PermissionInfo] = {}
        for row in rows:
            if row.id not in roles:
                roles[row.id] = RoleInfo(
                    id=row.id,
                    name=row.name,
                    display_name=row.display_name,
                    description=row.description,
                    is_system_role=bool(row.is_system_role),
                    organization_id=row.organization_id,
                )
            # Roles without permissions come back with NULL permission columns
            if row.permission_id is not None and row.permission_id not in permissions:
                permissions[row.permission_id] = PermissionInfo(
                    id=row.permission_id,
                    name=row.permission_name,
                    category=row.permission_category,
                    description=row.permission_description,
                )

        log.debug(
            "Resolved %d roles / %d permissions for user=%s org=%s",
            len(roles), len(permissions), user_id, org_id,
        )
        return ResolvedPermissions(
            permissions=tuple(sorted(permissions.values(), key=lambda p: (p.category, p.name))),
            roles=tuple(sorted(roles.values(), key=lambda r: r.display_name)),
        )

    async def _exists(self, user_id: str, org_id: str, names: list[str]) -> bool:
        stmt = (
            select(UserRoleAssignment.id)
            .join(role_permissions, role_permissions.c.role_id == UserRoleAssignment.role_id)
            .join(Permission, Permission.id == role_permissions.c.permission_id)
            .where(
                UserRoleAssignment.user_id == user_id,
                UserRoleAssignment.organization_id == org_id,
                Permission.name.in_(names),
            )
            .limit(1)
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.first() is not None
