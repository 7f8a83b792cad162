"""
FastAPI dependencies for permission checks.

Every request gets its own ``PermissionContext`` for the authenticated user
and their current organization, loaded once and shared by all checks in
that request. Role changes are therefore visible on the next request.
"""
from typing import Annotated
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from grantcue.core.database.engine import get_session_factory
from grantcue.features.permissions.context import PermissionContext, SessionIdentity
from grantcue.features.permissions.exceptions import PermissionDeniedError
from grantcue.features.permissions.legacy import (
    LegacyPermissionRef,
    PermissionLike,
    permission_ref,
)
from grantcue.features.permissions.resolver import PermissionResolver
from grantcue.features.users.dependencies import get_current_user
from grantcue.features.users.models import User
from grantcue.utils import get_logger


log = get_logger(__name__)


def get_permission_resolver(
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
) -> PermissionResolver:
    return PermissionResolver(session_factory)


async def get_permission_context(
    user: Annotated[User, Depends(get_current_user)],
    resolver: Annotated[PermissionResolver, Depends(get_permission_resolver)],
) -> PermissionContext:
    """Loaded permission context for the current user and organization."""
    return await PermissionContext.for_identity(resolver, SessionIdentity.from_user(user))


def _describe(permissions: tuple[PermissionLike, ...]) -> str:
    names = []
    for permission in permissions:
        ref = permission_ref(permission)
        names.append(ref.legacy.value if isinstance(ref, LegacyPermissionRef) else ref.name)
    return ", ".join(names)


def require_permission(*permissions: PermissionLike):
    """
    Dependency factory requiring ALL of the given permissions.

    Usage:
        @router.post("/roles")
        async def create_role(
            context: PermissionContext = Depends(require_permission("admin:manage_roles"))
        ):
            ...

    Raises:
        PermissionDeniedError: 403 when any permission is missing. A failed
        permission lookup produces the same response.
    """
    async def permission_dependency(
        context: Annotated[PermissionContext, Depends(get_permission_context)]
    ) -> PermissionContext:
        if not context.has_all_permissions(permissions):
            log.debug(
                "User %s denied %s in org %s",
                context.identity.user_id, _describe(permissions), context.identity.org_id,
            )
            raise PermissionDeniedError(f"Permission denied: {_describe(permissions)} required")
        return context

    return permission_dependency


def require_any_permission(*permissions: PermissionLike):
    """
    Dependency factory requiring at least ONE of the given permissions.

    Usage:
        @router.get("/billing")
        async def billing(
            context: PermissionContext = Depends(
                require_any_permission("billing:view", "billing:manage")
            )
        ):
            ...
    """
    async def permission_dependency(
        context: Annotated[PermissionContext, Depends(get_permission_context)]
    ) -> PermissionContext:
        if not context.has_any_permission(permissions):
            log.debug(
                "User %s denied any of %s in org %s",
                context.identity.user_id, _describe(permissions), context.identity.org_id,
            )
            raise PermissionDeniedError(
                f"Permission denied: requires one of {_describe(permissions)}"
            )
        return context

    return permission_dependency
