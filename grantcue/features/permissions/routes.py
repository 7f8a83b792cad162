"""
Permission management API routes.

Catalog and role listing, custom role management, role assignments,
permission checks and audit logs. All organization-scoped routes act on
the caller's current organization.
"""
from itertools import groupby
from typing import Annotated, List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from grantcue.core.database.engine import get_db
from grantcue.features.permissions import service
from grantcue.features.permissions.catalog import PERMISSION_GROUPS, PermissionName
from grantcue.features.permissions.context import PermissionContext
from grantcue.features.permissions.dependencies import (
    get_permission_context,
    require_permission,
)
from grantcue.features.permissions.exceptions import RoleNotFoundError
from grantcue.features.permissions.schemas import (
    AssignRoleToUser,
    AuditLogListResponse,
    AuditLogResponse,
    EffectivePermissionsResponse,
    PermissionCategory,
    PermissionCheckRequest,
    PermissionCheckResponse,
    PermissionGroupResponse,
    PermissionResponse,
    RoleAssignmentResponse,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
    RoleWithPermissions,
)
from grantcue.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["permissions"])


# ============================================================================
# Catalog & Roles
# ============================================================================

@router.get("/catalog", response_model=List[PermissionCategory])
async def get_permission_catalog(
    db: Annotated[AsyncSession, Depends(get_db)],
    context: Annotated[PermissionContext, Depends(get_permission_context)],
):
    """All permissions grouped by category."""
    permissions = await service.get_all_permissions(db)
    return [
        PermissionCategory(
            category=category,
            permissions=[PermissionResponse.model_validate(p) for p in items],
        )
        for category, items in groupby(permissions, key=lambda p: p.category)
    ]


@router.get("/groups", response_model=List[PermissionGroupResponse])
async def get_permission_groups(
    context: Annotated[PermissionContext, Depends(get_permission_context)],
):
    """Named permission bundles, for checking related permissions at once."""
    return [
        PermissionGroupResponse(name=name, permissions=[p.value for p in permissions])
        for name, permissions in PERMISSION_GROUPS.items()
    ]


@router.get("/roles", response_model=List[RoleResponse])
async def list_roles(
    db: Annotated[AsyncSession, Depends(get_db)],
    context: Annotated[PermissionContext, Depends(get_permission_context)],
):
    """System roles plus the current organization's custom roles."""
    return await service.get_available_roles(db, context.identity.org_id)


@router.get("/roles/{role_id}", response_model=RoleWithPermissions)
async def get_role(
    role_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: Annotated[PermissionContext, Depends(get_permission_context)],
):
    """Get a role with its permissions."""
    role = await service.get_role_with_permissions(db, role_id)
    if role is None:
        raise RoleNotFoundError()
    visible = role.is_system_role or role.organization_id == context.identity.org_id
    if not visible and not context.identity.is_platform_admin:
        raise RoleNotFoundError()
    return role


@router.post("/roles", response_model=RoleWithPermissions, status_code=status.HTTP_201_CREATED)
async def create_role(
    payload: RoleCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: Annotated[
        PermissionContext, Depends(require_permission(PermissionName.ADMIN_MANAGE_ROLES))
    ],
):
    """Create a custom role in the current organization."""
    return await service.create_custom_role(
        db,
        org_id=context.identity.org_id,
        name=payload.name,
        display_name=payload.display_name,
        description=payload.description,
        permission_ids=payload.permission_ids,
        actor_id=context.identity.user_id,
    )


@router.put("/roles/{role_id}", response_model=RoleWithPermissions)
async def update_role(
    role_id: str,
    payload: RoleUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: Annotated[
        PermissionContext, Depends(require_permission(PermissionName.ADMIN_MANAGE_ROLES))
    ],
):
    """Update a custom role; system roles are read-only."""
    return await service.update_custom_role(
        db,
        role_id=role_id,
        org_id=context.identity.org_id,
        display_name=payload.display_name,
        description=payload.description,
        permission_ids=payload.permission_ids,
        actor_id=context.identity.user_id,
    )


@router.delete("/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    role_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: Annotated[
        PermissionContext, Depends(require_permission(PermissionName.ADMIN_MANAGE_ROLES))
    ],
):
    """Delete a custom role and its assignments."""
    await service.delete_custom_role(
        db, role_id=role_id, org_id=context.identity.org_id, actor_id=context.identity.user_id
    )
    return None


# ============================================================================
# Assignments
# ============================================================================

@router.get("/assignments", response_model=List[RoleAssignmentResponse])
async def list_role_assignments(
    db: Annotated[AsyncSession, Depends(get_db)],
    context: Annotated[PermissionContext, Depends(require_permission(PermissionName.TEAM_VIEW))],
):
    """Role assignments in the current organization, newest first."""
    return await service.get_org_role_assignments(db, context.identity.org_id)


@router.post("/assignments", response_model=RoleAssignmentResponse, status_code=status.HTTP_201_CREATED)
async def assign_role(
    payload: AssignRoleToUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: Annotated[
        PermissionContext, Depends(require_permission(PermissionName.TEAM_EDIT_ROLES))
    ],
):
    """Assign a role to a member of the current organization."""
    return await service.assign_role_to_user(
        db,
        user_id=payload.user_id,
        role_id=payload.role_id,
        org_id=context.identity.org_id,
        assigned_by=context.identity.user_id,
    )


@router.delete("/assignments/{user_id}/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unassign_role(
    user_id: str,
    role_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    context: Annotated[
        PermissionContext, Depends(require_permission(PermissionName.TEAM_EDIT_ROLES))
    ],
):
    """Remove a role from a member of the current organization."""
    await service.remove_role_from_user(
        db,
        user_id=user_id,
        role_id=role_id,
        org_id=context.identity.org_id,
        removed_by=context.identity.user_id,
    )
    return None


# ============================================================================
# Permission Check Routes
# ============================================================================

@router.get("/me", response_model=EffectivePermissionsResponse)
async def get_my_permissions(
    context: Annotated[PermissionContext, Depends(get_permission_context)],
):
    """The caller's roles and effective permissions in their current organization."""
    identity = context.identity
    return EffectivePermissionsResponse(
        user_id=identity.user_id,
        organization_id=identity.org_id,
        is_platform_admin=identity.is_platform_admin,
        state=context.state.value,
        roles=[RoleResponse.model_validate(r) for r in context.roles],
        primary_role=(
            RoleResponse.model_validate(context.primary_role) if context.primary_role else None
        ),
        permissions=[PermissionResponse.model_validate(p) for p in context.permissions],
    )


@router.post("/check", response_model=PermissionCheckResponse)
async def check_permission(
    check_request: PermissionCheckRequest,
    context: Annotated[PermissionContext, Depends(get_permission_context)],
):
    """Check a permission directly against the database."""
    granted = await context.check_permission(check_request.permission)
    return PermissionCheckResponse(
        has_permission=granted,
        reason=None if granted else "Permission denied",
    )


# ============================================================================
# Audit Log Routes
# ============================================================================

@router.get("/audit-logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    db: Annotated[AsyncSession, Depends(get_db)],
    context: Annotated[
        PermissionContext, Depends(require_permission(PermissionName.ADMIN_VIEW_AUDIT_LOGS))
    ],
    skip: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(gt=0, le=200)] = 50,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
):
    """Role-management audit trail for the current organization."""
    logs, total = await service.list_audit_logs(
        db,
        org_id=context.identity.org_id,
        skip=skip,
        limit=limit,
        action=action,
        resource_type=resource_type,
    )

    pages = (total + limit - 1) // limit
    page = (skip // limit) + 1

    return AuditLogListResponse(
        items=[AuditLogResponse.model_validate(entry) for entry in logs],
        total=total,
        page=page,
        page_size=limit,
        pages=pages,
    )
