"""
Role management: custom roles, their permission sets and role assignments.

These are the writes the resolver later reads. Nothing here caches; a
change is visible to the next resolution of the affected user.
"""
from typing import Any, Dict, List, Optional, Sequence
from sqlalchemy import select, delete, or_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from grantcue.features.organizations.models import organization_members
from grantcue.features.permissions.catalog import is_valid_role_name
from grantcue.features.permissions.exceptions import (
    AssignmentNotFoundError,
    InvalidRoleDataError,
    RoleConflictError,
    RoleNotFoundError,
    SystemRoleImmutableError,
)
from grantcue.features.permissions.models import (
    AuditLog,
    Permission,
    Role,
    UserRoleAssignment,
)
from grantcue.utils import get_logger


log = get_logger(__name__)


# ============================================================================
# Catalog Queries
# ============================================================================

async def get_all_permissions(db: AsyncSession) -> Sequence[Permission]:
    result = await db.execute(select(Permission).order_by(Permission.category, Permission.name))
    return result.scalars().all()


async def get_available_roles(db: AsyncSession, org_id: Optional[str] = None) -> Sequence[Role]:
    """System roles plus, when ``org_id`` is given, that organization's custom roles."""
    condition = Role.is_system_role.is_(True)
    if org_id:
        condition = or_(condition, Role.organization_id == org_id)
    result = await db.execute(select(Role).where(condition).order_by(Role.display_name))
    return result.scalars().all()


async def get_role_with_permissions(db: AsyncSession, role_id: str) -> Optional[Role]:
    result = await db.execute(select(Role).where(Role.id == role_id))
    return result.scalar_one_or_none()


async def _load_permissions(db: AsyncSession, permission_ids: List[str]) -> List[Permission]:
    unique_ids = list(dict.fromkeys(permission_ids))
    if not unique_ids:
        return []
    result = await db.execute(select(Permission).where(Permission.id.in_(unique_ids)))
    permissions = list(result.scalars().all())
    missing = set(unique_ids) - {p.id for p in permissions}
    if missing:
        raise InvalidRoleDataError(f"Unknown permission ids: {', '.join(sorted(missing))}")
    return permissions


async def _get_custom_role(db: AsyncSession, role_id: str, org_id: str) -> Role:
    role = await get_role_with_permissions(db, role_id)
    if role is None:
        raise RoleNotFoundError()
    if role.is_system_role:
        raise SystemRoleImmutableError()
    if role.organization_id != org_id:
        # Other organizations' roles are invisible rather than forbidden
        raise RoleNotFoundError()
    return role


# ============================================================================
# Custom Roles
# ============================================================================

async def create_custom_role(
    db: AsyncSession,
    org_id: str,
    name: str,
    display_name: str,
    description: Optional[str],
    permission_ids: List[str],
    actor_id: Optional[str] = None,
) -> Role:
    """
    Create an organization-scoped role with its permissions in one transaction.

    Raises:
        InvalidRoleDataError: malformed name or unknown permission ids
        RoleConflictError: a role with this name already exists
    """
    if not is_valid_role_name(name):
        raise InvalidRoleDataError("Role name must contain only lowercase letters and underscores")

    existing = await db.execute(select(Role.id).where(Role.name == name))
    if existing.first() is not None:
        raise RoleConflictError()

    permissions = await _load_permissions(db, permission_ids)

    role = Role(
        name=name,
        display_name=display_name,
        description=description,
        is_system_role=False,
        organization_id=org_id,
        permissions=permissions,
    )
    db.add(role)
    try:
        await db.flush()
        record_audit_log(
            db,
            user_id=actor_id,
            action="create",
            resource_type="role",
            resource_id=role.id,
            organization_id=org_id,
            details={"name": name, "permissions": sorted(p.name for p in permissions)},
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise RoleConflictError()

    await db.refresh(role)
    log.info("Custom role %s (%s) created in org %s", role.name, role.id, org_id)
    return role


async def update_custom_role(
    db: AsyncSession,
    role_id: str,
    org_id: str,
    display_name: str,
    description: Optional[str],
    permission_ids: List[str],
    actor_id: Optional[str] = None,
) -> Role:
    """
    Replace a custom role's details and permission set.

    Raises:
        RoleNotFoundError: no such role in this organization
        SystemRoleImmutableError: the role is a system role
    """
    role = await _get_custom_role(db, role_id, org_id)
    permissions = await _load_permissions(db, permission_ids)

    role.display_name = display_name
    role.description = description
    role.permissions = permissions

    record_audit_log(
        db,
        user_id=actor_id,
        action="update",
        resource_type="role",
        resource_id=role.id,
        organization_id=org_id,
        details={"display_name": display_name, "permissions": sorted(p.name for p in permissions)},
    )
    await db.commit()
    await db.refresh(role)

    log.info("Custom role %s updated in org %s", role.id, org_id)
    return role


async def delete_custom_role(
    db: AsyncSession,
    role_id: str,
    org_id: str,
    actor_id: Optional[str] = None,
) -> None:
    """
    Delete a custom role and every assignment of it.

    Raises:
        RoleNotFoundError: no such role in this organization
        SystemRoleImmutableError: the role is a system role
    """
    role = await _get_custom_role(db, role_id, org_id)
    role_name = role.name

    await db.execute(delete(UserRoleAssignment).where(UserRoleAssignment.role_id == role.id))
    await db.delete(role)

    record_audit_log(
        db,
        user_id=actor_id,
        action="delete",
        resource_type="role",
        resource_id=role_id,
        organization_id=org_id,
        details={"name": role_name},
    )
    await db.commit()
    log.info("Custom role %s deleted from org %s", role_id, org_id)


# ============================================================================
# Role Assignments
# ============================================================================

async def assign_role_to_user(
    db: AsyncSession,
    user_id: str,
    role_id: str,
    org_id: str,
    assigned_by: Optional[str] = None,
) -> UserRoleAssignment:
    """
    Give a member of ``org_id`` a system role or one of the org's custom roles.

    Raises:
        RoleNotFoundError: unknown role, or a custom role of another organization
        InvalidRoleDataError: the user is not a member of the organization
        RoleConflictError: the user already holds the role here
    """
    role = await get_role_with_permissions(db, role_id)
    if role is None or (role.organization_id is not None and role.organization_id != org_id):
        raise RoleNotFoundError()

    membership = await db.execute(
        select(organization_members.c.user_id).where(
            organization_members.c.user_id == user_id,
            organization_members.c.organization_id == org_id,
        )
    )
    if membership.first() is None:
        raise InvalidRoleDataError("User is not a member of this organization")

    assignment = UserRoleAssignment(
        user_id=user_id,
        role_id=role_id,
        organization_id=org_id,
        assigned_by_id=assigned_by,
    )
    db.add(assignment)
    try:
        await db.flush()
        record_audit_log(
            db,
            user_id=assigned_by,
            action="assign",
            resource_type="user_role",
            resource_id=assignment.id,
            organization_id=org_id,
            details={"user_id": user_id, "role": role.name},
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise RoleConflictError("User already has this role in the organization")

    await db.refresh(assignment)
    log.info("Role %s assigned to user %s in org %s", role.name, user_id, org_id)
    return assignment


async def remove_role_from_user(
    db: AsyncSession,
    user_id: str,
    role_id: str,
    org_id: str,
    removed_by: Optional[str] = None,
) -> None:
    """
    Raises:
        AssignmentNotFoundError: the user does not hold the role here
    """
    result = await db.execute(
        delete(UserRoleAssignment).where(
            UserRoleAssignment.user_id == user_id,
            UserRoleAssignment.role_id == role_id,
            UserRoleAssignment.organization_id == org_id,
        )
    )
    if result.rowcount == 0:
        await db.rollback()
        raise AssignmentNotFoundError()

    record_audit_log(
        db,
        user_id=removed_by,
        action="unassign",
        resource_type="user_role",
        organization_id=org_id,
        details={"user_id": user_id, "role_id": role_id},
    )
    await db.commit()
    log.info("Role %s removed from user %s in org %s", role_id, user_id, org_id)


async def get_org_role_assignments(db: AsyncSession, org_id: str) -> Sequence[UserRoleAssignment]:
    """All role assignments in an organization, newest first."""
    result = await db.execute(
        select(UserRoleAssignment)
        .where(UserRoleAssignment.organization_id == org_id)
        .order_by(UserRoleAssignment.assigned_at.desc())
    )
    return result.scalars().all()


# ============================================================================
# Audit Logging
# ============================================================================

def record_audit_log(
    db: AsyncSession,
    user_id: Optional[str],
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    organization_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> AuditLog:
    """
    Add an audit log entry to the current transaction.

    The entry commits (or rolls back) together with the change it describes.
    """
    audit_log = AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        organization_id=organization_id,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(audit_log)
    log.info(
        "Audit: user=%s action=%s resource=%s:%s org=%s",
        user_id, action, resource_type, resource_id, organization_id,
    )
    return audit_log


async def list_audit_logs(
    db: AsyncSession,
    org_id: str,
    skip: int = 0,
    limit: int = 50,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
) -> tuple[Sequence[AuditLog], int]:
    stmt = select(AuditLog).where(AuditLog.organization_id == org_id)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    if resource_type:
        stmt = stmt.where(AuditLog.resource_type == resource_type)

    total_result = await db.execute(select(func.count()).select_from(stmt.subquery()))
    total = total_result.scalar() or 0

    result = await db.execute(
        stmt.order_by(AuditLog.created_at.desc()).offset(skip).limit(limit)
    )
    return result.scalars().all(), total
