"""
Seeding of the permission catalog and system roles.

Idempotent: existing permissions are kept, missing ones are created, and
each system role's permission set is brought in line with the catalog.
Custom roles are never touched.
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from grantcue.features.permissions.catalog import (
    PERMISSION_DEFINITIONS,
    SYSTEM_ROLE_DEFINITIONS,
)
from grantcue.features.permissions.models import Permission, Role
from grantcue.utils import get_logger


log = get_logger(__name__)


async def seed_permissions(db: AsyncSession) -> dict[str, Permission]:
    """
    Create catalog permissions that do not exist yet.

    Returns:
        Dictionary mapping permission names to Permission objects
    """
    result = await db.execute(select(Permission))
    permissions_map = {p.name: p for p in result.scalars().all()}

    created = 0
    for definition in PERMISSION_DEFINITIONS:
        name = definition.name.value
        if name in permissions_map:
            continue
        permission = Permission(
            name=name,
            category=definition.category,
            description=definition.description,
        )
        db.add(permission)
        permissions_map[name] = permission
        created += 1

    await db.flush()
    log.info("Seeded %d new permissions (%d total)", created, len(permissions_map))
    return permissions_map


async def seed_roles(db: AsyncSession, permissions_map: dict[str, Permission]) -> dict[str, Role]:
    """
    Create system roles and sync their permission sets.

    Returns:
        Dictionary mapping role names to Role objects
    """
    roles_map: dict[str, Role] = {}
    for definition in SYSTEM_ROLE_DEFINITIONS:
        name = definition.name.value
        result = await db.execute(select(Role).where(Role.name == name))
        role = result.scalar_one_or_none()

        if role is None:
            role = Role(
                name=name,
                display_name=definition.display_name,
                description=definition.description,
                is_system_role=True,
                organization_id=None,
            )
            db.add(role)
            log.info("Created system role '%s'", name)

        role.permissions = sorted(
            (permissions_map[p.value] for p in definition.permissions),
            key=lambda p: p.name,
        )
        roles_map[name] = role

    await db.flush()
    return roles_map


async def seed_all(db: AsyncSession) -> dict[str, Role]:
    """Seed permissions and system roles, then commit."""
    permissions_map = await seed_permissions(db)
    roles_map = await seed_roles(db, permissions_map)
    await db.commit()
    return roles_map
