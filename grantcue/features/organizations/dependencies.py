"""
Organization-related dependency injection functions.
"""
from typing import Annotated
from fastapi import Depends
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from grantcue.core.database.engine import get_db
from grantcue.features.organizations.models import Organization, organization_members
from grantcue.features.permissions.exceptions import (
    NotOrganizationMemberError,
    OrganizationNotFoundError,
)
from grantcue.features.users.models import User
from grantcue.features.users.dependencies import get_current_user


async def get_organization_by_id(
    organization_id: str,
    db: Annotated[AsyncSession, Depends(get_db)]
) -> Organization:
    """
    Get organization by ID or raise 404.
    """
    result = await db.execute(
        select(Organization).where(Organization.id == organization_id)
    )
    organization = result.scalar_one_or_none()

    if organization is None:
        raise OrganizationNotFoundError()

    return organization


async def is_organization_member(db: AsyncSession, user_id: str, organization_id: str) -> bool:
    """Check membership with a direct query rather than the loaded relationship."""
    result = await db.execute(
        select(organization_members.c.user_id).where(
            and_(
                organization_members.c.user_id == user_id,
                organization_members.c.organization_id == organization_id,
            )
        )
    )
    return result.first() is not None


async def get_user_organization(
    organization_id: str,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> Organization:
    """
    Get organization and verify user is a member.

    Platform administrators may enter any organization.

    Raises:
        OrganizationNotFoundError: 404 if org not found
        NotOrganizationMemberError: 403 if user not a member
    """
    organization = await get_organization_by_id(organization_id, db)

    if user.is_platform_admin:
        return organization

    if not await is_organization_member(db, user.id, organization_id):
        raise NotOrganizationMemberError()

    return organization
