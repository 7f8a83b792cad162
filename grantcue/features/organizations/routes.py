"""
Organization routes: membership listing, creation and switching the
current organization.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy import select, insert
from sqlalchemy.ext.asyncio import AsyncSession

from grantcue.core.database.engine import get_db
from grantcue.features.organizations.dependencies import get_user_organization
from grantcue.features.organizations.models import Organization, organization_members
from grantcue.features.organizations.schemas import (
    OrganizationCreate,
    OrganizationPublic,
    SwitchOrganizationResponse,
)
from grantcue.features.permissions.catalog import SystemRoleName
from grantcue.features.permissions.models import Role, UserRoleAssignment
from grantcue.features.users.dependencies import get_current_user
from grantcue.features.users.models import User
from grantcue.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["organizations"])


@router.get("/", response_model=list[OrganizationPublic])
async def list_my_organizations(
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """List organizations the current user belongs to."""
    result = await db.execute(
        select(Organization)
        .join(organization_members, organization_members.c.organization_id == Organization.id)
        .where(organization_members.c.user_id == user.id)
        .order_by(Organization.name)
    )
    return result.scalars().all()


@router.post("/", response_model=OrganizationPublic, status_code=status.HTTP_201_CREATED)
async def create_organization(
    payload: OrganizationCreate,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Create an organization.

    The creator becomes a member, holds the org_admin system role and the
    new organization becomes their current one.
    """
    organization = Organization(**payload.model_dump())
    db.add(organization)
    await db.flush()

    await db.execute(
        insert(organization_members).values(user_id=user.id, organization_id=organization.id)
    )

    result = await db.execute(select(Role).where(Role.name == SystemRoleName.ORG_ADMIN.value))
    admin_role = result.scalar_one_or_none()
    if admin_role is not None:
        db.add(UserRoleAssignment(
            user_id=user.id,
            role_id=admin_role.id,
            organization_id=organization.id,
            assigned_by_id=user.id,
        ))
    else:
        log.warning("org_admin role missing; run scripts.seed_permissions")

    user.current_organization_id = organization.id
    await db.commit()
    await db.refresh(organization)

    log.info("Organization %s created by %s", organization.id, user.id)
    return organization


@router.post("/{organization_id}/switch", response_model=SwitchOrganizationResponse)
async def switch_organization(
    organization: Annotated[Organization, Depends(get_user_organization)],
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Make the given organization the user's current one.

    Permission checks on later requests resolve against the new organization.
    """
    user.current_organization_id = organization.id
    await db.commit()

    log.info("User %s switched to organization %s", user.id, organization.id)
    return SwitchOrganizationResponse(
        current_organization_id=organization.id,
        message="Organization switched successfully",
    )
