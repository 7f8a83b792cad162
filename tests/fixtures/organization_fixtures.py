"""
Organization, member and role-assignment fixtures.

``tenants`` builds two organizations with a spread of members:

    acme:    alice (org_admin), bob (contributor), dave (contributor + task_manager),
             carol (member without roles)
    globex:  bob (grant_viewer)
    root:    platform administrator, member of nothing
"""
from dataclasses import dataclass
from typing import Sequence

import pytest
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from grantcue.features.organizations.models import Organization, organization_members
from grantcue.features.permissions.models import Role, UserRoleAssignment
from grantcue.features.users.models import User


async def create_user(db: AsyncSession, name: str, is_platform_admin: bool = False) -> User:
    user = User(
        appwrite_id=f"appwrite-{name}",
        email=f"{name}@example.com",
        name=name.title(),
        is_platform_admin=is_platform_admin,
    )
    db.add(user)
    await db.commit()
    return user


async def create_organization(
    db: AsyncSession, name: str, members: Sequence[User] = ()
) -> Organization:
    organization = Organization(name=name)
    db.add(organization)
    await db.flush()
    for member in members:
        await db.execute(
            insert(organization_members).values(user_id=member.id, organization_id=organization.id)
        )
    await db.commit()
    return organization


async def grant_role(
    db: AsyncSession, user: User, role: Role, organization: Organization
) -> UserRoleAssignment:
    assignment = UserRoleAssignment(
        user_id=user.id, role_id=role.id, organization_id=organization.id
    )
    db.add(assignment)
    await db.commit()
    await db.refresh(assignment)
    return assignment


async def set_current_organization(db: AsyncSession, user: User, organization: Organization) -> User:
    user.current_organization_id = organization.id
    await db.commit()
    return user


@dataclass
class Tenants:
    acme: Organization
    globex: Organization
    alice: User
    bob: User
    carol: User
    dave: User
    root: User


@pytest.fixture
async def tenants(db: AsyncSession, system_roles: dict[str, Role]) -> Tenants:
    alice = await create_user(db, "alice")
    bob = await create_user(db, "bob")
    carol = await create_user(db, "carol")
    dave = await create_user(db, "dave")
    root = await create_user(db, "root", is_platform_admin=True)

    acme = await create_organization(db, "Acme Foundation", [alice, bob, carol, dave])
    globex = await create_organization(db, "Globex Trust", [bob])

    await grant_role(db, alice, system_roles["org_admin"], acme)
    await grant_role(db, bob, system_roles["contributor"], acme)
    await grant_role(db, bob, system_roles["grant_viewer"], globex)
    await grant_role(db, dave, system_roles["contributor"], acme)
    await grant_role(db, dave, system_roles["task_manager"], acme)

    for user in (alice, bob, carol, dave):
        await set_current_organization(db, user, acme)
    await set_current_organization(db, root, acme)

    return Tenants(acme=acme, globex=globex, alice=alice, bob=bob, carol=carol, dave=dave, root=root)
