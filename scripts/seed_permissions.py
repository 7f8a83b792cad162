"""
Seed script to populate the permission catalog and system roles.

Run this script after database initialization to create:
- All catalog permissions
- The system roles (org_admin, grant_creator, ...)
- Their role-permission assignments

Usage:
    python -m scripts.seed_permissions
"""
import asyncio

from grantcue.core.database.engine import AsyncSessionLocal, init_db
from grantcue.features.permissions.catalog import SYSTEM_ROLE_DEFINITIONS
from grantcue.features.permissions.seed import seed_all
from grantcue.utils import get_logger


log = get_logger(__name__)


async def main():
    """Main function to seed permissions and roles."""
    log.info("Starting permission seeding...")

    log.info("Initializing database tables...")
    await init_db()

    async with AsyncSessionLocal() as db:
        try:
            await seed_all(db)
        except Exception:
            log.error("Error seeding permissions", exc_info=True)
            await db.rollback()
            raise

    log.info("Permission seeding completed successfully!")
    log.info("System roles:")
    for definition in SYSTEM_ROLE_DEFINITIONS:
        log.info("  - %s: %s", definition.name.value, definition.description)


if __name__ == "__main__":
    asyncio.run(main())
