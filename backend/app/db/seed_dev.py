"""Dev seeding helper: one demo organization owned by one demo user."""

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.engine import get_async_engine
from backend.app.db.models import Organization, OrganizationMember, User
from backend.app.models.organization import Role

logger = logging.getLogger(__name__)

# Use as "Authorization: Bearer dev-user" and "X-Organization-ID: dev-org"
DEV_ORGANIZATION_ID = "dev-org"
DEV_USER_ID = "dev-user"


async def seed_dev_organization() -> None:
    """Seed the demo organization, user and owner membership.

    This function is idempotent - safe to run multiple times.
    """
    async with AsyncSession(get_async_engine(), expire_on_commit=False) as session:
        organization = await session.get(Organization, DEV_ORGANIZATION_ID)
        if organization is None:
            logger.info(f"Creating dev organization {DEV_ORGANIZATION_ID}")
            session.add(Organization(id=DEV_ORGANIZATION_ID, name="Dana Demo", plan="basic"))
        else:
            logger.info(f"Dev organization already exists: {organization.name}")

        user = await session.get(User, DEV_USER_ID)
        if user is None:
            logger.info(f"Creating dev user {DEV_USER_ID}")
            session.add(User(id=DEV_USER_ID, email="dev@example.com", first_name="Dev"))

        # Flush so the membership FK sees the organization row
        await session.flush()

        result = await session.execute(
            select(OrganizationMember).where(
                OrganizationMember.user_id == DEV_USER_ID,
                OrganizationMember.organization_id == DEV_ORGANIZATION_ID,
            )
        )
        if result.scalar_one_or_none() is None:
            session.add(
                OrganizationMember(
                    user_id=DEV_USER_ID,
                    organization_id=DEV_ORGANIZATION_ID,
                    role=Role.owner.value,
                    invite_status="accepted",
                    is_default=True,
                )
            )

        await session.commit()
        logger.info("Dev seeding complete")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed_dev_organization())
