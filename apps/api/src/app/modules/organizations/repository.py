"""
Organization Repository
"""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.organizations.models import Organization, OrganizationType

logger = logging.getLogger(__name__)


class OrganizationRepository:
    """Repository for organization database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        name: str,
        type: OrganizationType,
        description: str | None = None,
        website: str | None = None,
        contact_email: str | None = None,
    ) -> Organization:
        """Create an organization. The caller commits."""
        organization = Organization(
            name=name,
            type=type,
            description=description,
            website=website,
            contact_email=contact_email,
        )
        db.add(organization)
        await db.flush()
        await db.refresh(organization)

        logger.info(f"Created organization: {organization.id} - {organization.name}")
        return organization

    @staticmethod
    async def count_all(db: AsyncSession) -> int:
        result = await db.execute(select(func.count(Organization.id)))
        return result.scalar() or 0

    @staticmethod
    async def count_by_type(db: AsyncSession) -> dict[str, int]:
        """Return ``{type: count}`` for every organization type present."""
        result = await db.execute(
            select(Organization.type, func.count(Organization.id)).group_by(Organization.type)
        )
        return {org_type.value: count for org_type, count in result.all()}
