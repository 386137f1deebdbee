"""
Seed Demo Data

Creates an admin, a student, an organization and an active scholarship for
local development, then prints access tokens for both users.
Safe to run repeatedly: existing rows are reused.

Usage:
    cd apps/api
    python scripts/seed_demo_data.py
"""

import asyncio
import sys
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import select

from app.core.database import async_session_maker, close_db
from app.core.security import create_access_token
from app.models import (
    AmountType,
    Organization,
    OrganizationType,
    Scholarship,
    ScholarshipStatus,
    User,
    UserRole,
)
from app.modules.organizations.repository import OrganizationRepository
from app.modules.users.repository import UserRepository

DEMO_USERS = [
    ("admin@scholarhub.dev", "Demo Admin", UserRole.ADMIN),
    ("student@scholarhub.dev", "Demo Student", UserRole.STUDENT),
]
DEMO_ORGANIZATION = "ScholarHub Demo Foundation"
DEMO_SCHOLARSHIP = "Merit Scholarship for Engineering Students"


async def _get_or_create_user(db, email: str, name: str, role: UserRole) -> User:
    user = await UserRepository.get_by_email(db, email)
    if user:
        print(f"User already exists: {email}")
        return user

    user = await UserRepository.create(db, email=email, name=name, role=role)
    print(f"Created {role.value}: {email}")
    return user


async def seed_demo_data() -> None:
    """Create the demo rows if they don't exist."""
    async with async_session_maker() as db:
        users = [
            await _get_or_create_user(db, email, name, role) for email, name, role in DEMO_USERS
        ]

        result = await db.execute(
            select(Organization).where(Organization.name == DEMO_ORGANIZATION)
        )
        organization = result.scalar_one_or_none()
        if not organization:
            organization = await OrganizationRepository.create(
                db,
                name=DEMO_ORGANIZATION,
                type=OrganizationType.FOUNDATION,
                description="Funding for first-generation university students.",
                contact_email="grants@scholarhub.dev",
            )
            print(f"Created organization: {organization.name}")

        result = await db.execute(select(Scholarship).where(Scholarship.title == DEMO_SCHOLARSHIP))
        scholarship = result.scalar_one_or_none()
        if not scholarship:
            scholarship = Scholarship(
                title=DEMO_SCHOLARSHIP,
                description="Annual award for undergraduate engineering students.",
                organization_id=organization.id,
                amount_value=Decimal("50000.00"),
                amount_currency="INR",
                amount_type=AmountType.ANNUAL,
                application_deadline=datetime.now(UTC) + timedelta(days=60),
                status=ScholarshipStatus.ACTIVE,
                max_applications=100,
            )
            db.add(scholarship)
            await db.flush()
            print(f"Created scholarship: {scholarship.title}")

        await db.commit()

        print()
        print(f"Scholarship ID: {scholarship.id}")
        for user in users:
            token = create_access_token(
                str(user.id),
                additional_claims={
                    "email": user.email,
                    "role": user.role.value,
                    "name": user.name,
                },
            )
            print(f"{user.role.value} token: {token}")

    await close_db()


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
