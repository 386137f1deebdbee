"""
User Repository

Database operations for users.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        name: str,
        role: UserRole = UserRole.STUDENT,
        phone: str | None = None,
        is_active: bool = True,
    ) -> User:
        """
        Create a new user record.

        The caller owns the transaction; this only flushes.
        """
        user = User(
            email=email,
            name=name,
            role=role,
            phone=phone,
            is_active=is_active,
        )

        db.add(user)
        await db.flush()
        await db.refresh(user)

        logger.info(f"Created user: {user.id} ({user.role.value})")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str | UUID) -> User | None:
        """Get a user by ID."""
        return await db.get(User, UUID(str(user_id)))

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Get a user by email address."""
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    # ============================================
    # Aggregates for the statistics module
    # ============================================

    @staticmethod
    async def count_all(db: AsyncSession) -> int:
        result = await db.execute(select(func.count(User.id)))
        return result.scalar() or 0

    @staticmethod
    async def count_by_role(db: AsyncSession) -> dict[str, int]:
        """Return ``{role: count}`` for every role present."""
        result = await db.execute(select(User.role, func.count(User.id)).group_by(User.role))
        return {role.value: count for role, count in result.all()}

    @staticmethod
    async def count_created_since(db: AsyncSession, since: datetime) -> int:
        result = await db.execute(select(func.count(User.id)).where(User.created_at >= since))
        return result.scalar() or 0

    @staticmethod
    async def get_recent(db: AsyncSession, limit: int = 5) -> list[User]:
        """Most recently registered users."""
        result = await db.execute(select(User).order_by(User.created_at.desc()).limit(limit))
        return list(result.scalars().all())
