"""
User Profile Repository for device token lookups.
"""

from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.decorators import critical_database_operation
from db import UserProfile, utc_now
from repositories.base_repository import BaseRepository


class UserProfileRepository(BaseRepository[UserProfile]):
    """Repository for UserProfile database operations."""

    model = UserProfile

    @classmethod
    @critical_database_operation("get device token")
    async def get_device_token(cls, db: AsyncSession, firebase_uid: str) -> Optional[str]:
        """Registered push token for an identity UID, or None."""
        stmt = select(UserProfile.fcm_token).where(UserProfile.firebase_uid == firebase_uid)
        result = await db.execute(stmt)
        token = result.scalar_one_or_none()
        return token or None

    @classmethod
    @critical_database_operation("clear device token")
    async def clear_device_token(cls, db: AsyncSession, firebase_uid: str) -> int:
        """Forget a token the push provider reported as unregistered."""
        stmt = (
            update(UserProfile)
            .where(UserProfile.firebase_uid == firebase_uid)
            .values(fcm_token=None, updated_at=utc_now())
        )
        result = await db.execute(stmt)
        await db.commit()
        return result.rowcount or 0
