"""
Notification Repository for database operations.

All queries are scoped by recipient (user_id) and the read flag.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.decorators import critical_database_operation, log_database_operation
from db import Notification, NotificationCategory, NotificationPriority, utc_now
from repositories.base_repository import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    """Repository for Notification database operations."""

    model = Notification

    @classmethod
    @log_database_operation("fetch unread notifications")
    async def find_unread(
        cls, db: AsyncSession, user_id: str, limit: int = 100
    ) -> List[Notification]:
        """Unread notifications for one recipient, newest first."""
        stmt = (
            select(Notification)
            .where(
                and_(
                    Notification.user_id == user_id,
                    Notification.is_read == False,  # noqa: E712
                )
            )
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @classmethod
    @log_database_operation("list notifications")
    async def find_for_user(
        cls,
        db: AsyncSession,
        user_id: str,
        *,
        is_read: Optional[bool] = None,
        category: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Notification]:
        """Notifications for one recipient with optional filters."""
        stmt = select(Notification).where(Notification.user_id == user_id)
        if is_read is not None:
            stmt = stmt.where(Notification.is_read == is_read)
        if category:
            stmt = stmt.where(Notification.notification_category == category)
        stmt = stmt.order_by(Notification.created_at.desc()).offset(offset).limit(limit)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @classmethod
    @critical_database_operation("create notification")
    async def create_notification(cls, db: AsyncSession, **fields: Any) -> Notification:
        """Insert a notification and commit so it is durable before push delivery."""
        try:
            return await cls.create(db, obj_in=fields, commit=True)
        except Exception:
            await db.rollback()
            raise

    @classmethod
    @critical_database_operation("mark notification as read")
    async def mark_as_read(cls, db: AsyncSession, notification_id: UUID) -> int:
        """Set is_read/read_at on one notification. Returns rows updated."""
        stmt = (
            update(Notification)
            .where(Notification.id == notification_id)
            .values(is_read=True, read_at=utc_now())
        )
        result = await db.execute(stmt)
        await db.commit()
        return result.rowcount or 0

    @classmethod
    @critical_database_operation("mark all notifications as read")
    async def mark_all_as_read(cls, db: AsyncSession, user_id: str) -> int:
        """Bulk read-state transition for every unread notification of one recipient."""
        stmt = (
            update(Notification)
            .where(
                and_(
                    Notification.user_id == user_id,
                    Notification.is_read == False,  # noqa: E712
                )
            )
            .values(is_read=True, read_at=utc_now())
        )
        result = await db.execute(stmt)
        await db.commit()
        return result.rowcount or 0

    @classmethod
    async def get_stats(
        cls, db: AsyncSession, user_id: str, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Totals for the notifications view: unread, urgent, today, by category/priority."""
        notifications = await cls.find_all(db, filters={"user_id": user_id})
        now = now or utc_now()
        today_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        today_end = today_start + timedelta(days=1)

        unread = [n for n in notifications if not n.is_read]
        return {
            "total_notifications": len(notifications),
            "unread_notifications": len(unread),
            "urgent_notifications": sum(
                1 for n in unread if n.priority == NotificationPriority.URGENT.value
            ),
            "notifications_today": sum(
                1 for n in notifications if today_start <= n.created_at < today_end
            ),
            "by_category": {
                category.value: sum(
                    1 for n in notifications if n.notification_category == category.value
                )
                for category in NotificationCategory
            },
            "by_priority": {
                priority.value: sum(1 for n in notifications if n.priority == priority.value)
                for priority in NotificationPriority
            },
        }
