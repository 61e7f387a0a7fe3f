"""
Notification store for long-lived sessions.

A WebSocket outlives any single request, so its NotificationSynchronizer
cannot hold one AsyncSession. SessionScopedNotificationStore opens a
short session per call through session_scope.
"""

from typing import List
from uuid import UUID

from api.services.datastore import SqlDatastore
from core.database import session_scope
from db import Notification


class SessionScopedNotificationStore:
    """NotificationStore that runs every call in its own transaction."""

    async def fetch_unread(self, officer_id: str, limit: int) -> List[Notification]:
        async with session_scope() as db:
            return await SqlDatastore(db).fetch_unread(officer_id, limit)

    async def mark_read(self, notification_id: UUID) -> bool:
        async with session_scope() as db:
            return await SqlDatastore(db).mark_read(notification_id)

    async def mark_all_read(self, officer_id: str) -> bool:
        async with session_scope() as db:
            return await SqlDatastore(db).mark_all_read(officer_id)


def get_session_scoped_store() -> SessionScopedNotificationStore:
    return SessionScopedNotificationStore()
