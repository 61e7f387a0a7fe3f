"""
Datastore collaborator.

The coordination services never touch SQLAlchemy directly: they talk to
a Datastore, whose SQL implementation delegates to the repositories and
converts driver failures into DatastoreError carrying the SQLSTATE code.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.decorators import DatabaseErrorHandler
from db import Notification, Officer
from repositories import (
    CaseAssignmentRepository,
    NotificationRepository,
    OfficerRepository,
    UserProfileRepository,
)

logger = logging.getLogger(__name__)


def _as_uuid(value: Any) -> Optional[UUID]:
    """Parse an officer id; malformed ids cannot match any row."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class DatastoreError(Exception):
    """A datastore call failed structurally (network, permission, constraint)."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code

    @classmethod
    def from_exception(cls, exc: Exception, operation: str) -> "DatastoreError":
        code = DatabaseErrorHandler.error_code(exc)
        orig = getattr(exc, "orig", None)
        detail = str(orig) if orig is not None else str(exc)
        return cls(f"{operation} failed: {detail}", code=code)


class NotificationStore(Protocol):
    """Notification record access scoped by recipient and read flag."""

    async def fetch_unread(self, officer_id: str, limit: int) -> List[Notification]: ...

    async def mark_read(self, notification_id: UUID) -> bool: ...

    async def mark_all_read(self, officer_id: str) -> bool: ...


class Datastore(NotificationStore, Protocol):
    """Everything the coordinator and push dispatcher need from the store of record."""

    async def get_officer(self, officer_id: UUID) -> Optional[Officer]: ...

    async def delete_officer(self, officer_id: UUID) -> None: ...

    async def assign_case(
        self, complaint_id: str, officer_id: str, admin_id: str, reason: str
    ) -> Dict[str, Any]: ...

    async def get_available_officers(
        self, unit_id: Optional[str], crime_type: Optional[str]
    ) -> List[Dict[str, Any]]: ...

    async def create_notification(self, **fields: Any) -> Notification: ...

    async def get_device_token(self, user_id: str) -> Optional[str]: ...

    async def clear_device_token(self, user_id: str) -> None: ...


class SqlDatastore:
    """Datastore backed by one AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.db = session

    async def get_officer(self, officer_id: UUID) -> Optional[Officer]:
        key = _as_uuid(officer_id)
        if key is None:
            return None
        try:
            return await OfficerRepository.find_by_id(self.db, key)
        except SQLAlchemyError as e:
            raise DatastoreError.from_exception(e, "Fetch officer") from e

    async def delete_officer(self, officer_id: UUID) -> None:
        key = _as_uuid(officer_id)
        if key is None:
            raise DatastoreError(f"Officer {officer_id} was not deleted", code="NO_ROWS")
        try:
            deleted = await OfficerRepository.delete_officer(self.db, key)
        except SQLAlchemyError as e:
            raise DatastoreError.from_exception(e, "Delete officer") from e
        if not deleted:
            raise DatastoreError(f"Officer {officer_id} was not deleted", code="NO_ROWS")

    async def assign_case(
        self, complaint_id: str, officer_id: str, admin_id: str, reason: str
    ) -> Dict[str, Any]:
        try:
            return await CaseAssignmentRepository.assign_case_to_officer(
                self.db, complaint_id, officer_id, admin_id, reason
            )
        except SQLAlchemyError as e:
            raise DatastoreError.from_exception(e, "Assign case") from e
        except ValueError as e:
            raise DatastoreError(f"Assign case returned malformed result: {e}", code="BAD_RESULT") from e

    async def get_available_officers(
        self, unit_id: Optional[str], crime_type: Optional[str]
    ) -> List[Dict[str, Any]]:
        try:
            return await OfficerRepository.get_available_for_assignment(
                self.db, unit_id, crime_type
            )
        except SQLAlchemyError as e:
            raise DatastoreError.from_exception(e, "Load available officers") from e

    async def create_notification(self, **fields: Any) -> Notification:
        try:
            return await NotificationRepository.create_notification(self.db, **fields)
        except SQLAlchemyError as e:
            raise DatastoreError.from_exception(e, "Create notification") from e

    async def get_device_token(self, user_id: str) -> Optional[str]:
        try:
            return await UserProfileRepository.get_device_token(self.db, user_id)
        except SQLAlchemyError as e:
            raise DatastoreError.from_exception(e, "Resolve device token") from e

    async def clear_device_token(self, user_id: str) -> None:
        try:
            await UserProfileRepository.clear_device_token(self.db, user_id)
        except SQLAlchemyError as e:
            raise DatastoreError.from_exception(e, "Clear device token") from e

    async def fetch_unread(self, officer_id: str, limit: int) -> List[Notification]:
        try:
            return await NotificationRepository.find_unread(self.db, officer_id, limit=limit)
        except SQLAlchemyError as e:
            raise DatastoreError.from_exception(e, "Fetch unread notifications") from e

    async def list_notifications(
        self,
        officer_id: str,
        *,
        is_read: Optional[bool] = None,
        category: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Notification]:
        try:
            return await NotificationRepository.find_for_user(
                self.db,
                officer_id,
                is_read=is_read,
                category=category,
                limit=limit,
                offset=offset,
            )
        except SQLAlchemyError as e:
            raise DatastoreError.from_exception(e, "List notifications") from e

    async def mark_read(self, notification_id: UUID) -> bool:
        try:
            await NotificationRepository.mark_as_read(self.db, notification_id)
        except SQLAlchemyError as e:
            raise DatastoreError.from_exception(e, "Mark notification read") from e
        return True

    async def mark_all_read(self, officer_id: str) -> bool:
        try:
            await NotificationRepository.mark_all_as_read(self.db, officer_id)
        except SQLAlchemyError as e:
            raise DatastoreError.from_exception(e, "Mark all notifications read") from e
        return True

    async def get_notification_stats(self, officer_id: str) -> Dict[str, Any]:
        try:
            return await NotificationRepository.get_stats(self.db, officer_id)
        except SQLAlchemyError as e:
            raise DatastoreError.from_exception(e, "Load notification stats") from e
