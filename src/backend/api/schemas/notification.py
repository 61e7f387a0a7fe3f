"""
Notification schemas for the unread-count endpoints.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from core.schema_base import HTTPSchemaModel


class NotificationRead(HTTPSchemaModel):
    """Notification record as returned to the officer console."""
    id: UUID
    user_id: str
    title: str
    message: str
    type: str
    priority: str
    notification_category: str
    case_number: Optional[str] = None
    related_complaint_id: Optional[UUID] = None
    sender_name: Optional[str] = None
    additional_data: Dict[str, Any] = {}
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime


class UnreadNotificationsResponse(HTTPSchemaModel):
    notifications: List[NotificationRead]
    count: int


class NotificationListResponse(HTTPSchemaModel):
    notifications: List[NotificationRead]
    count: int
    limit: int
    offset: int


class MarkAllReadRequest(HTTPSchemaModel):
    officer_id: Optional[str] = None


class SuccessResponse(HTTPSchemaModel):
    success: bool


class NotificationStats(HTTPSchemaModel):
    total_notifications: int
    unread_notifications: int
    urgent_notifications: int
    notifications_today: int
    by_category: Dict[str, int]
    by_priority: Dict[str, int]
