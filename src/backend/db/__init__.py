"""
Database models and enums.
"""
from .models import (
    Notification,
    Officer,
    TableModel,
    UserProfile,
    utc_now,
)
from .enums import (
    CaseStatus,
    NotificationCategory,
    NotificationPriority,
    NotificationType,
)

__all__ = [
    "Notification",
    "Officer",
    "TableModel",
    "UserProfile",
    "utc_now",
    "CaseStatus",
    "NotificationCategory",
    "NotificationPriority",
    "NotificationType",
]
