"""
Model enums for database models.

Stored as plain strings in the tables so the mobile app and the web
console can share the same values.
"""
from enum import Enum


class NotificationType(str, Enum):
    """Notification type shown as the icon/kind in the dropdown."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"
    CASE_ASSIGNMENT = "case_assignment"
    CASE_UPDATE = "case_update"
    CASE_SUBMITTED = "case_submitted"


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class NotificationCategory(str, Enum):
    COMPLAINT_STATUS = "complaint_status"
    OFFICER_ASSIGNMENT = "officer_assignment"


class CaseStatus(str, Enum):
    """Complaint statuses that select a push message template."""
    PENDING = "Pending"
    UNDER_INVESTIGATION = "Under Investigation"
    REQUIRES_MORE_INFO = "Requires More Info"
    RESOLVED = "Resolved"
    DISMISSED = "Dismissed"
