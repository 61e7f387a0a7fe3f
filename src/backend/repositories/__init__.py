"""
Repository layer for database operations.

This package contains all data access logic isolated from business logic.
Each repository handles queries for a specific entity.
"""

from repositories.base_repository import BaseRepository
from repositories.case_assignment_repository import CaseAssignmentRepository
from repositories.notification_repository import NotificationRepository
from repositories.officer_repository import OfficerRepository
from repositories.user_profile_repository import UserProfileRepository

__all__ = [
    "BaseRepository",
    "CaseAssignmentRepository",
    "NotificationRepository",
    "OfficerRepository",
    "UserProfileRepository",
]
