"""
Database models using SQLModel.

Only the tables the coordination core reads or writes are modelled here:
officer profiles, user profiles (device tokens) and in-app notifications.
Case/complaint records are owned by the assign_case_to_officer stored
procedure and are never touched directly.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Index,
    String,
    Text,
)
from sqlmodel import Field, SQLModel

from .enums import NotificationCategory, NotificationPriority, NotificationType


def utc_now() -> datetime:
    """
    Get current time in UTC (timezone-naive) for database storage.

    The API layer serializes these values with a 'Z' suffix so clients can
    convert to local time.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TableModel(SQLModel):
    """Base table model with common functionality."""

    pass


class Officer(TableModel, table=True):
    """PNP officer profile.

    firebase_uid is absent when the officer was never provisioned in the
    identity provider.
    """

    __tablename__ = "pnp_officer_profiles"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    full_name: str = Field(sa_column=Column(String(200), nullable=False))
    badge_number: str = Field(sa_column=Column(String(50), nullable=False, unique=True))
    email: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))
    firebase_uid: Optional[str] = Field(
        default=None,
        sa_column=Column(String(128), nullable=True, unique=True),
        description="Identity provider UID (nullable: never provisioned)",
    )
    unit_id: Optional[UUID] = Field(default=None, description="PNP unit the officer belongs to")
    rank: Optional[str] = Field(default=None, sa_column=Column(String(50), nullable=True))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime, nullable=False, default=utc_now),
    )


class UserProfile(TableModel, table=True):
    """Identity-linked profile carrying the registered push device token."""

    __tablename__ = "user_profiles"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    firebase_uid: str = Field(sa_column=Column(String(128), nullable=False, unique=True))
    fcm_token: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
        description="Registered device token (null when none or invalidated)",
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now),
    )


class Notification(TableModel, table=True):
    """In-app notification record scoped to one recipient.

    Mutated only by read-state transitions; retained indefinitely.
    """

    __tablename__ = "notifications"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: str = Field(
        sa_column=Column(String(128), nullable=False),
        description="Recipient (officer id or identity UID)",
    )
    title: str = Field(sa_column=Column(String(200), nullable=False))
    message: str = Field(sa_column=Column(Text, nullable=False))
    type: str = Field(
        default=NotificationType.CASE_UPDATE.value,
        sa_column=Column(String(50), nullable=False),
    )
    priority: str = Field(
        default=NotificationPriority.NORMAL.value,
        sa_column=Column(String(20), nullable=False),
    )
    notification_category: str = Field(
        default=NotificationCategory.COMPLAINT_STATUS.value,
        sa_column=Column(String(50), nullable=False),
    )
    case_number: Optional[str] = Field(default=None, sa_column=Column(String(50), nullable=True))
    related_complaint_id: Optional[UUID] = Field(default=None)
    sender_name: Optional[str] = Field(default=None, sa_column=Column(String(200), nullable=True))
    additional_data: dict = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False, default=dict),
    )
    is_read: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, default=False),
    )
    read_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime, nullable=False, default=utc_now),
    )

    __table_args__ = (
        # Unread badge lookups: user + read flag
        Index("ix_notifications_user_unread", "user_id", "is_read"),
        Index("ix_notifications_created_at", "created_at"),
    )
