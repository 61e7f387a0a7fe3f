"""
Repository tests against an in-memory SQLite database.

The assignment and availability stored procedures only exist in
PostgreSQL; here they exercise the error path.
"""

from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from api.services.datastore import DatastoreError, SqlDatastore
from db import NotificationCategory, NotificationPriority, UserProfile
from repositories import (
    NotificationRepository,
    OfficerRepository,
    UserProfileRepository,
)
from repositories.case_assignment_repository import decode_procedure_result
from tests.factories import make_notification, make_officer


async def _add(db, *objects):
    for obj in objects:
        db.add(obj)
    await db.commit()
    return objects


class TestOfficerRepository:

    @pytest.mark.asyncio
    async def test_find_by_id(self, db_session):
        officer, = await _add(db_session, make_officer())

        found = await OfficerRepository.find_by_id(db_session, officer.id)

        assert found is not None
        assert found.firebase_uid == "officer-uid-042"
        assert await OfficerRepository.find_by_id(db_session, uuid4()) is None

    @pytest.mark.asyncio
    async def test_delete_officer(self, db_session):
        officer, = await _add(db_session, make_officer())

        assert await OfficerRepository.delete_officer(db_session, officer.id) == 1
        assert await OfficerRepository.delete_officer(db_session, officer.id) == 0
        assert await OfficerRepository.find_by_id(db_session, officer.id) is None


class TestNotificationRepository:

    @pytest.mark.asyncio
    async def test_find_unread_newest_first(self, db_session):
        now = datetime(2025, 3, 1, 12, 0, 0)
        old = make_notification("officer-1", created_at=now - timedelta(hours=2))
        new = make_notification("officer-1", created_at=now)
        read = make_notification("officer-1", is_read=True, created_at=now)
        other = make_notification("officer-2", created_at=now)
        await _add(db_session, old, new, read, other)

        unread = await NotificationRepository.find_unread(db_session, "officer-1")

        assert [n.id for n in unread] == [new.id, old.id]

    @pytest.mark.asyncio
    async def test_find_unread_limit(self, db_session):
        await _add(db_session, *[make_notification("officer-1") for _ in range(5)])

        unread = await NotificationRepository.find_unread(db_session, "officer-1", limit=3)

        assert len(unread) == 3

    @pytest.mark.asyncio
    async def test_create_notification(self, db_session):
        record = await NotificationRepository.create_notification(
            db_session,
            user_id="citizen-uid-7",
            title="Case Resolved!",
            message="Great news!",
            additional_data={"new_status": "Resolved"},
        )

        assert record.id is not None
        assert record.is_read is False
        assert record.notification_category == NotificationCategory.COMPLAINT_STATUS.value
        stored = await NotificationRepository.find_by_id(db_session, record.id)
        assert stored.additional_data == {"new_status": "Resolved"}

    @pytest.mark.asyncio
    async def test_mark_as_read(self, db_session):
        record, = await _add(db_session, make_notification("officer-1"))

        assert await NotificationRepository.mark_as_read(db_session, record.id) == 1
        await db_session.refresh(record)

        assert record.is_read is True
        assert record.read_at is not None

    @pytest.mark.asyncio
    async def test_mark_all_as_read_scoped_to_user(self, db_session):
        await _add(
            db_session,
            make_notification("officer-1"),
            make_notification("officer-1"),
            make_notification("officer-1", is_read=True),
            make_notification("officer-2"),
        )

        assert await NotificationRepository.mark_all_as_read(db_session, "officer-1") == 2
        assert await NotificationRepository.find_unread(db_session, "officer-1") == []
        assert len(await NotificationRepository.find_unread(db_session, "officer-2")) == 1

    @pytest.mark.asyncio
    async def test_find_for_user_filters(self, db_session):
        await _add(
            db_session,
            make_notification("officer-1", notification_category="officer_assignment"),
            make_notification("officer-1", is_read=True),
            make_notification("officer-1"),
        )

        assigned = await NotificationRepository.find_for_user(
            db_session, "officer-1", category="officer_assignment"
        )
        read = await NotificationRepository.find_for_user(db_session, "officer-1", is_read=True)

        assert len(assigned) == 1
        assert len(read) == 1

    @pytest.mark.asyncio
    async def test_stats(self, db_session):
        now = datetime(2025, 3, 1, 15, 0, 0)
        await _add(
            db_session,
            make_notification("officer-1", priority=NotificationPriority.URGENT.value, created_at=now),
            make_notification("officer-1", is_read=True, created_at=now - timedelta(days=2)),
            make_notification("officer-1", created_at=now - timedelta(hours=1)),
        )

        stats = await NotificationRepository.get_stats(db_session, "officer-1", now=now)

        assert stats["total_notifications"] == 3
        assert stats["unread_notifications"] == 2
        assert stats["urgent_notifications"] == 1
        assert stats["notifications_today"] == 2
        assert stats["by_priority"]["urgent"] == 1
        assert stats["by_category"]["complaint_status"] == 3


class TestUserProfileRepository:

    @pytest.mark.asyncio
    async def test_get_and_clear_device_token(self, db_session):
        await _add(db_session, UserProfile(id=uuid4(), firebase_uid="citizen-uid-7", fcm_token="tok-1"))

        assert await UserProfileRepository.get_device_token(db_session, "citizen-uid-7") == "tok-1"
        assert await UserProfileRepository.clear_device_token(db_session, "citizen-uid-7") == 1
        assert await UserProfileRepository.get_device_token(db_session, "citizen-uid-7") is None

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        assert await UserProfileRepository.get_device_token(db_session, "nobody") is None


class TestDecodeProcedureResult:

    def test_json_string(self):
        assert decode_procedure_result('{"success": true, "assignment_id": "a-1"}') == {
            "success": True,
            "assignment_id": "a-1",
        }

    def test_dict_and_none(self):
        assert decode_procedure_result({"success": False}) == {"success": False}
        assert decode_procedure_result(None) == {}

    def test_non_object(self):
        with pytest.raises(ValueError):
            decode_procedure_result("[1, 2]")


class TestSqlDatastore:

    @pytest.mark.asyncio
    async def test_get_officer_accepts_string_ids(self, db_session):
        officer, = await _add(db_session, make_officer())
        datastore = SqlDatastore(db_session)

        found = await datastore.get_officer(str(officer.id))

        assert found.badge_number == "PNP-0042"
        assert await datastore.get_officer("not-a-uuid") is None

    @pytest.mark.asyncio
    async def test_delete_missing_officer(self, db_session):
        datastore = SqlDatastore(db_session)

        with pytest.raises(DatastoreError) as exc_info:
            await datastore.delete_officer(str(uuid4()))

        assert exc_info.value.code == "NO_ROWS"

    @pytest.mark.asyncio
    async def test_assign_without_procedure(self, db_session):
        datastore = SqlDatastore(db_session)

        with pytest.raises(DatastoreError) as exc_info:
            await datastore.assign_case("c-1", "o-1", "a-1", "reason")

        assert "Assign case failed" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_notification_round(self, db_session):
        datastore = SqlDatastore(db_session)
        record = await datastore.create_notification(
            user_id="officer-1", title="Case Status Updated", message="Changed"
        )

        assert [n.id for n in await datastore.fetch_unread("officer-1", 100)] == [record.id]
        assert await datastore.mark_read(record.id) is True
        assert await datastore.fetch_unread("officer-1", 100) == []

    @pytest.mark.asyncio
    async def test_list_notifications_pages(self, db_session):
        now = datetime(2025, 3, 1, 12, 0, 0)
        await _add(
            db_session,
            *[
                make_notification("officer-1", created_at=now - timedelta(minutes=i))
                for i in range(5)
            ],
        )
        datastore = SqlDatastore(db_session)

        first = await datastore.list_notifications("officer-1", limit=2)
        second = await datastore.list_notifications("officer-1", limit=2, offset=2)

        assert len(first) == 2
        assert len(second) == 2
        assert first[0].created_at > first[1].created_at > second[0].created_at
        assert await datastore.list_notifications("officer-1", is_read=True) == []
