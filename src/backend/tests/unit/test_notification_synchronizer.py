"""
Unit tests for the notification synchronizer.

Tests:
- Fetch and reconcile, forced zero without an officer
- Optimistic mark-as-read / mark-all-as-read without rollback
- Stale fetch results never overwrite newer state
- Edits issued after a fetch began are replayed onto its result
- Errors are not sticky; the poll timer keeps firing
"""

import asyncio
from typing import List

import pytest

from api.services.datastore import DatastoreError
from api.services.notification_synchronizer import NotificationSynchronizer, SyncState
from tests.factories import FakeDatastore, make_notification

OFFICER = "officer-1"


class GatedStore:
    """Notification store whose fetches complete only when released."""

    def __init__(self):
        self.pending: List[dict] = []
        self.marked: List[str] = []

    async def fetch_unread(self, officer_id, limit):
        slot = {"gate": asyncio.Event(), "result": []}
        self.pending.append(slot)
        await slot["gate"].wait()
        if isinstance(slot["result"], Exception):
            raise slot["result"]
        return slot["result"]

    def release(self, index, result):
        self.pending[index]["result"] = result
        self.pending[index]["gate"].set()

    async def mark_read(self, notification_id):
        self.marked.append(str(notification_id))
        return True

    async def mark_all_read(self, officer_id):
        self.marked.append("*")
        return True


async def _settle():
    for _ in range(3):
        await asyncio.sleep(0)


def _seed(store: FakeDatastore, count: int, officer_id: str = OFFICER):
    return [store.add_notification(make_notification(officer_id)) for _ in range(count)]


class TestFetch:

    @pytest.mark.asyncio
    async def test_refresh_counts_unread(self, fake_datastore):
        _seed(fake_datastore, 3)
        _seed(fake_datastore, 2, officer_id="someone-else")
        sync = NotificationSynchronizer(fake_datastore, OFFICER)

        snapshot = await sync.refresh()

        assert snapshot.count == 3
        assert snapshot.state == SyncState.READY
        assert len(snapshot.unread_ids) == 3

    @pytest.mark.asyncio
    async def test_fetch_limit_is_forwarded(self, fake_datastore):
        sync = NotificationSynchronizer(fake_datastore, OFFICER, fetch_limit=25)

        await sync.refresh()

        assert fake_datastore.calls == [("fetch_unread", OFFICER, 25)]

    @pytest.mark.asyncio
    async def test_no_officer_forces_zero_without_remote_call(self, fake_datastore):
        sync = NotificationSynchronizer(fake_datastore, None)

        snapshot = await sync.refresh()

        assert snapshot.count == 0
        assert snapshot.state == SyncState.READY
        assert fake_datastore.calls == []
        assert await sync.mark_as_read("n-1") is False
        assert await sync.mark_all_as_read() is False
        assert fake_datastore.calls == []

    @pytest.mark.asyncio
    async def test_set_officer_refetches_and_clears(self, fake_datastore):
        _seed(fake_datastore, 2)
        _seed(fake_datastore, 4, officer_id="officer-2")
        sync = NotificationSynchronizer(fake_datastore, OFFICER)
        await sync.refresh()

        await sync.set_officer("officer-2")
        assert sync.unread_count == 4

        await sync.set_officer(None)
        assert sync.unread_count == 0
        assert sync.state == SyncState.READY

    @pytest.mark.asyncio
    async def test_on_change_receives_loading_then_ready(self, fake_datastore):
        _seed(fake_datastore, 1)
        seen = []
        sync = NotificationSynchronizer(fake_datastore, OFFICER, on_change=seen.append)

        await sync.refresh()

        assert [s.state for s in seen] == [SyncState.LOADING, SyncState.READY]
        assert seen[-1].count == 1


class TestOptimisticMutations:

    @pytest.mark.asyncio
    async def test_mark_as_read_decrements(self, fake_datastore):
        records = _seed(fake_datastore, 2)
        sync = NotificationSynchronizer(fake_datastore, OFFICER)
        await sync.refresh()

        assert await sync.mark_as_read(records[0].id) is True
        assert sync.unread_count == 1
        assert str(records[0].id) not in sync.snapshot.unread_ids

    @pytest.mark.asyncio
    async def test_count_never_goes_negative(self, fake_datastore):
        records = _seed(fake_datastore, 1)
        sync = NotificationSynchronizer(fake_datastore, OFFICER)
        await sync.refresh()

        for _ in range(5):
            await sync.mark_as_read(records[0].id)

        assert sync.unread_count == 0

    @pytest.mark.asyncio
    async def test_failed_mark_is_not_rolled_back(self, fake_datastore):
        records = _seed(fake_datastore, 2)
        sync = NotificationSynchronizer(fake_datastore, OFFICER)
        await sync.refresh()
        fake_datastore.mark_error = DatastoreError("connection reset")

        result = await sync.mark_as_read(records[0].id)

        assert result is False
        assert sync.unread_count == 1

    @pytest.mark.asyncio
    async def test_next_poll_reconciles_failed_mark(self, fake_datastore):
        records = _seed(fake_datastore, 2)
        sync = NotificationSynchronizer(fake_datastore, OFFICER)
        await sync.refresh()
        fake_datastore.mark_error = DatastoreError("connection reset")
        await sync.mark_as_read(records[0].id)

        fake_datastore.mark_error = None
        await sync.refresh()

        assert sync.unread_count == 2

    @pytest.mark.asyncio
    async def test_mark_all_then_poll_is_empty(self, fake_datastore):
        _seed(fake_datastore, 3)
        sync = NotificationSynchronizer(fake_datastore, OFFICER)
        await sync.refresh()

        assert await sync.mark_all_as_read() is True
        assert sync.unread_count == 0

        snapshot = await sync.refresh()
        assert snapshot.count == 0
        assert snapshot.unread_ids == frozenset()

    @pytest.mark.asyncio
    async def test_failed_mark_all_keeps_zero_until_poll(self, fake_datastore):
        _seed(fake_datastore, 3)
        sync = NotificationSynchronizer(fake_datastore, OFFICER)
        await sync.refresh()
        fake_datastore.mark_error = DatastoreError("timeout")

        assert await sync.mark_all_as_read() is False
        assert sync.unread_count == 0


class TestReconciliation:

    @pytest.mark.asyncio
    async def test_stale_fetch_does_not_overwrite_newer(self):
        store = GatedStore()
        sync = NotificationSynchronizer(store, OFFICER)

        slow = asyncio.create_task(sync.refresh())
        await _settle()
        fast = asyncio.create_task(sync.refresh())
        await _settle()

        store.release(1, [make_notification(OFFICER) for _ in range(3)])
        await fast
        assert sync.unread_count == 3

        store.release(0, [make_notification(OFFICER) for _ in range(5)])
        await slow
        assert sync.unread_count == 3
        assert sync.state == SyncState.READY

    @pytest.mark.asyncio
    async def test_mark_during_fetch_is_replayed(self):
        store = GatedStore()
        sync = NotificationSynchronizer(store, OFFICER)
        first, second = make_notification(OFFICER), make_notification(OFFICER)

        fetch = asyncio.create_task(sync.refresh())
        await _settle()
        await sync.mark_as_read(first.id)

        store.release(0, [first, second])
        await fetch

        assert sync.unread_count == 1
        assert sync.snapshot.unread_ids == frozenset({str(second.id)})

    @pytest.mark.asyncio
    async def test_mark_all_during_fetch_is_replayed(self):
        store = GatedStore()
        sync = NotificationSynchronizer(store, OFFICER)

        fetch = asyncio.create_task(sync.refresh())
        await _settle()
        await sync.mark_all_as_read()

        store.release(0, [make_notification(OFFICER) for _ in range(4)])
        await fetch

        assert sync.unread_count == 0

    @pytest.mark.asyncio
    async def test_edit_before_fetch_began_is_not_replayed(self):
        store = GatedStore()
        sync = NotificationSynchronizer(store, OFFICER)
        record = make_notification(OFFICER)

        await sync.mark_as_read(record.id)
        fetch = asyncio.create_task(sync.refresh())
        await _settle()
        # The datastore still reports it unread: fetch result wins
        store.release(0, [record])
        await fetch

        assert sync.unread_count == 1

    @pytest.mark.asyncio
    async def test_fetch_for_previous_officer_is_discarded(self):
        store = GatedStore()
        sync = NotificationSynchronizer(store, OFFICER)

        old = asyncio.create_task(sync.refresh())
        await _settle()
        await sync.set_officer(None)

        store.release(0, [make_notification(OFFICER) for _ in range(2)])
        await old

        assert sync.unread_count == 0


class TestErrorsAndPolling:

    @pytest.mark.asyncio
    async def test_error_is_not_sticky(self, fake_datastore):
        _seed(fake_datastore, 2)
        sync = NotificationSynchronizer(fake_datastore, OFFICER)
        fake_datastore.fetch_error = DatastoreError("network unreachable")

        snapshot = await sync.refresh()
        assert snapshot.state == SyncState.ERROR
        assert "network unreachable" in snapshot.error

        fake_datastore.fetch_error = None
        snapshot = await sync.refresh()
        assert snapshot.state == SyncState.READY
        assert snapshot.error is None
        assert snapshot.count == 2

    @pytest.mark.asyncio
    async def test_error_keeps_last_count(self, fake_datastore):
        _seed(fake_datastore, 2)
        sync = NotificationSynchronizer(fake_datastore, OFFICER)
        await sync.refresh()
        fake_datastore.fetch_error = DatastoreError("boom")

        await sync.refresh()

        assert sync.unread_count == 2

    @pytest.mark.asyncio
    async def test_poll_timer_refetches_until_stopped(self, fake_datastore):
        sync = NotificationSynchronizer(fake_datastore, OFFICER, poll_interval=0.01)

        await sync.start()
        await asyncio.sleep(0.08)
        await sync.stop()
        polls = len(fake_datastore.calls)
        await asyncio.sleep(0.03)

        assert polls >= 3
        assert len(fake_datastore.calls) == polls

    @pytest.mark.asyncio
    async def test_poll_recovers_after_error(self, fake_datastore):
        _seed(fake_datastore, 1)
        fake_datastore.fetch_error = DatastoreError("down")
        sync = NotificationSynchronizer(fake_datastore, OFFICER, poll_interval=0.01)

        await sync.start()
        assert sync.state == SyncState.ERROR
        fake_datastore.fetch_error = None
        await asyncio.sleep(0.05)
        await sync.stop()

        assert sync.state == SyncState.READY
        assert sync.unread_count == 1

    @pytest.mark.asyncio
    async def test_result_after_stop_is_discarded(self):
        store = GatedStore()
        seen = []
        sync = NotificationSynchronizer(store, OFFICER, on_change=seen.append)

        fetch = asyncio.create_task(sync.refresh())
        await _settle()
        await sync.stop()
        emitted = len(seen)
        store.release(0, [make_notification(OFFICER)])
        await fetch

        assert sync.unread_count == 0
        assert len(seen) == emitted
