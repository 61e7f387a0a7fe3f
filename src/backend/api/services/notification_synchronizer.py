"""
Per-session unread notification tracking.

A NotificationSynchronizer keeps one officer session's unread count in
step with the datastore by combining a fixed-interval poll, optimistic
local mark-as-read edits and reconciliation of each fetch result.

Every fetch and every optimistic edit takes a tick from one logical
clock. A fetch result is applied only if no later-started fetch has
already been applied, and the edits issued after that fetch began are
replayed on top of it. A slow response therefore never overwrites a
newer count.
"""

import asyncio
import inspect
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, FrozenSet, List, Optional, Set, Union

from api.services.datastore import NotificationStore
from core.metrics import track_notification_poll

logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class UnreadSnapshot:
    """Client-local view of one officer's unread notifications."""

    count: int
    unread_ids: FrozenSet[str] = field(default_factory=frozenset)
    state: SyncState = SyncState.LOADING
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "type": "unread_count",
            "count": self.count,
            "state": self.state.value,
            "error": self.error,
        }


@dataclass(frozen=True)
class _Edit:
    tick: int
    notification_id: Optional[str]  # None marks everything read


ChangeCallback = Callable[[UnreadSnapshot], Union[Awaitable[None], None]]


class NotificationSynchronizer:
    """
    Unread-count synchronizer for one officer session.

    Args:
        store: Notification store collaborator
        officer_id: Officer whose notifications are tracked (None forces count 0)
        poll_interval: Seconds between unconditional refreshes
        fetch_limit: Maximum unread records fetched per poll
        on_change: Called (sync or async) with the new snapshot after every change
    """

    def __init__(
        self,
        store: NotificationStore,
        officer_id: Optional[str] = None,
        poll_interval: float = 30.0,
        fetch_limit: int = 100,
        on_change: Optional[ChangeCallback] = None,
    ):
        self.store = store
        self.poll_interval = poll_interval
        self.fetch_limit = fetch_limit
        self.on_change = on_change

        self._officer_id = officer_id
        self._clock = itertools.count(1)
        self._floor_tick = 0          # fetches started before this belong to a previous officer
        self._applied_tick = 0        # start tick of the most recently applied fetch
        self._latest_started = 0
        self._edits: List[_Edit] = []
        self._count = 0
        self._unread: Set[str] = set()
        self._state = SyncState.LOADING if officer_id else SyncState.READY
        self._error: Optional[str] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()
        self._stopped = False

    # ==================== State ====================

    @property
    def officer_id(self) -> Optional[str]:
        return self._officer_id

    @property
    def snapshot(self) -> UnreadSnapshot:
        return UnreadSnapshot(
            count=self._count,
            unread_ids=frozenset(self._unread),
            state=self._state,
            error=self._error,
        )

    @property
    def unread_count(self) -> int:
        return self._count

    @property
    def state(self) -> SyncState:
        return self._state

    async def _emit(self) -> None:
        if self.on_change is None or self._stopped:
            return
        try:
            result = self.on_change(self.snapshot)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning(f"Unread snapshot listener failed: {e}")

    # ==================== Lifecycle ====================

    async def start(self) -> None:
        """Run the initial fetch and schedule the poll timer."""
        self._stopped = False
        await self.refresh()
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.create_task(self._poll_loop())

    async def _poll_loop(self) -> None:
        while not self._stopped:
            await asyncio.sleep(self.poll_interval)
            if self._stopped:
                break
            # Fire without awaiting so a slow fetch never delays the next tick
            task = asyncio.create_task(self._poll_refresh())
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

    async def _poll_refresh(self) -> None:
        if not self._stopped:
            await self.refresh()

    async def stop(self) -> None:
        """
        Cancel the poll timer.

        In-flight fetches are left to finish; their results are discarded.
        """
        self._stopped = True
        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None

    async def set_officer(self, officer_id: Optional[str]) -> None:
        """Switch the tracked officer, discarding results and edits for the previous one."""
        self._officer_id = officer_id
        self._floor_tick = next(self._clock)
        self._applied_tick = self._floor_tick
        self._edits.clear()
        self._unread.clear()
        self._count = 0
        self._error = None
        if officer_id is None:
            self._state = SyncState.READY
            await self._emit()
            return
        await self.refresh()

    # ==================== Fetch & reconcile ====================

    async def refresh(self) -> UnreadSnapshot:
        """
        Fetch unread notifications and reconcile them into the snapshot.

        Never raises for store failures; the snapshot moves to ERROR and the
        next poll retries.
        """
        officer_id = self._officer_id
        if officer_id is None:
            self._count = 0
            self._unread.clear()
            self._state = SyncState.READY
            await self._emit()
            return self.snapshot

        tick = next(self._clock)
        self._latest_started = tick
        self._state = SyncState.LOADING
        await self._emit()

        try:
            records = await self.store.fetch_unread(officer_id, self.fetch_limit)
        except Exception as e:
            # A newer fetch is still in flight and will decide the state
            if self._is_stale(tick) or tick < self._latest_started:
                track_notification_poll("stale")
                return self.snapshot
            logger.warning(f"Unread fetch for officer {officer_id} failed: {e}")
            track_notification_poll("error")
            self._state = SyncState.ERROR
            self._error = str(e)
            await self._emit()
            return self.snapshot

        if self._is_stale(tick):
            logger.debug(f"Discarding stale unread fetch {tick} for officer {officer_id}")
            track_notification_poll("stale")
            return self.snapshot

        self._apply(tick, [str(record.id) for record in records])
        track_notification_poll("applied")
        await self._emit()
        return self.snapshot

    def _is_stale(self, tick: int) -> bool:
        return self._stopped or tick < self._floor_tick or tick < self._applied_tick

    def _apply(self, tick: int, unread_ids: List[str]) -> None:
        unread = set(unread_ids)
        later_edits = [edit for edit in self._edits if edit.tick > tick]
        for edit in later_edits:
            if edit.notification_id is None:
                unread.clear()
            else:
                unread.discard(edit.notification_id)

        self._applied_tick = tick
        self._edits = later_edits
        self._unread = unread
        self._count = len(unread)
        if tick >= self._latest_started:
            self._state = SyncState.READY
            self._error = None

    # ==================== Optimistic mutations ====================

    async def mark_as_read(self, notification_id: Any) -> bool:
        """
        Optimistically decrement the count (floored at 0), then mark remotely.

        Returns:
            Whether the remote mutation succeeded. A failure is not rolled
            back; the next poll reconciles.
        """
        if self._officer_id is None:
            return False

        key = str(notification_id)
        self._edits.append(_Edit(tick=next(self._clock), notification_id=key))
        self._unread.discard(key)
        self._count = max(0, self._count - 1)
        await self._emit()

        try:
            return bool(await self.store.mark_read(notification_id))
        except Exception as e:
            logger.warning(f"Failed to mark notification {key} as read: {e}")
            return False

    async def mark_all_as_read(self) -> bool:
        """Optimistically zero the count, then issue one bulk remote mutation."""
        officer_id = self._officer_id
        if officer_id is None:
            return False

        self._edits.append(_Edit(tick=next(self._clock), notification_id=None))
        self._unread.clear()
        self._count = 0
        await self._emit()

        try:
            return bool(await self.store.mark_all_read(officer_id))
        except Exception as e:
            logger.warning(f"Failed to mark all notifications read for officer {officer_id}: {e}")
            return False
