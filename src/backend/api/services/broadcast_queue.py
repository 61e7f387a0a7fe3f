"""
Ephemeral broadcast queue for transient UI messages (toasts).

One queue instance is created by the application lifespan and stored on
app.state; producers publish into it and UI surfaces subscribe to it.

Each message expires after a fixed delay unless dismissed first. Every
change notifies all listeners with the full current list, in publish
order.
"""

import asyncio
import itertools
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from core.metrics import track_toast_published

logger = logging.getLogger(__name__)


class ToastSeverity(str, Enum):
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


@dataclass(frozen=True)
class ToastMessage:
    """A transient UI message."""

    id: int
    title: str
    description: Optional[str] = None
    severity: ToastSeverity = ToastSeverity.DEFAULT
    owner: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "variant": self.severity.value,
        }


Listener = Callable[[List[ToastMessage]], None]


class BroadcastQueue:
    """
    Process-wide publish/subscribe channel with timed expiry.

    Args:
        expiry_seconds: Lifetime of each message unless dismissed earlier
        loop: Event loop used for expiry timers (defaults to the running loop
            at publish time)
    """

    def __init__(
        self,
        expiry_seconds: float = 5.0,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self.expiry_seconds = expiry_seconds
        self._loop = loop
        self._ids = itertools.count(1)
        self._messages: List[ToastMessage] = []
        self._timers: Dict[int, asyncio.TimerHandle] = {}
        self._listeners: Dict[int, Listener] = {}
        self._listener_ids = itertools.count(1)
        self._lock = threading.RLock()
        self._closed = False

    @property
    def messages(self) -> List[ToastMessage]:
        with self._lock:
            return list(self._messages)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _notify(self) -> None:
        # Called with the lock held so listeners observe changes in order
        snapshot = list(self._messages)
        for listener in list(self._listeners.values()):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Toast listener raised; continuing with remaining listeners")

    def publish(
        self,
        title: str,
        description: Optional[str] = None,
        severity: ToastSeverity = ToastSeverity.DEFAULT,
        owner: Optional[str] = None,
    ) -> ToastMessage:
        """Append a message, start its expiry timer and notify listeners."""
        if self._closed:
            raise RuntimeError("BroadcastQueue has been shut down")

        loop = self._loop or asyncio.get_running_loop()
        with self._lock:
            message = ToastMessage(
                id=next(self._ids),
                title=title,
                description=description,
                severity=ToastSeverity(severity),
                owner=owner,
            )
            self._messages.append(message)
            self._timers[message.id] = loop.call_later(
                self.expiry_seconds, self._expire, message.id
            )
            self._notify()

        track_toast_published(message.severity.value)
        logger.debug(f"Published toast {message.id}: {title}")
        return message

    def dismiss(self, message_id: int) -> bool:
        """Remove a message now. Unknown or already-removed IDs are a no-op."""
        with self._lock:
            timer = self._timers.pop(message_id, None)
            if timer is not None:
                timer.cancel()
            return self._remove(message_id)

    def _expire(self, message_id: int) -> None:
        with self._lock:
            # Timer already cancelled by dismiss
            if self._timers.pop(message_id, None) is None:
                return
            if self._remove(message_id):
                logger.debug(f"Toast {message_id} expired")

    def _remove(self, message_id: int) -> bool:
        for index, message in enumerate(self._messages):
            if message.id == message_id:
                del self._messages[index]
                self._notify()
                return True
        return False

    def dismiss_owned(self, owner: str) -> int:
        """Dismiss every message published by owner (e.g. a closed session)."""
        with self._lock:
            owned = [message.id for message in self._messages if message.owner == owner]
            for message_id in owned:
                self.dismiss(message_id)
        return len(owned)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener.

        Returns:
            An unsubscribe callable; calling it more than once is a no-op
        """
        with self._lock:
            key = next(self._listener_ids)
            self._listeners[key] = listener

        def unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(key, None)

        return unsubscribe

    def shutdown(self) -> None:
        """Cancel every pending expiry timer and drop all state."""
        with self._lock:
            self._closed = True
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
            self._messages.clear()
            self._listeners.clear()
        logger.info("Broadcast queue shut down")
