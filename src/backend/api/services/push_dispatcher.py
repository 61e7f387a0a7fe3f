"""
Push delivery dispatcher.

On a case status transition the in-app notification record is written
first; it is the durable side effect. External push delivery is then
attempted best-effort: a missing device token or any provider failure is
reported in the result, never raised.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from api.services.datastore import Datastore, DatastoreError
from api.services.mutation_coordinator import OutcomeStatus
from api.services.notification_templates import template_for_status_change
from api.services.push_provider import PushPayload, PushProvider, PushProviderError
from core.config import settings
from core.metrics import track_push_delivery
from db import NotificationCategory

logger = logging.getLogger(__name__)

NO_TOKEN = "no-token"
PUSH_DISABLED = "push-disabled"
TOKEN_LOOKUP_FAILED = "token-lookup-failed"
UNEXPECTED = "UNEXPECTED"


class DeliveryOutcome(str, Enum):
    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED_NO_TOKEN = "skipped-no-token"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class CaseStatusChange:
    """A case status transition that should reach the recipient's device."""

    user_id: str
    case_number: str
    new_status: str
    officer_name: str
    old_status: Optional[str] = None
    message: Optional[str] = None
    notification_type: str = "status_update"
    related_complaint_id: Optional[str] = None


@dataclass
class PushDeliveryAttempt:
    """Ephemeral record of one dispatch try; never persisted."""

    target: str
    token_ref: Optional[str]
    outcome: DeliveryOutcome
    latency_ms: float = 0.0
    attempts: int = 0
    skip_reason: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None


@dataclass
class PushDispatchResult:
    """
    Result of a dispatch.

    status is FAILURE only when the in-app record could not be written;
    PARTIAL means the record exists but push delivery failed.
    """

    status: OutcomeStatus
    record_created: bool
    delivered: bool
    notification_id: Optional[str] = None
    reason: Optional[str] = None
    processing_time_ms: float = 0.0
    attempt: Optional[PushDeliveryAttempt] = None
    error: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)


def mask_token(token: str) -> str:
    """Reference a device token in logs and results without exposing it."""
    if len(token) <= 8:
        return "***"
    return f"...{token[-8:]}"


class PushDispatcher:
    """
    Records and delivers case status notifications.

    Args:
        datastore: Datastore collaborator
        push: Push provider collaborator
        max_attempts: Delivery attempts for retryable provider errors
        retry_delay: Seconds between attempts
        sleep: Awaitable sleep used between attempts
    """

    def __init__(
        self,
        datastore: Datastore,
        push: PushProvider,
        max_attempts: Optional[int] = None,
        retry_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.datastore = datastore
        self.push = push
        self.max_attempts = max_attempts or settings.push.max_attempts
        self.retry_delay = settings.push.retry_delay_seconds if retry_delay is None else retry_delay
        self._sleep = sleep

    async def dispatch(self, change: CaseStatusChange) -> PushDispatchResult:
        """Write the in-app record, then attempt push delivery."""
        started = time.perf_counter()

        def elapsed() -> float:
            return round((time.perf_counter() - started) * 1000, 2)

        template = template_for_status_change(
            change.case_number,
            change.old_status,
            change.new_status,
            change.officer_name,
            change.message,
        )

        try:
            record = await self.datastore.create_notification(
                user_id=change.user_id,
                title=template.title,
                message=template.body,
                type=template.record_type,
                priority=template.priority,
                notification_category=NotificationCategory.COMPLAINT_STATUS.value,
                case_number=change.case_number,
                related_complaint_id=change.related_complaint_id,
                sender_name=change.officer_name,
                additional_data={
                    "old_status": change.old_status,
                    "new_status": change.new_status,
                    "notification_type": change.notification_type,
                },
            )
        except DatastoreError as e:
            logger.error(
                f"Failed to create notification record for case {change.case_number}: {e.message}"
            )
            latency = elapsed()
            track_push_delivery("record-failed", latency)
            return PushDispatchResult(
                status=OutcomeStatus.FAILURE,
                record_created=False,
                delivered=False,
                reason="record-failed",
                processing_time_ms=latency,
                error=e.message,
            )

        notification_id = str(record.id)
        logger.info(
            f"Notification {notification_id} recorded for case {change.case_number}: "
            f"{change.old_status or 'Unknown'} -> {change.new_status}"
        )

        if not settings.push.enabled:
            return self._skipped(change, notification_id, PUSH_DISABLED, elapsed())

        try:
            token = await self.datastore.get_device_token(change.user_id)
        except DatastoreError as e:
            logger.warning(f"Device token lookup for {change.user_id} failed: {e.message}")
            return self._skipped(change, notification_id, TOKEN_LOOKUP_FAILED, elapsed())

        if not token:
            logger.info(f"No device token registered for {change.user_id}; push skipped")
            return self._skipped(change, notification_id, NO_TOKEN, elapsed())

        payload = PushPayload(
            title=template.title,
            body=template.body,
            data={**template.data, "notification_id": notification_id},
        )
        attempt = await self._deliver(change.user_id, token, payload)
        attempt.latency_ms = elapsed()
        track_push_delivery(attempt.outcome.value, attempt.latency_ms)

        delivered = attempt.outcome == DeliveryOutcome.DELIVERED
        return PushDispatchResult(
            status=OutcomeStatus.SUCCESS if delivered else OutcomeStatus.PARTIAL,
            record_created=True,
            delivered=delivered,
            notification_id=notification_id,
            reason=None if delivered else attempt.error_code,
            processing_time_ms=attempt.latency_ms,
            attempt=attempt,
            error=attempt.error_message,
        )

    def _skipped(
        self, change: CaseStatusChange, notification_id: str, reason: str, latency: float
    ) -> PushDispatchResult:
        outcome = DeliveryOutcome.SKIPPED_NO_TOKEN if reason == NO_TOKEN else DeliveryOutcome.SKIPPED
        label = outcome.value if reason == NO_TOKEN else f"skipped-{reason}"
        track_push_delivery(label, latency)
        return PushDispatchResult(
            status=OutcomeStatus.SUCCESS,
            record_created=True,
            delivered=False,
            notification_id=notification_id,
            reason=reason,
            processing_time_ms=latency,
            attempt=PushDeliveryAttempt(
                target=change.user_id,
                token_ref=None,
                outcome=outcome,
                latency_ms=latency,
                skip_reason=reason,
            ),
        )

    async def _deliver(self, user_id: str, token: str, payload: PushPayload) -> PushDeliveryAttempt:
        attempt = PushDeliveryAttempt(
            target=user_id, token_ref=mask_token(token), outcome=DeliveryOutcome.FAILED
        )
        for number in range(1, self.max_attempts + 1):
            attempt.attempts = number
            try:
                await self.push.send(token, payload)
            except PushProviderError as e:
                attempt.error_code = e.code
                attempt.error_message = e.message
                logger.warning(
                    f"Push to {user_id} failed (attempt {number}/{self.max_attempts}): "
                    f"{e.code} {e.message}"
                )
                if e.is_invalid_token:
                    await self._clear_token(user_id)
                    break
                if e.retryable and number < self.max_attempts:
                    await self._sleep(self.retry_delay)
                    continue
                break
            except Exception as e:
                # Push is best-effort: nothing raised by the provider may fail the dispatch
                attempt.error_code = UNEXPECTED
                attempt.error_message = f"{type(e).__name__}: {e}"
                logger.exception(
                    f"Unexpected push failure for {user_id} (attempt {number}/{self.max_attempts})"
                )
                break
            else:
                attempt.outcome = DeliveryOutcome.DELIVERED
                attempt.error_code = None
                attempt.error_message = None
                logger.info(f"Push delivered to {user_id} on attempt {number}")
                break
        return attempt

    async def _clear_token(self, user_id: str) -> None:
        logger.info(f"Clearing unregistered device token for {user_id}")
        try:
            await self.datastore.clear_device_token(user_id)
        except DatastoreError as e:
            logger.warning(f"Failed to clear device token for {user_id}: {e.message}")

    async def test_connection(self) -> bool:
        """Report whether the push provider is configured and reachable."""
        return await self.push.test_connection()
