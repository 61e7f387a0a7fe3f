"""
Notification endpoints.

Read-state endpoints back the officer console's unread badge; send-push
records a case status notification and delivers it to the recipient's
device.
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from api.schemas.notification import (
    MarkAllReadRequest,
    NotificationListResponse,
    NotificationRead,
    NotificationStats,
    SuccessResponse,
    UnreadNotificationsResponse,
)
from api.schemas.push import PushTestResponse, SendPushRequest, SendPushResponse
from api.services.datastore import DatastoreError, SqlDatastore
from api.services.push_dispatcher import CaseStatusChange, PushDispatcher
from api.services.push_provider import PushProvider
from core.config import settings
from core.dependencies import (
    get_current_principal,
    get_datastore,
    get_push_dispatcher,
    get_push_provider,
)
from core.exceptions import InvalidRequest, UpstreamFailure
from core.security import Principal

logger = logging.getLogger(__name__)

router = APIRouter()


def _upstream(e: DatastoreError) -> UpstreamFailure:
    return UpstreamFailure(e.message, code=e.code)


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    officer_id: Optional[str] = Query(None, alias="officerId"),
    is_read: Optional[bool] = Query(None, alias="isRead"),
    category: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    datastore: SqlDatastore = Depends(get_datastore),
    principal: Principal = Depends(get_current_principal),
):
    """Notification history for an officer, newest first, with read-state and category filters."""
    if not officer_id:
        raise InvalidRequest("Officer ID is required")
    try:
        records = await datastore.list_notifications(
            officer_id,
            is_read=is_read,
            category=category,
            limit=limit,
            offset=offset,
        )
    except DatastoreError as e:
        raise _upstream(e)
    return NotificationListResponse(
        notifications=[NotificationRead.model_validate(record) for record in records],
        count=len(records),
        limit=limit,
        offset=offset,
    )


@router.get("/unread", response_model=UnreadNotificationsResponse)
async def get_unread_notifications(
    officer_id: Optional[str] = Query(None, alias="officerId"),
    limit: int = Query(settings.notifications.unread_fetch_limit, ge=1, le=500),
    datastore: SqlDatastore = Depends(get_datastore),
    principal: Principal = Depends(get_current_principal),
):
    """Unread notifications for an officer, newest first."""
    if not officer_id:
        raise InvalidRequest("Officer ID is required")
    try:
        records = await datastore.fetch_unread(officer_id, limit)
    except DatastoreError as e:
        raise _upstream(e)
    return UnreadNotificationsResponse(
        notifications=[NotificationRead.model_validate(record) for record in records],
        count=len(records),
    )


@router.post("/{notification_id}/read", response_model=SuccessResponse)
async def mark_notification_read(
    notification_id: UUID,
    datastore: SqlDatastore = Depends(get_datastore),
    principal: Principal = Depends(get_current_principal),
):
    """Mark one notification as read."""
    try:
        success = await datastore.mark_read(notification_id)
    except DatastoreError as e:
        raise _upstream(e)
    return SuccessResponse(success=success)


@router.post("/read-all", response_model=SuccessResponse)
async def mark_all_notifications_read(
    body: MarkAllReadRequest,
    datastore: SqlDatastore = Depends(get_datastore),
    principal: Principal = Depends(get_current_principal),
):
    """Mark every unread notification of an officer as read."""
    if not body.officer_id:
        raise InvalidRequest("Officer ID is required")
    try:
        success = await datastore.mark_all_read(body.officer_id)
    except DatastoreError as e:
        raise _upstream(e)
    return SuccessResponse(success=success)


@router.get("/stats", response_model=NotificationStats)
async def get_notification_stats(
    officer_id: Optional[str] = Query(None, alias="officerId"),
    datastore: SqlDatastore = Depends(get_datastore),
    principal: Principal = Depends(get_current_principal),
):
    """Notification totals for the notifications view."""
    if not officer_id:
        raise InvalidRequest("Officer ID is required")
    try:
        stats = await datastore.get_notification_stats(officer_id)
    except DatastoreError as e:
        raise _upstream(e)
    return NotificationStats(**stats)


@router.post("/send-push", response_model=SendPushResponse)
async def send_push_notification(
    body: SendPushRequest,
    dispatcher: PushDispatcher = Depends(get_push_dispatcher),
):
    """
    Record a case status notification and push it to the user's device.

    Push failures do not fail the request: the response reports
    notificationSent=false with a reason. Only a failure to write the
    in-app record returns 500.
    """
    if not (body.user_id and body.case_number and body.new_status and body.officer_name):
        raise InvalidRequest(
            "Missing required fields: userId, caseNumber, newStatus, and officerName are required"
        )

    logger.info(
        f"Case {body.case_number} status change for {body.user_id}: "
        f"{body.old_status or 'Unknown'} -> {body.new_status} by {body.officer_name}"
    )
    result = await dispatcher.dispatch(
        CaseStatusChange(
            user_id=body.user_id,
            case_number=body.case_number,
            new_status=body.new_status,
            officer_name=body.officer_name,
            old_status=body.old_status,
            message=body.message,
            notification_type=body.notification_type or "status_update",
            related_complaint_id=body.related_complaint_id,
        )
    )

    if not result.record_created:
        raise UpstreamFailure(
            "Failed to create notification record",
            details={"details": result.error, "notificationSent": False},
        )

    if result.delivered:
        message = "Push notification sent successfully"
    else:
        message = "Case updated successfully, but push notification could not be delivered"

    return SendPushResponse(
        success=True,
        message=message,
        notification_sent=result.delivered,
        reason=result.reason,
        notification_id=result.notification_id,
        processing_time_ms=result.processing_time_ms,
        attempts=result.attempt.attempts if result.attempt else 0,
    )


@router.get("/send-push/test", response_model=PushTestResponse)
async def test_push_service(push: PushProvider = Depends(get_push_provider)):
    """Report whether the push provider is configured and ready."""
    ready = await push.test_connection()
    response = PushTestResponse(
        success=ready,
        message=(
            "Push service is properly configured and ready"
            if ready
            else "Push service configuration error"
        ),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
    if ready:
        return response
    return JSONResponse(status_code=500, content=response.model_dump(by_alias=True))
