"""
Push dispatch schemas.
"""
from typing import Optional

from core.schema_base import HTTPSchemaModel


class SendPushRequest(HTTPSchemaModel):
    """Body of POST /notifications/send-push."""
    user_id: Optional[str] = None
    case_number: Optional[str] = None
    old_status: Optional[str] = None
    new_status: Optional[str] = None
    officer_name: Optional[str] = None
    message: Optional[str] = None
    notification_type: Optional[str] = None
    related_complaint_id: Optional[str] = None


class SendPushResponse(HTTPSchemaModel):
    success: bool
    message: str
    notification_sent: bool
    reason: Optional[str] = None
    notification_id: Optional[str] = None
    processing_time_ms: float
    attempts: int = 0


class PushTestResponse(HTTPSchemaModel):
    success: bool
    message: str
    timestamp: str
