"""
Case assignment schemas.

The response keeps the snake_case keys existing clients already read
(assignment_id, officer_name, complaint_number), so it is a plain
BaseModel rather than an HTTPSchemaModel.
"""
from typing import Optional

from pydantic import BaseModel

from core.schema_base import HTTPSchemaModel


class AssignCaseRequest(HTTPSchemaModel):
    """Body of POST /officers/assign. Presence is validated by the coordinator."""
    complaint_id: Optional[str] = None
    officer_id: Optional[str] = None
    admin_id: Optional[str] = None
    notes: Optional[str] = None


class AssignCaseResponse(BaseModel):
    success: bool = True
    assignment_id: Optional[str] = None
    officer_name: Optional[str] = None
    message: Optional[str] = None
    complaint_number: Optional[str] = None
