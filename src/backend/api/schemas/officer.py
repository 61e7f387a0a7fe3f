"""
Officer schemas for the administrative endpoints.
"""
from typing import Any, Dict, List, Optional

from core.schema_base import HTTPSchemaModel


class DeleteOfficerRequest(HTTPSchemaModel):
    """Body of DELETE /admin/officer. Presence is validated by the coordinator."""
    officer_id: Optional[str] = None


class DeletedOfficer(HTTPSchemaModel):
    id: str
    name: str
    badge: str
    email: Optional[str] = None


class DeleteOfficerResponse(HTTPSchemaModel):
    success: bool = True
    message: str
    deleted_officer: DeletedOfficer
    warnings: List[str] = []


class AvailableOfficersResponse(HTTPSchemaModel):
    officers: List[Dict[str, Any]]
