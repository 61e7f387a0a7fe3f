"""
Officer assignment endpoints.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.schemas.assignment import AssignCaseRequest, AssignCaseResponse
from api.schemas.officer import AvailableOfficersResponse
from api.services.datastore import DatastoreError, SqlDatastore
from api.services.mutation_coordinator import AssignCase, MutationCoordinator
from core.dependencies import get_coordinator, get_datastore, get_optional_principal
from core.exceptions import UpstreamFailure
from core.security import Principal

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/assign", response_model=AssignCaseResponse)
async def assign_officer(
    body: AssignCaseRequest,
    coordinator: MutationCoordinator = Depends(get_coordinator),
    principal: Optional[Principal] = Depends(get_optional_principal),
):
    """
    Assign a complaint to an officer.

    The assignment, complaint status change and audit rows are written
    atomically by the assign_case_to_officer procedure.
    """
    outcome = await coordinator.assign_case(
        AssignCase(
            complaint_id=body.complaint_id,
            officer_id=body.officer_id,
            admin_id=body.admin_id,
            notes=body.notes,
            caller_uid=principal.uid if principal else None,
        )
    )
    if not outcome.succeeded:
        raise outcome.error

    return AssignCaseResponse(success=True, **outcome.data)


@router.get("/available", response_model=AvailableOfficersResponse)
async def available_officers(
    unit_id: Optional[str] = Query(None, alias="unitId"),
    crime_type: Optional[str] = Query(None, alias="crimeType"),
    datastore: SqlDatastore = Depends(get_datastore),
):
    """Officers that can take a new case, optionally filtered by unit and crime type."""
    try:
        officers = await datastore.get_available_officers(unit_id, crime_type)
    except DatastoreError as e:
        logger.error(f"Failed to load available officers: {e.message}")
        raise UpstreamFailure(
            "Failed to fetch available officers", code=e.code, details={"details": e.message}
        )
    return AvailableOfficersResponse(officers=officers)
