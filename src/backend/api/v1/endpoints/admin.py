"""
Administrative officer endpoints.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.schemas.officer import DeletedOfficer, DeleteOfficerRequest, DeleteOfficerResponse
from api.services.mutation_coordinator import DeleteOfficer, MutationCoordinator
from core.config import settings
from core.dependencies import get_bearer_token, get_coordinator
from core.rate_limit import limiter

logger = logging.getLogger(__name__)

router = APIRouter()


@router.delete("/officer", response_model=DeleteOfficerResponse)
@limiter.limit(settings.api.admin_rate_limit)
async def delete_officer(
    request: Request,
    body: Optional[DeleteOfficerRequest] = None,
    token: Optional[str] = Depends(get_bearer_token),
    coordinator: MutationCoordinator = Depends(get_coordinator),
):
    """
    Delete an officer from Firebase Authentication and the database.

    Identity deletion failures are reported as warnings; the database
    delete decides success.

    - **officerId**: Officer profile ID
    """
    outcome = await coordinator.delete_officer(
        DeleteOfficer(
            officer_id=body.officer_id if body else None,
            caller_token=token,
        )
    )
    if not outcome.succeeded:
        raise outcome.error

    return DeleteOfficerResponse(
        message=outcome.message,
        deleted_officer=DeletedOfficer(**outcome.data["deleted_officer"]),
        warnings=outcome.warnings,
    )
