"""
Case assignment stored-procedure access.

Assignment atomicity is owned by the database: assign_case_to_officer
updates the complaint, writes the assignment and audit rows in one
transaction, and reports business refusals inside its JSON result.
"""

import json
from typing import Any, Dict, Union
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from core.decorators import critical_database_operation


def decode_procedure_result(raw: Union[str, bytes, Dict[str, Any], None]) -> Dict[str, Any]:
    """Normalize a JSON procedure result that may arrive as a string."""
    if raw is None:
        return {}
    if isinstance(raw, (str, bytes)):
        decoded = json.loads(raw)
    else:
        decoded = raw
    if not isinstance(decoded, dict):
        raise ValueError(f"Unexpected procedure result type: {type(decoded).__name__}")
    return decoded


class CaseAssignmentRepository:
    """Repository wrapping the assignment stored procedure."""

    @staticmethod
    @critical_database_operation("assign case to officer")
    async def assign_case_to_officer(
        db: AsyncSession,
        complaint_id: Union[str, UUID],
        officer_id: Union[str, UUID],
        admin_id: Union[str, UUID],
        reason: str,
    ) -> Dict[str, Any]:
        """
        Invoke assign_case_to_officer and return its decoded JSON payload.

        Returns:
            Dict with at least "success"; on success also assignment_id,
            officer_name, message and complaint_number, otherwise "error".
        """
        stmt = text(
            "SELECT assign_case_to_officer("
            ":p_complaint_id, :p_officer_id, :p_admin_id, :p_reason) AS result"
        )
        try:
            result = await db.execute(
                stmt,
                {
                    "p_complaint_id": str(complaint_id),
                    "p_officer_id": str(officer_id),
                    "p_admin_id": str(admin_id),
                    "p_reason": reason,
                },
            )
            raw = result.scalar_one_or_none()
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return decode_procedure_result(raw)
