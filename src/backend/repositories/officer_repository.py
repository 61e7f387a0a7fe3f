"""
Officer Repository for database operations.
"""

from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from core.decorators import critical_database_operation
from db import Officer
from repositories.base_repository import BaseRepository


class OfficerRepository(BaseRepository[Officer]):
    """Repository for Officer database operations."""

    model = Officer

    @classmethod
    @critical_database_operation("delete officer")
    async def delete_officer(cls, db: AsyncSession, officer_id: UUID) -> int:
        """Delete the officer row. Raises on constraint violations."""
        try:
            return await cls.delete_by_id(db, officer_id)
        except Exception:
            await db.rollback()
            raise

    @classmethod
    @critical_database_operation("get available officers")
    async def get_available_for_assignment(
        cls,
        db: AsyncSession,
        unit_id: Optional[str] = None,
        crime_type: Optional[str] = None,
    ) -> List[dict[str, Any]]:
        """Call the get_available_officers_for_assignment stored procedure."""
        stmt = text(
            "SELECT * FROM get_available_officers_for_assignment("
            "CAST(:p_unit_id AS uuid), CAST(:p_crime_type AS text))"
        )
        result = await db.execute(stmt, {"p_unit_id": unit_id, "p_crime_type": crime_type})
        return [dict(row) for row in result.mappings().all()]
