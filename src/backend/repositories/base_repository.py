"""
Base repository with generic CRUD operations.

Provides reusable database operations inherited by entity repositories.
"""
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

# Type variable for the model class
ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository providing common CRUD operations.

    Usage:
        class OfficerRepository(BaseRepository[Officer]):
            model = Officer
    """

    model: Type[ModelType] = None

    @classmethod
    async def find_by_id(cls, db: AsyncSession, id_value: Any) -> Optional[ModelType]:
        """Find a single record by ID, or None."""
        stmt = select(cls.model).where(cls.model.id == id_value)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @classmethod
    async def find_all(
        cls,
        db: AsyncSession,
        *,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[ModelType]:
        """Find all records matching field:value filters."""
        stmt = select(cls.model)

        if filters:
            for field, value in filters.items():
                stmt = stmt.where(getattr(cls.model, field) == value)

        result = await db.execute(stmt)
        return list(result.scalars().all())

    @classmethod
    async def create(
        cls,
        db: AsyncSession,
        *,
        obj_in: Dict[str, Any],
        commit: bool = True
    ) -> ModelType:
        """
        Create a new record.

        Args:
            db: Database session
            obj_in: Dictionary of field values
            commit: Whether to commit immediately
        """
        db_obj = cls.model(**obj_in)
        db.add(db_obj)

        if commit:
            await db.commit()
            await db.refresh(db_obj)
        else:
            await db.flush()

        return db_obj

    @classmethod
    async def delete_by_id(cls, db: AsyncSession, id_value: Any, *, commit: bool = True) -> int:
        """
        Hard-delete a record by ID with a single DELETE statement.

        Constraint violations (e.g. foreign keys) surface on commit.

        Returns:
            Number of rows deleted
        """
        stmt = delete(cls.model).where(cls.model.id == id_value)
        result = await db.execute(stmt)

        if commit:
            await db.commit()

        return result.rowcount or 0
