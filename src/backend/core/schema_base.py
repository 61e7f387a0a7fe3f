"""
Base schema model for API payloads.

The web console and the mobile app speak camelCase JSON; Python code uses
snake_case. HTTPSchemaModel accepts either on input and emits camelCase,
with datetimes rendered as UTC ISO 8601 strings ending in 'Z'.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, field_serializer


def to_camel(string: str) -> str:
    """
    Convert snake_case to camelCase.

    Example:
        >>> to_camel("deleted_officer")
        'deletedOfficer'
    """
    parts = string.split("_")
    return parts[0] + "".join(word.capitalize() for word in parts[1:])


def serialize_datetime(dt: datetime | None) -> str | None:
    """Render a UTC datetime (naive or aware) as ISO 8601 with a 'Z' suffix."""
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.isoformat() + "Z"


class HTTPSchemaModel(BaseModel):
    """
    Base model for camelCase HTTP schemas.

    Also builds from ORM rows (from_attributes=True).
    """

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_serializer("*", mode="wrap")
    @classmethod
    def serialize_any_datetime(cls, value: Any, handler: Any) -> Any:
        if isinstance(value, datetime):
            return serialize_datetime(value)
        return handler(value)
