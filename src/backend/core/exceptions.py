"""
Application error taxonomy.

Each error maps to one HTTP status and is rendered by the exception
handler registered in the app factory as:

    {"success": false, "error": "<message>", "code": "<provider code>"}
"""

from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse


class LawBotError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": False, "error": self.message}
        if self.code:
            body["code"] = self.code
        body.update(self.details)
        return body


class Unauthorized(LawBotError):
    """Bad, missing or expired caller credential. Always raised before side effects."""

    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidRequest(LawBotError):
    """Missing required fields. Raised before any remote call."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(LawBotError):
    """Referenced entity is absent."""

    status_code = status.HTTP_404_NOT_FOUND


class UpstreamFailure(LawBotError):
    """Identity provider, datastore or push provider failed structurally."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class DomainRejection(LawBotError):
    """A well-formed negative business result, e.g. an assignment refused."""

    status_code = status.HTTP_400_BAD_REQUEST


async def lawbot_error_handler(request: Request, exc: LawBotError) -> JSONResponse:
    """Render LawBotError subclasses with their mapped status code."""
    headers = None
    if isinstance(exc, Unauthorized):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)
