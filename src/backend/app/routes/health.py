"""
Health check endpoint handler.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import get_session

router = APIRouter()


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_session)):
    """
    Health check endpoint for monitoring.
    Checks database connectivity and Firebase configuration.
    """
    health_status = {
        "status": "healthy",
        "services": {}
    }

    try:
        await db.execute(text("SELECT 1"))
        health_status["services"]["database"] = {"status": "healthy"}
    except Exception as e:
        health_status["services"]["database"] = {
            "status": "unhealthy",
            "error": str(e),
        }
        health_status["status"] = "degraded"

    firebase_ready = settings.firebase.is_configured
    health_status["services"]["firebase"] = {
        "status": "configured" if firebase_ready else "unconfigured",
        "project": settings.firebase.project_id or None,
        "push_enabled": settings.push.enabled,
    }
    if not firebase_ready:
        health_status["status"] = "degraded"

    return health_status
