"""
API v1 routes.
"""

from fastapi import APIRouter

from .endpoints import admin, live, notifications, officers

api_router = APIRouter()

api_router.include_router(admin.router, prefix="/admin", tags=["admin"])

api_router.include_router(officers.router, prefix="/officers", tags=["officers"])

api_router.include_router(
    notifications.router, prefix="/notifications", tags=["notifications"]
)

api_router.include_router(live.router, prefix="/live", tags=["live"])
