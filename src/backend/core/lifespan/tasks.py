"""
Lifespan startup and shutdown task functions.

Each function handles one responsibility so the lifespan manager reads
as a list of steps.
"""

import logging

from fastapi import FastAPI


async def initialize_logging(settings, log_config):
    """Setup logging configuration."""
    from core.logging_config import setup_logging

    setup_logging(log_config)
    logger = logging.getLogger("main")
    logger.info(f"Starting {settings.api.app_name} v{settings.api.app_version}")


async def log_configuration(settings, logger):
    """Log the settings that most often explain a misbehaving deployment."""
    logger.info(f"CORS Allowed Origins: {settings.cors.origins}")
    if settings.firebase.is_configured:
        logger.info(f"Firebase project: {settings.firebase.project_id}")
    else:
        logger.warning(
            "Firebase service account is not configured; token verification, "
            "identity deletion and push delivery will fail"
        )
    if not settings.push.enabled:
        logger.warning("Push delivery is disabled (PUSH_ENABLED=false)")


async def create_broadcast_queue(app: FastAPI, settings):
    """Create the process broadcast queue and attach it to app.state."""
    from api.services.broadcast_queue import BroadcastQueue

    app.state.broadcast_queue = BroadcastQueue(
        expiry_seconds=settings.notifications.toast_expiry_seconds
    )
    logging.getLogger("main").info("Broadcast queue created")


async def shutdown_broadcast_queue(app: FastAPI):
    """Cancel pending toast timers."""
    queue = getattr(app.state, "broadcast_queue", None)
    if queue is not None:
        queue.shutdown()
        app.state.broadcast_queue = None


async def shutdown_google_clients():
    """Close the shared HTTP client used for Firebase and FCM."""
    from api.services.google_auth import GoogleHTTPClient

    logger = logging.getLogger("main")
    try:
        await GoogleHTTPClient.close()
        logger.info("Google HTTP client closed")
    except Exception as e:
        logger.warning(f"Google HTTP client shutdown error: {e}")


async def shutdown_database():
    """Close database connections."""
    from core.database import close_database_connections

    await close_database_connections()
    logging.getLogger("main").info("Database connections closed")
