"""
Application lifespan manager.

Handles startup and shutdown events for the FastAPI application.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from core.config import settings
from core.logging_config import LogConfig, stop_queue_listener
from . import tasks


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    log_config = LogConfig(**settings.logging.log_config)
    await tasks.initialize_logging(settings, log_config)

    logger = logging.getLogger("main")

    await tasks.log_configuration(settings, logger)
    await tasks.create_broadcast_queue(app, settings)

    yield

    logger.info(f"Shutting down {settings.api.app_name}...")

    await tasks.shutdown_broadcast_queue(app)
    await tasks.shutdown_google_clients()
    await tasks.shutdown_database()

    # Last, so the shutdown messages above are still written
    stop_queue_listener()
