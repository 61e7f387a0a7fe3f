"""
Logging configuration for the LawBot backend.
Provides structured logging with different levels and formats.

PERFORMANCE:
- Uses QueueHandler so log writes never block the event loop
- QueueListener handles file I/O in a separate thread
"""

import atexit
import logging
import logging.handlers
import queue
import sys
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel


# Global queue listener for cleanup
_queue_listener: Optional[logging.handlers.QueueListener] = None

ADMIN_AUDIT_LOGGER = "admin.audit"


class LogConfig(BaseModel):
    """Logging configuration settings."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    enable_file_logging: bool = True
    log_dir: str = "logs"
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    enable_console: bool = True


class ColoredFormatter(logging.Formatter):
    """Custom formatter with colors for console output."""

    grey = "\x1b[38;21m"
    yellow = "\x1b[33;21m"
    red = "\x1b[31;21m"
    bold_red = "\x1b[31;1m"
    blue = "\x1b[34;21m"
    reset = "\x1b[0m"

    COLORS = {
        logging.DEBUG: grey,
        logging.INFO: blue,
        logging.WARNING: yellow,
        logging.ERROR: red,
        logging.CRITICAL: bold_red,
    }

    def format(self, record):
        # Work on a copy so file handlers sharing the record see a plain levelname
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelno, self.grey)
        record.levelname = f"{color}{record.levelname}{self.reset}"
        return f"{super().format(record)}{self.reset}"


def _rotating_handler(config: LogConfig, filename: str, formatter: logging.Formatter):
    handler = logging.handlers.RotatingFileHandler(
        Path(config.log_dir) / filename,
        maxBytes=config.max_file_size,
        backupCount=config.backup_count,
        encoding="utf-8",
    )
    handler.setLevel(getattr(logging, config.level.upper()))
    handler.setFormatter(formatter)
    return handler


def setup_logging(config: Optional[LogConfig] = None) -> None:
    """Setup application logging with configuration.

    - Console handler writes directly (stdout is non-blocking)
    - File handlers sit behind a QueueListener running in its own thread
    - Admin audit records (officer removal, case assignment) also go to
      a dedicated admin_audit.log
    """
    global _queue_listener

    if config is None:
        config = LogConfig()

    if _queue_listener:
        _queue_listener.stop()
        _queue_listener = None

    if config.enable_file_logging:
        Path(config.log_dir).mkdir(exist_ok=True)

    level = getattr(logging, config.level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if config.enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(
            ColoredFormatter(
                fmt="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
                datefmt=config.date_format,
            )
        )
        root_logger.addHandler(console_handler)

    file_handlers: List[logging.Handler] = []

    if config.enable_file_logging:
        file_formatter = logging.Formatter(
            fmt="%(asctime)s | %(name)s | %(levelname)s | %(funcName)s:%(lineno)d | %(message)s",
            datefmt=config.date_format,
        )
        file_handlers.append(_rotating_handler(config, "app.log", file_formatter))

        audit_handler = _rotating_handler(config, "admin_audit.log", file_formatter)
        audit_handler.addFilter(logging.Filter(ADMIN_AUDIT_LOGGER))
        file_handlers.append(audit_handler)

    if file_handlers:
        log_queue = queue.Queue(-1)
        root_logger.addHandler(logging.handlers.QueueHandler(log_queue))

        # respect_handler_level=True ensures only relevant logs are processed
        _queue_listener = logging.handlers.QueueListener(
            log_queue,
            *file_handlers,
            respect_handler_level=True,
        )
        _queue_listener.start()
        atexit.register(stop_queue_listener)

    # Keep SQLAlchemy quiet unless something goes wrong
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def stop_queue_listener() -> None:
    """Stop the queue listener gracefully.

    Called automatically on exit via atexit.
    Can also be called manually during shutdown.
    """
    global _queue_listener

    if _queue_listener:
        _queue_listener.stop()
        _queue_listener = None


class AdminAuditLogger:
    """Structured logger for administrative mutations."""

    def __init__(self, name: str = "coordinator"):
        self.logger = logging.getLogger(f"{ADMIN_AUDIT_LOGGER}.{name}")

    def operation_started(self, operation: str, caller: Optional[str], target: str) -> None:
        self.logger.info(
            f"Admin operation started | Operation: {operation} | "
            f"Caller: {caller or 'unknown'} | Target: {target}"
        )

    def identity_cleanup_failed(self, officer_id: str, uid: str, error: str) -> None:
        """Identity cleanup failures are recorded here and nowhere else."""
        self.logger.warning(
            f"Identity cleanup failed | Officer ID: {officer_id} | UID: {uid} | Error: {error}"
        )

    def operation_finished(
        self,
        operation: str,
        status: str,
        target: str,
        warnings: Optional[List[str]] = None,
        error: Optional[str] = None,
    ) -> None:
        """Log the final outcome of a coordinated mutation."""
        parts = [f"Operation: {operation}", f"Status: {status}", f"Target: {target}"]
        if warnings:
            parts.append(f"Warnings: {'; '.join(warnings)}")
        if error:
            parts.append(f"Error: {error}")
        message = "Admin operation finished | " + " | ".join(parts)

        if status == "failure":
            self.logger.error(message)
        elif warnings:
            self.logger.warning(message)
        else:
            self.logger.info(message)
