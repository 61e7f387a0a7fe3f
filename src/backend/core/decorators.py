"""
Centralized error handling decorators for database operations.

Repositories wrap their queries with these decorators so failures are
classified and logged in one place. Write paths re-raise so the caller
decides whether the failure is fatal.
"""
import functools
import inspect
import logging
from typing import Any, Callable, Optional

from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    IntegrityError,
    OperationalError,
    SQLAlchemyError,
    StatementError,
    TimeoutError,
)


logger = logging.getLogger(__name__)


class DatabaseErrorHandler:
    """Centralized database error classification."""

    DATABASE_EXCEPTIONS = (
        SQLAlchemyError,
        ConnectionError,
    )

    @staticmethod
    def error_code(exc: BaseException) -> Optional[str]:
        """Extract the driver's SQLSTATE code (e.g. '23503' for a foreign-key violation)."""
        orig = getattr(exc, "orig", None)
        for candidate in (orig, getattr(orig, "__cause__", None)):
            if candidate is None:
                continue
            code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
            if code:
                return str(code)
        if isinstance(exc, DBAPIError) and exc.code:
            return exc.code
        return None

    @staticmethod
    def handle_database_error(
        exc: Exception,
        operation: str,
        context: Optional[dict] = None
    ) -> tuple[bool, str]:
        """
        Classify a database error and log it.

        Returns:
            Tuple of (is_recoverable, error_message)
        """
        context_str = f" | Context: {context}" if context else ""

        if isinstance(exc, IntegrityError):
            error_msg = f"Database integrity error during {operation}: {str(exc.orig or exc)}{context_str}"
            logger.warning(error_msg)
            return False, error_msg

        if isinstance(exc, (ConnectionError, DisconnectionError)):
            error_msg = f"Database connection error during {operation}: {str(exc)}{context_str}"
            logger.error(error_msg)
            return True, error_msg

        if isinstance(exc, TimeoutError):
            error_msg = f"Database timeout during {operation}: {str(exc)}{context_str}"
            logger.warning(error_msg)
            return True, error_msg

        if isinstance(exc, OperationalError):
            error_msg = f"Database operational error during {operation}: {str(exc)}{context_str}"
            logger.error(error_msg)
            return True, error_msg

        if isinstance(exc, StatementError):
            error_msg = f"Database statement error during {operation}: {str(exc)}{context_str}"
            logger.warning(error_msg)
            return False, error_msg

        error_msg = f"Unexpected database error during {operation}: {type(exc).__name__}: {str(exc)}{context_str}"
        logger.error(error_msg, exc_info=exc)
        return False, error_msg


def handle_database_exceptions(operation_name: Optional[str] = None) -> Callable:
    """
    Decorator to wrap async database operations with error handling.

    Database errors are classified, logged and re-raised.

    Args:
        operation_name: Name of the operation for logging (defaults to function name)
    """
    def decorator(func: Callable) -> Callable:
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"{func.__name__} must be a coroutine function")

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            operation = operation_name or func.__name__
            try:
                return await func(*args, **kwargs)
            except DatabaseErrorHandler.DATABASE_EXCEPTIONS as exc:
                DatabaseErrorHandler.handle_database_error(
                    exc, operation, {"function": func.__name__}
                )
                raise

        return async_wrapper

    return decorator


def log_database_operation(operation: str, level: str = "debug") -> Callable:
    """
    Decorator to log start/finish of an async database operation.

    Args:
        operation: Description of the operation
        level: Logging level ('debug', 'info', 'warning', 'error')
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            logger_method = getattr(logger, level)
            logger_method(f"Starting {operation} via {func.__name__}")
            try:
                result = await func(*args, **kwargs)
            except Exception as exc:
                logger_method(f"Failed {operation} via {func.__name__}: {str(exc)}")
                raise
            logger_method(f"Completed {operation} via {func.__name__}")
            return result

        return async_wrapper

    return decorator


def critical_database_operation(operation_name: Optional[str] = None) -> Callable:
    """
    Decorator for write operations that must succeed: logs and re-raises.
    """
    return handle_database_exceptions(operation_name=operation_name)
