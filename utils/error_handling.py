"""
Centralized error handling utilities for consistent error responses
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from sqlalchemy.orm import Session

from utils.structured_logging import get_logger, LogCategory

logger = get_logger("errors")


class AppError(Exception):
    """Base class for errors that map onto an HTTP response"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> Any:
        return self.message


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class InsufficientCoinsError(AppError):
    """Balance too low for a metered AI call. Carries the amounts as data."""

    status_code = status.HTTP_402_PAYMENT_REQUIRED
    kind = "insufficient_coins"

    def __init__(self, required: int, available: int):
        super().__init__(f"Insufficient coins: required {required}, available {available}")
        self.required = required
        self.available = available

    def to_detail(self) -> Dict[str, Any]:
        return {"kind": self.kind, "required": self.required, "available": self.available, "message": self.message}


class UpstreamModelError(AppError):
    """Non-2xx or unusable reply from the LLM provider"""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status

    def to_detail(self) -> Dict[str, Any]:
        return {"kind": "upstream_model_error", "upstream_status": self.upstream_status, "message": self.message}


class UnknownModelError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, model: str):
        super().__init__(f"Unknown model: {model}")
        self.model = model


class AttemptsExhaustedError(AppError):
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, max_attempts: int, attempts_used: int):
        super().__init__(f"Maximum attempts ({max_attempts}) reached for this task.")
        self.max_attempts = max_attempts
        self.attempts_used = attempts_used

    def to_detail(self) -> Dict[str, Any]:
        return {
            "kind": "max_attempts_reached",
            "message": self.message,
            "max_attempts": self.max_attempts,
            "attempts_used": self.attempts_used,
        }


class LessonLockedError(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class BlockNavigationError(AppError):
    status_code = status.HTTP_409_CONFLICT


def handle_database_error(e: Exception, operation: str = "database operation") -> None:
    """
    Handle database errors consistently across the application

    Args:
        e: The exception that occurred
        operation: Description of the operation that failed
    """
    if isinstance(e, AppError):
        raise e
    if isinstance(e, IntegrityError):
        logger.warning(f"Database integrity error during {operation}: {str(e)}", category=LogCategory.DATABASE)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Data integrity constraint violated. This operation conflicts with existing data.",
        )
    elif isinstance(e, SQLAlchemyError):
        logger.error(f"Database error during {operation}", category=LogCategory.DATABASE, exception=e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database operation failed. Please try again later.",
        )
    else:
        logger.error(f"Unexpected error during {operation}", exception=e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred. Please try again later.",
        )


def safe_database_operation(db: Session, operation_name: str):
    """
    Context manager for safe database operations with automatic rollback

    Usage:
        with safe_database_operation(db, "upsert progress"):
            db.add(progress)
            db.commit()
    """

    class DatabaseOperationContext:
        def __init__(self, db: Session, operation_name: str):
            self.db = db
            self.operation_name = operation_name

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_type and not issubclass(exc_type, (AppError, HTTPException)):
                self.db.rollback()
                handle_database_error(exc_val, self.operation_name)
            return False

    return DatabaseOperationContext(db, operation_name)


def validate_resource_exists(resource: Any, resource_name: str, resource_id: Any) -> None:
    """Raise NotFoundError when a looked-up resource is missing"""
    if not resource:
        logger.warning(f"{resource_name} not found: {resource_id}")
        raise NotFoundError(f"{resource_name} not found")
