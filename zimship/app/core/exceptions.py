"""
Custom exceptions and error handlers for consistent error responses.

Provides standardized error codes and global exception handlers.
Every error response carries a ``retryable`` flag so clients can tell a
workflow rejection apart from a system failure.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger("zimship")


class AppException(Exception):
    """Base application exception."""

    retryable: bool = False

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        self.details.setdefault("retryable", self.retryable)
        super().__init__(message)


class InvalidTransitionError(AppException):
    """Raised when a requested status change is not allowed by the shipment workflow."""

    def __init__(self, current_status: Any, requested_status: Any, reason: str = None):
        message = reason or f"Transition from '{current_status}' to '{requested_status}' is not allowed"
        super().__init__(
            message=message,
            error_code="ERR_WORKFLOW_001",
            status_code=status.HTTP_409_CONFLICT,
            details={"current_status": current_status, "requested_status": requested_status}
        )


class PersistenceError(AppException):
    """Raised when the backing store fails to read or write."""

    retryable = True

    def __init__(self, message: str = "Persistence operation failed", operation: str = None):
        super().__init__(
            message=message,
            error_code="ERR_PERSISTENCE_001",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details={"operation": operation}
        )


_PROTECTED_ACTION_WORDS = {
    "delete": "deleted",
    "rename": "renamed",
    "unprotect": "unprotected",
}


class ProtectedRoleError(AppException):
    """Raised when a protected role would be deleted, renamed, or unprotected."""

    def __init__(self, role_name: str, action: str = "delete"):
        verb = _PROTECTED_ACTION_WORDS.get(action, f"changed ({action})")
        super().__init__(
            message=f"Role '{role_name}' is protected and cannot be {verb}",
            error_code="ERR_ROLE_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details={"role": role_name, "action": action}
        )


class SchemaViolationError(AppException):
    """Raised when a permissions lookup or document does not match the permission schema."""

    def __init__(self, message: str, section: Any = None, action: Any = None):
        super().__init__(
            message=message,
            error_code="ERR_SCHEMA_001",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details={"section": section, "action": action}
        )


class ConflictError(AppException):
    """Raised when a resource with the same unique key already exists."""

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_CONFLICT_001",
            status_code=status.HTTP_409_CONFLICT,
            details=details
        )


class InsufficientPermissionsError(AppException):
    """Raised when user doesn't have permission to perform an action."""

    def __init__(self, message: str = "Insufficient permissions", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_PERM_001",
            status_code=status.HTTP_403_FORBIDDEN,
            details=details
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        409: "ERR_CONFLICT",
        422: "ERR_VALIDATION",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": [
                    {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
                    for err in exc.errors()
                ]
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception(
        "Unhandled exception",
        extra={"path": request.url.path, "exception_type": type(exc).__name__}
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {"retryable": True}
        }
    )
