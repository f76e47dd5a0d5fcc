"""
Structured exceptions and error responses for Arbor.

Provides consistent error handling across the API with:
- Domain exception classes (not found / conflict / bad request)
- Structured error response format
- FastAPI exception handlers
"""

from typing import Any, Dict, Optional, List
from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from arbor.logging_config import get_logger

logger = get_logger("error")


# =============================================================================
# Error Response Schema
# =============================================================================

class ErrorDetail(BaseModel):
    """Detail of a single error."""
    loc: Optional[List[str]] = None  # Location of error (e.g., ["body", "parent_task_id"])
    msg: str
    type: str


class ErrorResponse(BaseModel):
    """Structured error response format."""
    error: str  # Error code (e.g., "not_found", "circular_reference")
    message: str  # Human-readable message
    details: Optional[List[ErrorDetail]] = None


# =============================================================================
# Custom Exceptions
# =============================================================================

class ArborException(Exception):
    """Base exception for all Arbor errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "internal_error",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class NotFoundError(ArborException):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            message=f"{resource} with ID {resource_id} not found",
            error_code="not_found",
            status_code=status.HTTP_404_NOT_FOUND,
        )
        self.resource = resource
        self.resource_id = resource_id


class ConflictError(ArborException):
    """Uniqueness violation."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="conflict",
            status_code=status.HTTP_409_CONFLICT,
        )


class BadRequestError(ArborException):
    """Structurally invalid request."""

    def __init__(
        self,
        message: str,
        error_code: str = "bad_request",
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class SelfParentError(BadRequestError):
    """Task cannot be its own parent."""

    def __init__(self, task_id: Any):
        super().__init__(
            message="A task cannot be its own parent",
            error_code="self_parent",
            details=[{
                "loc": ["body", "parent_task_id"],
                "msg": f"Task {task_id} cannot be assigned as its own parent",
                "type": "self_parent_error",
            }],
        )
        self.task_id = task_id


class CircularReferenceError(BadRequestError):
    """Reparenting would close a loop in the hierarchy."""

    def __init__(self, task_id: Any, parent_task_id: Any):
        super().__init__(
            message="Cannot set parent: this would create a circular reference in the task hierarchy",
            error_code="circular_reference",
            details=[{
                "loc": ["body", "parent_task_id"],
                "msg": f"Task {parent_task_id} is a descendant of task {task_id}",
                "type": "cycle_error",
            }],
        )
        self.task_id = task_id
        self.parent_task_id = parent_task_id


class HierarchyTooDeepError(BadRequestError):
    """Ancestor chain exceeds the configured maximum depth."""

    def __init__(self, parent_task_id: Any, max_depth: int):
        super().__init__(
            message=f"Cannot set parent: the task hierarchy would exceed {max_depth} levels",
            error_code="hierarchy_too_deep",
        )
        self.parent_task_id = parent_task_id
        self.max_depth = max_depth


class TaskHasChildrenError(BadRequestError):
    """Deletion must proceed leaves-first."""

    def __init__(self, task_id: Any, child_count: int):
        super().__init__(
            message=f"Cannot delete task with ID {task_id} because it has {child_count} child task(s)",
            error_code="task_has_children",
        )
        self.task_id = task_id
        self.child_count = child_count


class UnresolvedReferenceError(BadRequestError):
    """A foreign key on the written row did not resolve."""

    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            message=f"{resource} with ID {resource_id} not found",
            error_code="unresolved_reference",
        )
        self.resource = resource
        self.resource_id = resource_id


class TenantMismatchError(BadRequestError):
    """Body names a tenant other than the one the request was verified for."""

    def __init__(self, tenant_id: Any):
        super().__init__(
            message=f"Tenant {tenant_id} does not match the request tenant",
            error_code="tenant_mismatch",
        )


# =============================================================================
# Exception Handlers
# =============================================================================

async def arbor_exception_handler(request: Request, exc: ArborException) -> JSONResponse:
    """Handle ArborException and return structured response."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "details": None,
        },
    )


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(ArborException, arbor_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
